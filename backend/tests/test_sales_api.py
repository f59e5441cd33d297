"""
Integration tests for the sales endpoints.
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from crud import sales as crud_sales
from exceptions import ConcurrencyConflictError
from models import Product, Sale
from tests.conftest import make_product, auth_headers


class TestCreateSale:
    """POST /sales/"""

    def test_create_sale_success(self, client, db, tenant, staff_profile, student):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)
        shaker = make_product(db, tenant, "Shaker Proteina", "29.90", 5)

        response = client.post(
            "/sales/",
            json={
                "student_id": student.id,
                "payment_method": "credit",
                "items": [
                    {"product_id": shirt.id, "quantity": 2},
                    {"product_id": shaker.id, "quantity": 1},
                ],
            },
            headers=auth_headers(staff_profile),
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["sale"]["total_amount"]) == Decimal("129.70")
        assert data["sale"]["payment_method"] == "credit"
        assert data["sale"]["student_id"] == student.id
        assert data["sale"]["created_by"] == staff_profile.id
        assert data["sale"]["tenant_id"] == tenant.id
        assert len(data["sale"]["items"]) == 2
        stock = {p["id"]: (p["stock_quantity"], p["status"]) for p in data["products"]}
        assert stock[shirt.id] == (3, "low_stock")
        assert stock[shaker.id] == (4, "low_stock")

    def test_walk_in_sale_without_student(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 10)

        response = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 1}]},
            headers=auth_headers(staff_profile),
        )

        assert response.status_code == 201
        assert response.json()["sale"]["student_id"] is None

    def test_insufficient_stock_returns_conflict(self, client, db, tenant, staff_profile):
        bottle = make_product(db, tenant, "Garrafa", "19.90", 3)

        response = client.post(
            "/sales/",
            json={"payment_method": "pix", "items": [{"product_id": bottle.id, "quantity": 10}]},
            headers=auth_headers(staff_profile),
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "insufficient_stock"
        assert detail["product_id"] == bottle.id
        assert detail["available"] == 3
        assert detail["requested"] == 10
        db.expire_all()
        assert db.get(Product, bottle.id).stock_quantity == 3
        assert db.query(Sale).count() == 0

    def test_validation_errors_return_422(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)
        headers = auth_headers(staff_profile)

        empty = client.post("/sales/", json={"payment_method": "cash", "items": []}, headers=headers)
        assert empty.status_code == 422
        assert empty.json()["detail"]["code"] == "validation_error"

        zero = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 0}]},
            headers=headers,
        )
        assert zero.status_code == 422
        assert zero.json()["detail"]["product_id"] == shirt.id

        method = client.post(
            "/sales/",
            json={"payment_method": "boleto", "items": [{"product_id": shirt.id, "quantity": 1}]},
            headers=headers,
        )
        assert method.status_code == 422

    def test_product_of_other_tenant_is_unavailable(self, client, db, tenant, other_tenant, staff_profile):
        foreign = make_product(db, other_tenant, "Camiseta Norte", "45.00", 10)

        response = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": foreign.id, "quantity": 1}]},
            headers=auth_headers(staff_profile),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "product_unavailable"

    def test_idempotency_key_header_replays(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)
        payload = {"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 2}]}
        headers = {**auth_headers(staff_profile), "Idempotency-Key": "checkout-42"}

        first = client.post("/sales/", json=payload, headers=headers)
        second = client.post("/sales/", json=payload, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["replayed"] is True
        assert second.json()["sale"]["id"] == first.json()["sale"]["id"]
        db.expire_all()
        assert db.get(Product, shirt.id).stock_quantity == 3

    def test_blank_idempotency_key_is_ignored(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)
        payload = {"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 1}]}
        headers = {**auth_headers(staff_profile), "Idempotency-Key": ""}

        first = client.post("/sales/", json=payload, headers=headers)
        second = client.post("/sales/", json=payload, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["replayed"] is False
        assert second.json()["sale"]["id"] != first.json()["sale"]["id"]
        assert db.query(Sale).count() == 2

    def test_overlong_idempotency_key_returns_422(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)

        response = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 1}]},
            headers={**auth_headers(staff_profile), "Idempotency-Key": "k" * 256},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "validation_error"
        assert db.query(Sale).count() == 0

    def test_persistent_conflict_returns_retryable_409(self, client, db, tenant, staff_profile, monkeypatch):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)

        def always_conflicts(*args, **kwargs):
            raise ConcurrencyConflictError("Stock changed while the sale was being recorded.", product_id=shirt.id)

        monkeypatch.setattr(crud_sales, "_decrement_stock", always_conflicts)

        response = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 1}]},
            headers=auth_headers(staff_profile),
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "concurrency_conflict"
        assert detail["retryable"] is True
        assert detail["product_id"] == shirt.id
        assert db.query(Sale).count() == 0

    def test_storage_failure_returns_503(self, client, db, tenant, staff_profile, monkeypatch):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)

        def connection_lost(*args, **kwargs):
            raise OperationalError("UPDATE products ...", {}, Exception("server closed the connection unexpectedly"))

        monkeypatch.setattr(crud_sales, "_decrement_stock", connection_lost)

        response = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 1}]},
            headers=auth_headers(staff_profile),
        )

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["code"] == "storage_error"
        assert detail["retryable"] is True
        db.expire_all()
        assert db.get(Product, shirt.id).stock_quantity == 5

    def test_requires_authentication(self, client, db, tenant):
        response = client.post("/sales/", json={"payment_method": "cash", "items": []})
        assert response.status_code == 401

    def test_foreign_tenant_header_is_forbidden(self, client, db, tenant, other_tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 5)

        response = client.post(
            "/sales/",
            json={"payment_method": "cash", "items": [{"product_id": shirt.id, "quantity": 1}]},
            headers={**auth_headers(staff_profile), "X-Tenant-ID": other_tenant.id},
        )

        assert response.status_code == 403
        db.expire_all()
        assert db.get(Product, shirt.id).stock_quantity == 5


class TestReadSales:
    """GET /sales/"""

    def _sell(self, client, profile, product_id, quantity, method="cash"):
        response = client.post(
            "/sales/",
            json={"payment_method": method, "items": [{"product_id": product_id, "quantity": quantity}]},
            headers=auth_headers(profile),
        )
        assert response.status_code == 201
        return response.json()["sale"]

    def test_list_and_filter_by_payment_method(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 10)
        self._sell(client, staff_profile, shirt.id, 1, "cash")
        pix_sale = self._sell(client, staff_profile, shirt.id, 2, "pix")

        all_sales = client.get("/sales/", headers=auth_headers(staff_profile))
        assert all_sales.status_code == 200
        assert len(all_sales.json()) == 2

        pix_only = client.get("/sales/?payment_method=pix", headers=auth_headers(staff_profile))
        assert [s["id"] for s in pix_only.json()] == [pix_sale["id"]]

    def test_read_single_sale(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 10)
        sale = self._sell(client, staff_profile, shirt.id, 3)

        response = client.get(f"/sales/{sale['id']}", headers=auth_headers(staff_profile))

        assert response.status_code == 200
        data = response.json()
        assert data["items"][0]["quantity"] == 3
        assert Decimal(data["items"][0]["unit_price"]) == Decimal("49.90")
        assert Decimal(data["total_amount"]) == Decimal("149.70")

    def test_sales_of_other_tenant_are_hidden(self, client, db, tenant, staff_profile, other_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 10)
        sale = self._sell(client, staff_profile, shirt.id, 1)

        assert client.get(f"/sales/{sale['id']}", headers=auth_headers(other_profile)).status_code == 404
        assert client.get("/sales/", headers=auth_headers(other_profile)).json() == []

    def test_date_range_is_inclusive(self, client, db, tenant, staff_profile):
        shirt = make_product(db, tenant, "Camiseta Academia", "49.90", 10)
        sale = self._sell(client, staff_profile, shirt.id, 1)
        db.query(Sale).filter(Sale.id == sale["id"]).update(
            {Sale.created_at: datetime(2026, 3, 15, 18, 30)}, synchronize_session=False
        )
        db.commit()
        headers = auth_headers(staff_profile)

        def ids(query):
            response = client.get(f"/sales/?{query}", headers=headers)
            assert response.status_code == 200
            return [s["id"] for s in response.json()]

        assert ids("start_date=2026-03-15&end_date=2026-03-15") == [sale["id"]]
        assert ids("start_date=2026-03-01&end_date=2026-03-15") == [sale["id"]]
        assert ids("end_date=2026-03-14") == []
        assert ids("start_date=2026-03-16") == []
