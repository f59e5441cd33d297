"""
Sale commit engine.

A commit turns a client-held cart into a Sale, its SaleItems and the matching
stock decrements inside one database transaction. Either every row is written
or none is.

Attempt lifecycle (logged at each step):
    Received -> Validating -> Rejected
                           -> Committing -> Committed | RolledBack
"""
import logging
import time
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from sqlalchemy import text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from config import SALE_COMMIT_TIMEOUT_SECONDS
from crud.app_config import get_low_stock_threshold
from exceptions import (
    SaleCommitError,
    ValidationError,
    ProductUnavailableError,
    InsufficientStockError,
    ConcurrencyConflictError,
    StorageError,
)
from models.products import Product
from models.product_stock_audit import ProductStockAudit
from models.sales import Sale, PaymentMethod
from models.sale_items import SaleItem
from models.students import Student
from schemas.products import ProductStock
from schemas.sales import Sale as SaleSchema, SaleCommitResult
from utils import derive_product_status

logger = logging.getLogger("sales")

CENTS = Decimal("0.01")

# PostgreSQL SQLSTATEs: serialization_failure, deadlock_detected
CONFLICT_SQLSTATES = {"40001", "40P01"}
# query_canceled, raised when statement_timeout fires
TIMEOUT_SQLSTATES = {"57014"}

CartEntry = Tuple[str, int]

# Width of sales.idempotency_key
IDEMPOTENCY_KEY_MAX_LENGTH = 255


def _parse_payment_method(value) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(value)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Unknown payment method '{value}'. Expected one of: {allowed}.") from None


def _normalize_lines(lines) -> List[CartEntry]:
    """Accepts CartLine models or plain dicts and returns (product_id, quantity) pairs in cart order."""
    if not lines:
        raise ValidationError("Sale must contain at least one item.")

    cart = []
    for number, line in enumerate(lines, start=1):
        if isinstance(line, dict):
            product_id, quantity = line.get("product_id"), line.get("quantity")
        else:
            product_id, quantity = getattr(line, "product_id", None), getattr(line, "quantity", None)

        if not product_id:
            raise ValidationError(f"Line {number} has no product.")
        # bool is an int subclass; True is not a quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(
                f"Line {number}: quantity must be a whole number of at least 1, got {quantity!r}.",
                product_id=str(product_id),
            )
        cart.append((str(product_id), quantity))
    return cart


def _normalize_idempotency_key(idempotency_key: Optional[str]) -> Optional[str]:
    """Blank keys mean no key; over-long keys are rejected before they reach the column."""
    if idempotency_key is None:
        return None
    key = str(idempotency_key).strip()
    if not key:
        return None
    if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise ValidationError(f"Idempotency key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters.")
    return key


def _required_quantities(cart: List[CartEntry]) -> Dict[str, int]:
    # A product may appear on more than one line; stock must cover the sum
    required: Dict[str, int] = {}
    for product_id, quantity in cart:
        required[product_id] = required.get(product_id, 0) + quantity
    return required


def _apply_statement_timeout(db: Session, timeout: float):
    if db.get_bind().dialect.name == "postgresql":
        # SET LOCAL does not take bind parameters; the value is an int we built
        milliseconds = max(1, int(timeout * 1000))
        db.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))


def _check_deadline(started: float, timeout: float):
    if time.monotonic() - started >= timeout:
        raise StorageError(f"Sale commit exceeded its {timeout:g}s deadline and was rolled back.")


def _find_by_idempotency_key(db: Session, tenant_id: str, idempotency_key: str) -> Optional[Sale]:
    return db.query(Sale).options(selectinload(Sale.items)).filter(
        Sale.tenant_id == tenant_id,
        Sale.idempotency_key == idempotency_key,
    ).first()


def _check_student(db: Session, tenant_id: str, student_id: str):
    found = db.query(Student.id).filter(Student.id == student_id, Student.tenant_id == tenant_id).first()
    if found is None:
        raise ValidationError(f"Student {student_id} not found.")


def _lock_products(db: Session, tenant_id: str, product_ids) -> Dict[str, Product]:
    """
    Re-read the cart's products inside the transaction.

    Rows are locked FOR UPDATE in id order so two commits touching the same
    products always queue instead of deadlocking. populate_existing() replaces
    anything the session already cached with what the database holds now.
    """
    rows = (
        db.query(Product)
        .filter(Product.id.in_(sorted(product_ids)), Product.tenant_id == tenant_id)
        .order_by(Product.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {product.id: product for product in rows}


def _validate_cart(products: Dict[str, Product], cart: List[CartEntry], required: Dict[str, int]):
    for product_id, _ in cart:
        product = products.get(product_id)
        # Products of other tenants are reported exactly like missing ones
        if product is None:
            raise ProductUnavailableError(f"Product {product_id} not found.", product_id=product_id)
        if not product.is_active:
            raise ProductUnavailableError(
                f"Product '{product.name}' is discontinued and cannot be sold.", product_id=product_id
            )
        if product.stock_quantity < required[product_id]:
            raise InsufficientStockError(
                f"Insufficient stock for product '{product.name}'. "
                f"Available: {product.stock_quantity}, Requested: {required[product_id]}",
                product_id=product_id,
                available=product.stock_quantity,
                requested=required[product_id],
            )


def _build_sale(tenant_id, student_id, created_by, method, idempotency_key, cart, products) -> Sale:
    sale = Sale(
        tenant_id=tenant_id,
        student_id=student_id,
        created_by=created_by,
        payment_method=method,
        idempotency_key=idempotency_key,
    )
    total = Decimal("0.00")
    for position, (product_id, quantity) in enumerate(cart):
        # Current catalogue price; prices sent by the client are never used
        unit_price = Decimal(products[product_id].price).quantize(CENTS, rounding=ROUND_HALF_UP)
        line_total = (unit_price * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)
        total += line_total
        sale.items.append(SaleItem(
            product_id=product_id,
            position=position,
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total,
        ))
    sale.total_amount = total
    return sale


def _decrement_stock(db: Session, tenant_id: str, sale: Sale, products: Dict[str, Product],
                     required: Dict[str, int], low_stock_threshold: int, created_by: str):
    for product_id in sorted(required):
        quantity = required[product_id]
        product = products[product_id]
        # Guarded decrement: matches nothing if stock moved below the quantity since validation
        result = db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.tenant_id == tenant_id,
                Product.stock_quantity >= quantity,
            )
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError(
                f"Stock for product '{product.name}' changed while the sale was being recorded.",
                product_id=product_id,
            )

        db.refresh(product, attribute_names=["stock_quantity"])
        new_stock = product.stock_quantity
        product.status = derive_product_status(new_stock, low_stock_threshold)
        product.updated_by = created_by

        db.add(ProductStockAudit(
            product_id=product_id,
            tenant_id=tenant_id,
            change_type="sale",
            change_amount=-quantity,
            old_quantity=new_stock + quantity,
            new_quantity=new_stock,
            changed_by=created_by,
            note=f"Sold via sale {sale.id}",
        ))
    db.flush()


def _build_result(sale: Sale, products, replayed: bool = False) -> SaleCommitResult:
    return SaleCommitResult(
        sale=SaleSchema.model_validate(sale),
        products=[ProductStock.model_validate(product) for product in products],
        replayed=replayed,
    )


def _replay(db: Session, existing: Sale) -> SaleCommitResult:
    product_ids = {item.product_id for item in existing.items}
    products = db.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id).all()
    result = _build_result(existing, products, replayed=True)
    db.rollback()
    return result


def commit_sale(
    db: Session,
    tenant_id: str,
    payment_method,
    lines,
    created_by: str,
    student_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    low_stock_threshold: Optional[int] = None,
    timeout: Optional[float] = None,
) -> SaleCommitResult:
    """
    Validate a cart against current inventory and record it as one atomic sale.

    The session must not carry uncommitted work: the commit (or rollback)
    issued here ends the session's transaction.

    Args:
        db: Session bound to the tenant's database.
        tenant_id: Tenant the caller belongs to. Every read and write is filtered by it.
        payment_method: PaymentMethod or its value ("cash", "credit", "debit", "pix").
        lines: Cart lines (CartLine models or dicts with product_id and quantity).
        created_by: Identifier of the user recording the sale.
        student_id: Optional student taking part in the sale.
        idempotency_key: Optional client key; a repeated key returns the original sale.
        low_stock_threshold: Overrides the tenant's configured low-stock floor.
        timeout: Deadline in seconds; defaults to SALE_COMMIT_TIMEOUT_SECONDS.

    Returns:
        SaleCommitResult with the persisted sale and the final stock of every touched product.

    Raises:
        ValidationError: malformed cart, unknown payment method or student. Nothing is written.
        ProductUnavailableError: product missing, owned by another tenant or discontinued.
        InsufficientStockError: a product has less stock than the cart asks for.
        ConcurrencyConflictError: stock changed between validation and write; retry the whole call.
        StorageError: database failure or deadline expiry; safe to retry.
    """
    logger.info(f"Sale received for tenant {tenant_id} by {created_by}: {len(lines or [])} line(s)")
    state = "Validating"
    try:
        if not tenant_id:
            raise ValidationError("tenant_id is required.")
        if not created_by:
            raise ValidationError("created_by is required.")
        method = _parse_payment_method(payment_method)
        cart = _normalize_lines(lines)
        idempotency_key = _normalize_idempotency_key(idempotency_key)
    except ValidationError as e:
        # Rejected before the database is touched
        _log_failure(state, tenant_id, e)
        raise
    required = _required_quantities(cart)
    timeout = SALE_COMMIT_TIMEOUT_SECONDS if timeout is None else timeout
    started = time.monotonic()

    try:
        _apply_statement_timeout(db, timeout)

        if idempotency_key:
            existing = _find_by_idempotency_key(db, tenant_id, idempotency_key)
            if existing is not None:
                logger.info(f"Sale {existing.id} replayed for idempotency key '{idempotency_key}' (tenant {tenant_id})")
                return _replay(db, existing)

        if low_stock_threshold is None:
            low_stock_threshold = get_low_stock_threshold(db, tenant_id)
        if student_id:
            _check_student(db, tenant_id, student_id)

        products = _lock_products(db, tenant_id, required.keys())
        _validate_cart(products, cart, required)

        state = "Committing"
        sale = _build_sale(tenant_id, student_id, created_by, method, idempotency_key, cart, products)
        db.add(sale)
        db.flush()
        _decrement_stock(db, tenant_id, sale, products, required, low_stock_threshold, created_by)
        # Captured before commit so it reflects this transaction's own writes
        result = _build_result(sale, [products[product_id] for product_id in sorted(required)])

        _check_deadline(started, timeout)
        db.commit()
    except SaleCommitError as e:
        db.rollback()
        _log_failure(state, tenant_id, e)
        raise
    except IntegrityError as e:
        db.rollback()
        if idempotency_key and _find_by_idempotency_key(db, tenant_id, idempotency_key) is not None:
            # A simultaneous submission with the same key won; a retry will replay it
            error = ConcurrencyConflictError(f"A sale with idempotency key '{idempotency_key}' was recorded concurrently.")
        else:
            error = StorageError(f"Sale rejected by a database constraint: {e.orig}")
        _log_failure(state, tenant_id, error)
        raise error from e
    except DBAPIError as e:
        db.rollback()
        sqlstate = getattr(e.orig, "pgcode", None)
        if sqlstate in CONFLICT_SQLSTATES:
            error = ConcurrencyConflictError("The database aborted the sale because of a concurrent update.")
        elif sqlstate in TIMEOUT_SQLSTATES:
            error = StorageError(f"Sale commit exceeded its {timeout:g}s deadline and was rolled back.")
        else:
            error = StorageError(f"Database error while recording sale: {e.orig}")
        _log_failure(state, tenant_id, error)
        raise error from e
    except SQLAlchemyError as e:
        db.rollback()
        error = StorageError(f"Database error while recording sale: {e}")
        _log_failure(state, tenant_id, error)
        raise error from e
    except Exception:
        db.rollback()
        logger.exception(f"Unexpected error while recording sale for tenant {tenant_id}; rolled back")
        raise

    logger.info(
        f"Sale {result.sale.id} committed for tenant {tenant_id} by {created_by}: "
        f"total {result.sale.total_amount}, {len(cart)} line(s)"
    )
    return result


def _log_failure(state: str, tenant_id: str, error: SaleCommitError):
    outcome = "Rejected" if state == "Validating" else "RolledBack"
    logger.warning(f"Sale {outcome} for tenant {tenant_id} [{error.code}]: {error.message}")


def commit_sale_with_retry(db: Session, *args, retries: int = 1, **kwargs) -> SaleCommitResult:
    """Run commit_sale, re-running it from validation after a ConcurrencyConflictError."""
    attempt = 0
    while True:
        try:
            return commit_sale(db, *args, **kwargs)
        except ConcurrencyConflictError as e:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info(f"Retrying sale commit after conflict (attempt {attempt + 1}): {e.message}")


def get_sale(db: Session, sale_id: str, tenant_id: str) -> Optional[Sale]:
    return db.query(Sale).options(selectinload(Sale.items)).filter(
        Sale.id == sale_id, Sale.tenant_id == tenant_id
    ).first()


def get_sales(
    db: Session,
    tenant_id: str,
    student_id: Optional[str] = None,
    payment_method: Optional[PaymentMethod] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Sale]:
    query = db.query(Sale).filter(Sale.tenant_id == tenant_id)

    if student_id:
        query = query.filter(Sale.student_id == student_id)
    if payment_method:
        query = query.filter(Sale.payment_method == payment_method)
    if start_date:
        query = query.filter(Sale.created_at >= start_date)
    if end_date:
        # end_date is inclusive
        query = query.filter(Sale.created_at < end_date + timedelta(days=1))

    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).options(
        selectinload(Sale.items)
    ).offset(skip).limit(limit).all()
