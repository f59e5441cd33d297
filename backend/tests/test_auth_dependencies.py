"""
Tests for token validation and tenant resolution.
"""
import pytest
from fastapi import HTTPException
from starlette.requests import Request

from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id
from tests.conftest import make_token


def make_request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestGetCurrentUser:

    def test_valid_token(self):
        payload = get_current_user(make_request({"Authorization": f"Bearer {make_token('user-1')}"}))
        assert payload["sub"] == "user-1"
        assert get_user_identifier(payload) == "user-1"

    def test_missing_header(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(make_request({}))
        assert exc_info.value.status_code == 401

    def test_malformed_header(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(make_request({"Authorization": "Token abc"}))
        assert exc_info.value.status_code == 401

    def test_expired_token(self):
        token = make_token("user-1", expires_in=-60)
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(make_request({"Authorization": f"Bearer {token}"}))
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_secret(self):
        token = make_token("user-1", secret="not-the-project-secret-at-all-123")
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(make_request({"Authorization": f"Bearer {token}"}))
        assert exc_info.value.status_code == 401


class TestTenancy:

    def test_tenant_comes_from_profile(self, staff_profile, tenant):
        assert get_tenant_id(profile=staff_profile, x_tenant_id=None) == tenant.id

    def test_matching_header_is_accepted(self, staff_profile, tenant):
        assert get_tenant_id(profile=staff_profile, x_tenant_id=tenant.id) == tenant.id

    def test_other_tenant_header_is_rejected(self, staff_profile, other_tenant):
        with pytest.raises(HTTPException) as exc_info:
            get_tenant_id(profile=staff_profile, x_tenant_id=other_tenant.id)
        assert exc_info.value.status_code == 403

    def test_user_without_profile_is_forbidden(self, client, tenant):
        response = client.get("/products/", headers={"Authorization": f"Bearer {make_token('stranger')}"})
        assert response.status_code == 403
