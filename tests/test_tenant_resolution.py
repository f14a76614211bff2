from datetime import timedelta

import pytest

from logistica_common.errors import UnauthorizedOperation
from logistica_common.security import (
    resolve_tenant_id, UserPayload, get_current_user, create_access_token
)


class TestResolveTenantId:
    def test_prefers_snake_case_claim(self):
        claims = {"tenant_id": 1, "tenantId": 2, "tenant": {"id": 3}}
        assert resolve_tenant_id(claims) == 1

    def test_falls_back_to_camel_case(self):
        assert resolve_tenant_id({"tenantId": 2, "tenant": {"id": 3}}) == 2

    def test_falls_back_to_nested_tenant(self):
        assert resolve_tenant_id({"tenant": {"id": 3}}) == 3

    def test_zero_is_a_valid_tenant_reference(self):
        assert resolve_tenant_id({"tenant_id": 0}) == 0

    @pytest.mark.parametrize("claims", [
        None,
        {},
        {"sub": "x"},
        {"tenant_id": ""},
        {"tenant": "3"},
        {"tenant": {"name": "sin id"}},
    ])
    def test_missing_tenant_is_unauthorized(self, claims):
        with pytest.raises(UnauthorizedOperation) as exc:
            resolve_tenant_id(claims)
        assert exc.value.status_code == 401


class TestUserPayload:
    def test_from_claims_coerces_ids(self):
        user = UserPayload.from_claims({"sub": "ana@andes.cl", "tenantId": "7", "user_id": "3", "profileId": 5})
        assert user.tenant_id == 7
        assert user.user_id == 3
        assert user.profile_id == 5

    def test_from_claims_requires_subject(self):
        with pytest.raises(UnauthorizedOperation):
            UserPayload.from_claims({"tenant_id": 1})

    def test_from_claims_rejects_malformed_ids(self):
        with pytest.raises(UnauthorizedOperation):
            UserPayload.from_claims({"sub": "x", "tenant_id": "no-es-numero"})


class TestGetCurrentUser:
    def test_valid_token(self):
        token = create_access_token({"sub": "ana@andes.cl", "tenant_id": 4, "user_id": 9})
        user = get_current_user(token)
        assert user.sub == "ana@andes.cl"
        assert user.tenant_id == 4

    def test_token_without_tenant_is_rejected(self):
        token = create_access_token({"sub": "ana@andes.cl"})
        with pytest.raises(UnauthorizedOperation):
            get_current_user(token)

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": "ana@andes.cl", "tenant_id": 4}, expires_delta=timedelta(minutes=-5))
        with pytest.raises(UnauthorizedOperation):
            get_current_user(token)

    def test_garbage_token_is_rejected(self):
        with pytest.raises(UnauthorizedOperation):
            get_current_user("esto.no.es-un-jwt")
