import pytest

from logistica_common.errors import BadRequestError
from logistica_common.rut import compute_check_digit
from logistica_api import schemas
from logistica_api.crud.common import compute_offset, MAX_LIMIT
from logistica_api.crud.parties import clientes


class TestComputeOffset:
    def test_second_page_of_five_skips_five(self):
        assert compute_offset(2, 5) == 5

    def test_first_page_has_no_offset(self):
        assert compute_offset(1, 100) == 0

    @pytest.mark.parametrize("page, limit", [(0, 10), (-1, 10), (1, 0), (1, MAX_LIMIT + 1)])
    def test_out_of_range_is_rejected(self, page, limit):
        with pytest.raises(BadRequestError):
            compute_offset(page, limit)


async def _seed_clients(db, tenant_id, count):
    for i in range(count):
        body = str(10000000 + i)
        await clientes.create(db, tenant_id, schemas.ClientCreate(
            identidad={"tipo": "PERSONA", "nombre": f"Cliente {i:02d}"},
            rut=f"{body}-{compute_check_digit(body)}",
        ))


class TestPaginate:
    async def test_total_and_page_come_from_same_query(self, db, tenant_a):
        await _seed_clients(db, tenant_a.tenant_id, 12)

        result = await clientes.list(db, tenant_a.tenant_id, page=2, limit=5)

        assert result["total"] == 12
        assert result["page"] == 2
        assert result["limit"] == 5
        assert result["total_pages"] == 3
        assert [c.nombre for c in result["items"]] == [f"Cliente {i:02d}" for i in range(5, 10)]

    async def test_page_past_the_end_keeps_total(self, db, tenant_a):
        await _seed_clients(db, tenant_a.tenant_id, 3)

        result = await clientes.list(db, tenant_a.tenant_id, page=5, limit=2)

        assert result["items"] == []
        assert result["total"] == 3

    async def test_empty_tenant(self, db, tenant_a):
        result = await clientes.list(db, tenant_a.tenant_id, page=1, limit=10)
        assert result["items"] == []
        assert result["total"] == 0
        assert result["total_pages"] == 0

    async def test_limit_over_maximum_is_rejected(self, db, tenant_a):
        with pytest.raises(BadRequestError):
            await clientes.list(db, tenant_a.tenant_id, page=1, limit=101)


class TestPaginationOverHttp:
    async def test_limit_over_maximum_is_422(self, client, tenant_a):
        response = await client.get("/api/clients?limit=101", headers=tenant_a.headers)
        assert response.status_code == 422
        assert response.json()["statusCode"] == 422

    async def test_page_zero_is_422(self, client, tenant_a):
        response = await client.get("/api/clients?page=0", headers=tenant_a.headers)
        assert response.status_code == 422

    async def test_list_envelope(self, client, tenant_a):
        response = await client.get("/api/clients?page=1&limit=5", headers=tenant_a.headers)
        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0, "page": 1, "limit": 5, "total_pages": 0}
