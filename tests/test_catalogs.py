import pytest

from conftest import build_route, order_payload
from logistica_common.errors import ConflictError, NotFoundError
from logistica_api import models, schemas
from logistica_api.crud import catalogs as crud
from logistica_api.crud import orders as crud_orders


async def tipo_carga(db, tenant_id, nombre="Granel"):
    return await crud.create_catalog_item(db, models.TipoCarga, tenant_id, schemas.CatalogItemCreate(nombre=nombre))


class TestCatalogItems:
    async def test_get_and_isolation(self, db, tenant_a, tenant_b):
        item = await tipo_carga(db, tenant_a.tenant_id)

        assert (await crud.get_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, item.id)).nombre == "Granel"
        with pytest.raises(NotFoundError):
            await crud.get_catalog_item(db, models.TipoCarga, tenant_b.tenant_id, item.id)
        # Un id de tipo de carga no sirve como tipo de servicio
        with pytest.raises(NotFoundError):
            await crud.get_catalog_item(db, models.TipoServicio, tenant_a.tenant_id, item.id)

    async def test_update_name_and_description(self, db, tenant_a):
        item = await tipo_carga(db, tenant_a.tenant_id)
        updated = await crud.update_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, item.id, schemas.CatalogItemUpdate(
            nombre="Granel seco", descripcion="Sin refrigeración"
        ))
        assert (updated.nombre, updated.descripcion) == ("Granel seco", "Sin refrigeración")

    async def test_update_to_taken_name_conflicts(self, db, tenant_a):
        await tipo_carga(db, tenant_a.tenant_id, "Pallets")
        item = await tipo_carga(db, tenant_a.tenant_id)

        with pytest.raises(ConflictError):
            await crud.update_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, item.id, schemas.CatalogItemUpdate(
                nombre="pallets"
            ))
        # Conservar su propio nombre no es conflicto
        same = await crud.update_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, item.id, schemas.CatalogItemUpdate(
            nombre="GRANEL"
        ))
        assert same.nombre == "GRANEL"

    async def test_deactivate_hides_from_active_listing(self, db, tenant_a):
        item = await tipo_carga(db, tenant_a.tenant_id)
        await crud.set_catalog_item_active(db, models.TipoCarga, tenant_a.tenant_id, item.id, False)

        assert await crud.get_catalog_items(db, models.TipoCarga, tenant_a.tenant_id) == []
        inactive = await crud.get_catalog_items(db, models.TipoCarga, tenant_a.tenant_id, activo=False)
        assert [i.id for i in inactive] == [item.id]

    async def test_unused_item_is_deleted(self, db, tenant_a):
        item = await tipo_carga(db, tenant_a.tenant_id)
        await crud.delete_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, item.id)

        with pytest.raises(NotFoundError):
            await crud.get_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, item.id)

    async def test_item_used_by_order_cannot_be_deleted(self, db, tenant_a, comuna_id):
        route = await build_route(db, tenant_a.tenant_id, comuna_id)
        await crud_orders.create_order(db, tenant_a.tenant_id, order_payload(route))

        with pytest.raises(ConflictError):
            await crud.delete_catalog_item(db, models.TipoCarga, tenant_a.tenant_id, route.tipo_carga_id)
        with pytest.raises(ConflictError):
            await crud.delete_catalog_item(db, models.TipoServicio, tenant_a.tenant_id, route.tipo_servicio_id)

        # Retirarlo sí se puede: la orden conserva su referencia
        retired = await crud.set_catalog_item_active(db, models.TipoCarga, tenant_a.tenant_id, route.tipo_carga_id, False)
        assert retired.activo is False


class TestCatalogEndpoints:
    async def test_tipos_carga_lifecycle(self, client, tenant_a, tenant_b):
        created = await client.post("/api/tipos-carga", json={"nombre": "Granel"}, headers=tenant_a.headers)
        assert created.status_code == 201
        item_id = created.json()["id"]

        read = await client.get(f"/api/tipos-carga/{item_id}", headers=tenant_a.headers)
        assert read.json()["nombre"] == "Granel"
        foreign = await client.get(f"/api/tipos-carga/{item_id}", headers=tenant_b.headers)
        assert foreign.status_code == 404

        updated = await client.put(
            f"/api/tipos-carga/{item_id}", json={"descripcion": "Sin envase"}, headers=tenant_a.headers
        )
        assert updated.status_code == 200
        assert updated.json()["descripcion"] == "Sin envase"

        deactivated = await client.patch(f"/api/tipos-carga/{item_id}/deactivate", headers=tenant_a.headers)
        assert deactivated.json()["activo"] is False
        activated = await client.post(f"/api/tipos-carga/{item_id}/activate", headers=tenant_a.headers)
        assert activated.json()["activo"] is True

        deleted = await client.delete(f"/api/tipos-carga/{item_id}", headers=tenant_a.headers)
        assert deleted.status_code == 204
        gone = await client.get(f"/api/tipos-carga/{item_id}", headers=tenant_a.headers)
        assert gone.status_code == 404

    async def test_tipos_servicio_name_conflict_is_409(self, client, tenant_a):
        await client.post("/api/tipos-servicio", json={"nombre": "Express"}, headers=tenant_a.headers)
        other = await client.post("/api/tipos-servicio", json={"nombre": "Normal"}, headers=tenant_a.headers)

        response = await client.put(
            f"/api/tipos-servicio/{other.json()['id']}", json={"nombre": "express"}, headers=tenant_a.headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    async def test_delete_in_use_is_409(self, client, db, tenant_a, comuna_id):
        route = await build_route(db, tenant_a.tenant_id, comuna_id)
        await crud_orders.create_order(db, tenant_a.tenant_id, order_payload(route))

        response = await client.delete(f"/api/tipos-servicio/{route.tipo_servicio_id}", headers=tenant_a.headers)
        assert response.status_code == 409
