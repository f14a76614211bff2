import pytest
import pytest_asyncio

from logistica_common.errors import ConflictError, InvalidReferenceError, NotFoundError
from logistica_api import models, schemas
from logistica_api.crud import contactos as crud
from logistica_api.crud import entidades as crud_entidades


@pytest_asyncio.fixture
async def entidad_id(db, tenant_a, persona):
    entidad = await crud_entidades.create_entidad(db, tenant_a.tenant_id, schemas.EntidadCreate(
        identidad=persona, rut="77777777-7", tipo_entidad=models.TipoEntidad.REMITENTE
    ))
    return entidad.id


def contacto_payload(comuna_id, entidad_id, rut="12.345.678-5", nombre="Marta Rojas", **extra):
    return schemas.ContactoCreate(
        nombre=nombre, rut=rut, comuna_id=comuna_id, entidad_id=entidad_id, cargo="Jefa de bodega", **extra
    )


class TestCreateContacto:
    async def test_creates_with_normalized_rut(self, db, tenant_a, comuna_id, entidad_id):
        contacto = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))

        assert contacto.rut == "12345678-5"
        assert contacto.es_persona is True
        assert contacto.activo is True
        assert contacto.entidad.nombre == "Juan Pérez"
        assert contacto.comuna.nombre == "Santiago"

    async def test_duplicate_rut_in_same_tenant_conflicts(self, db, tenant_a, comuna_id, entidad_id):
        await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        with pytest.raises(ConflictError):
            await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id, rut="12345678-5"))

    async def test_unknown_comuna_is_invalid_reference(self, db, tenant_a, entidad_id):
        with pytest.raises(InvalidReferenceError):
            await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(999, entidad_id))

    async def test_entity_from_other_tenant_is_invalid_reference(self, db, tenant_a, tenant_b, comuna_id, entidad_id):
        with pytest.raises(InvalidReferenceError):
            await crud.create_contacto(db, tenant_b.tenant_id, contacto_payload(comuna_id, entidad_id))
        assert (await crud.get_contactos(db, tenant_b.tenant_id))["total"] == 0


class TestContactoLookups:
    async def test_other_tenant_gets_not_found(self, db, tenant_a, tenant_b, comuna_id, entidad_id):
        contacto = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        with pytest.raises(NotFoundError):
            await crud.get_contacto(db, tenant_b.tenant_id, contacto.id)
        assert await crud.get_contacto_by_rut(db, tenant_b.tenant_id, "12345678-5") is None

    async def test_by_rut_accepts_dots(self, db, tenant_a, comuna_id, entidad_id):
        created = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        found = await crud.get_contacto_by_rut(db, tenant_a.tenant_id, "12.345.678-5")
        assert found.id == created.id

    async def test_by_entity_lists_only_active(self, db, tenant_a, comuna_id, entidad_id):
        first = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(
            comuna_id, entidad_id, rut="33.333.333-3", nombre="Andrés Vidal"
        ))
        await crud.set_contacto_active(db, tenant_a.tenant_id, first.id, False)

        contactos = await crud.get_contactos_by_entidad(db, tenant_a.tenant_id, entidad_id)
        assert [c.nombre for c in contactos] == ["Andrés Vidal"]

    async def test_list_filters_and_search(self, db, tenant_a, comuna_id, entidad_id):
        await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(
            comuna_id, entidad_id, rut="33.333.333-3", nombre="Transportes Vidal", es_persona=False
        ))

        result = await crud.get_contactos(db, tenant_a.tenant_id, search="bodega", es_persona=True)
        assert [c.nombre for c in result["items"]] == ["Marta Rojas"]

        result = await crud.get_contactos(db, tenant_a.tenant_id, search="33.333")
        assert [c.nombre for c in result["items"]] == ["Transportes Vidal"]


class TestUpdateContacto:
    async def test_update_to_taken_rut_conflicts(self, db, tenant_a, comuna_id, entidad_id):
        await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        other = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(
            comuna_id, entidad_id, rut="33.333.333-3", nombre="Andrés Vidal"
        ))
        with pytest.raises(ConflictError):
            await crud.update_contacto(db, tenant_a.tenant_id, other.id, schemas.ContactoUpdate(rut="12.345.678-5"))

    async def test_update_changes_fields_and_entity(self, db, tenant_a, comuna_id, entidad_id, organizacion):
        contacto = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        otra = await crud_entidades.create_entidad(db, tenant_a.tenant_id, schemas.EntidadCreate(
            identidad=organizacion, rut="88888888-8", tipo_entidad=models.TipoEntidad.DESTINATARIO
        ))

        updated = await crud.update_contacto(db, tenant_a.tenant_id, contacto.id, schemas.ContactoUpdate(
            cargo="Gerenta", entidad_id=otra.id
        ))
        assert updated.cargo == "Gerenta"
        assert updated.entidad.nombre == "Comercial Los Robles SpA"

    async def test_update_with_foreign_entity_is_rejected(self, db, tenant_a, tenant_b, comuna_id, entidad_id, persona):
        contacto = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))
        foreign = await crud_entidades.create_entidad(db, tenant_b.tenant_id, schemas.EntidadCreate(
            identidad=persona, rut="77777777-7"
        ))
        with pytest.raises(InvalidReferenceError):
            await crud.update_contacto(db, tenant_a.tenant_id, contacto.id, schemas.ContactoUpdate(entidad_id=foreign.id))

    async def test_soft_remove_and_activate(self, db, tenant_a, comuna_id, entidad_id):
        contacto = await crud.create_contacto(db, tenant_a.tenant_id, contacto_payload(comuna_id, entidad_id))

        removed = await crud.set_contacto_active(db, tenant_a.tenant_id, contacto.id, False)
        assert removed.activo is False
        assert (await crud.get_contactos(db, tenant_a.tenant_id, activo=False))["total"] == 1

        restored = await crud.set_contacto_active(db, tenant_a.tenant_id, contacto.id, True)
        assert restored.activo is True


class TestContactosEndpoints:
    async def test_crud_over_http(self, client, tenant_a, tenant_b, comuna_id, entidad_id):
        payload = {
            "nombre": "Marta Rojas", "rut": "12.345.678-5", "comuna_id": comuna_id, "entidad_id": entidad_id,
            "email": "marta@robles.cl"
        }
        created = await client.post("/api/contactos", json=payload, headers=tenant_a.headers)
        assert created.status_code == 201
        body = created.json()
        assert body["rut"] == "12345678-5"
        assert body["entidad"]["rut"] == "77777777-7"

        listed = await client.get("/api/contactos", headers=tenant_a.headers)
        assert listed.status_code == 200
        assert listed.json()["total"] == 1

        duplicate = await client.post("/api/contactos", json=payload, headers=tenant_a.headers)
        assert duplicate.status_code == 409

        by_rut = await client.get("/api/contactos/rut/12.345.678-5", headers=tenant_a.headers)
        assert by_rut.json()["id"] == body["id"]

        by_entity = await client.get(f"/api/contactos/entidad/{entidad_id}", headers=tenant_a.headers)
        assert [c["id"] for c in by_entity.json()] == [body["id"]]

        foreign = await client.get(f"/api/contactos/{body['id']}", headers=tenant_b.headers)
        assert foreign.status_code == 404

        removed = await client.delete(f"/api/contactos/{body['id']}", headers=tenant_a.headers)
        assert removed.json()["activo"] is False

    async def test_unknown_comuna_is_400(self, client, tenant_a, entidad_id):
        payload = {"nombre": "Marta Rojas", "rut": "12345678-5", "comuna_id": 999, "entidad_id": entidad_id}
        response = await client.post("/api/contactos", json=payload, headers=tenant_a.headers)
        assert response.status_code == 400
        assert response.json()["message"] == "La comuna indicada no existe"
