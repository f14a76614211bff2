import pytest

from logistica_common.errors import ConflictError
from logistica_common.permissions import Modulo, TipoAccion
from logistica_api import models, schemas
from logistica_api.crud import tenants as crud_tenants
from logistica_api.services.provisioning import provision_tenant


def tenant_payload(nombre="Acme", rut="33.333.333-3", **extra):
    return {"nombre": nombre, "rut": rut, "contacto": "Ana Díaz", "tipo_tenant": "SHIPPER", **extra}


class TestTenantRutLifecycle:
    async def test_create_store_display_and_duplicate(self, client, admin_tenant):
        response = await client.post("/api/tenants", json=tenant_payload(), headers=admin_tenant.headers)
        assert response.status_code == 201
        created = response.json()
        assert created["rut"] == "33.333.333-3"

        duplicate = await client.post(
            "/api/tenants", json=tenant_payload(nombre="Acme2", rut="33333333-3"), headers=admin_tenant.headers
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["statusCode"] == 409
        assert duplicate.json()["error"] == "Conflict"

    async def test_rut_is_stored_without_dots(self, db):
        result = await provision_tenant(db, schemas.TenantCreate(**tenant_payload()))
        stored = await crud_tenants.get_tenant(db, result.tenant.id)
        assert stored.rut == "33333333-3"
        assert schemas.TenantResponse.model_validate(stored).model_dump()["rut"] == "33.333.333-3"

    async def test_duplicate_rut_conflicts_at_service_level(self, db):
        await provision_tenant(db, schemas.TenantCreate(**tenant_payload()))
        with pytest.raises(ConflictError):
            await provision_tenant(db, schemas.TenantCreate(**tenant_payload(nombre="Acme2", rut="33333333-3")))

    async def test_invalid_check_digit_is_422(self, client, admin_tenant):
        response = await client.post(
            "/api/tenants", json=tenant_payload(rut="33.333.333-4"), headers=admin_tenant.headers
        )
        assert response.status_code == 422


class TestProvisioning:
    async def test_creates_roles_profile_and_admin_user(self, db):
        result = await provision_tenant(db, schemas.TenantCreate(
            **tenant_payload(administrador={"correo": "ana@acme.cl", "nombre": "Ana Díaz"})
        ))
        stats = await crud_tenants.get_tenant_stats(db, result.tenant.id)

        assert stats["total_usuarios"] == 1
        assert stats["total_perfiles"] == 1
        assert stats["total_roles"] == len(Modulo) * len(TipoAccion)
        assert result.perfil.tipo == models.TipoPerfil.ADMINISTRADOR

    async def test_admin_without_password_is_pending(self, db):
        result = await provision_tenant(db, schemas.TenantCreate(
            **tenant_payload(administrador={"correo": "ana@acme.cl", "nombre": "Ana Díaz"})
        ))
        assert result.usuario.hashed_password is None
        assert result.usuario.estado == models.EstadoUsuario.PENDIENTE

    async def test_admin_with_password_is_active(self, db):
        result = await provision_tenant(db, schemas.TenantCreate(
            **tenant_payload(administrador={"correo": "ana@acme.cl", "nombre": "Ana Díaz", "password": "clave-segura"})
        ))
        assert result.usuario.estado == models.EstadoUsuario.ACTIVO

    async def test_duplicate_admin_email_aborts_everything(self, db, tenant_a):
        with pytest.raises(ConflictError):
            await provision_tenant(db, schemas.TenantCreate(
                **tenant_payload(administrador={"correo": tenant_a.correo, "nombre": "Otra Persona"})
            ))
        assert await crud_tenants.get_tenant_by_rut(db, "33333333-3") is None


class TestDeactivation:
    async def test_tenant_with_active_users_cannot_be_deactivated(self, db, tenant_a):
        with pytest.raises(ConflictError):
            await crud_tenants.set_tenant_active(db, tenant_a.tenant_id, False)

    async def test_tenant_without_users_can_be_deactivated(self, db):
        result = await provision_tenant(db, schemas.TenantCreate(**tenant_payload()))
        tenant = await crud_tenants.set_tenant_active(db, result.tenant.id, False)
        assert tenant.activo is False


class TestAdminOnly:
    async def test_non_admin_tenant_cannot_list_tenants(self, client, tenant_a):
        response = await client.get("/api/tenants", headers=tenant_a.headers)
        assert response.status_code == 403

    async def test_admin_tenant_lists_tenants(self, client, admin_tenant, tenant_a):
        response = await client.get("/api/tenants", headers=admin_tenant.headers)
        assert response.status_code == 200
        ruts = {t["rut"] for t in response.json()}
        assert ruts == {"76.354.771-K", "11.111.111-1"}

    async def test_any_tenant_reads_its_own_tenant(self, client, tenant_a):
        response = await client.get("/api/tenants/current", headers=tenant_a.headers)
        assert response.status_code == 200
        assert response.json()["id"] == tenant_a.tenant_id
