import pytest

from logistica_common.errors import ConflictError, InvalidReferenceError, NotFoundError
from logistica_common.permissions import Modulo, TipoAccion
from logistica_api import models, schemas
from logistica_api.crud import profiles as crud_profiles
from logistica_api.crud import roles as crud_roles
from logistica_api.crud import users as crud_users


def role_payload(codigo="aprobar_ordenes", modulo="ORDENES", accion="editar"):
    return schemas.RoleCreate(codigo=codigo, nombre="Aprobar órdenes", modulo=modulo, tipo_accion=accion)


class TestRoles:
    def test_vocabulary_is_normalized(self):
        role = role_payload()
        assert role.modulo == Modulo.ORDENES
        assert role.tipo_accion == TipoAccion.EDITAR

    async def test_code_is_unique_per_tenant(self, db, tenant_a, tenant_b):
        await crud_roles.create_role(db, tenant_a.tenant_id, role_payload())
        with pytest.raises(ConflictError):
            await crud_roles.create_role(db, tenant_a.tenant_id, role_payload())

        other = await crud_roles.create_role(db, tenant_b.tenant_id, role_payload())
        assert other.tenant_id == tenant_b.tenant_id

    async def test_roles_by_ids_ignores_other_tenants(self, db, tenant_a, tenant_b):
        own = await crud_roles.create_role(db, tenant_a.tenant_id, role_payload())
        foreign = await crud_roles.create_role(db, tenant_b.tenant_id, role_payload())

        roles = await crud_roles.get_roles_by_ids(db, tenant_a.tenant_id, [own.id, foreign.id])
        assert [r.id for r in roles] == [own.id]

    async def test_get_role_from_other_tenant_is_not_found(self, db, tenant_a, tenant_b):
        role = await crud_roles.create_role(db, tenant_a.tenant_id, role_payload())
        with pytest.raises(NotFoundError):
            await crud_roles.get_role(db, tenant_b.tenant_id, role.id)


class TestProfiles:
    async def test_name_is_unique_ignoring_case(self, db, tenant_a):
        await crud_profiles.create_profile(db, tenant_a.tenant_id, schemas.ProfileCreate(nombre="Operador"))
        with pytest.raises(ConflictError):
            await crud_profiles.create_profile(db, tenant_a.tenant_id, schemas.ProfileCreate(nombre="operador"))

    async def test_assign_roles_replaces_the_set(self, db, tenant_a):
        profile = await crud_profiles.create_profile(db, tenant_a.tenant_id, schemas.ProfileCreate(nombre="Operador"))
        ver = await crud_roles.get_role_by_code(db, tenant_a.tenant_id, "ver_clientes")
        crear = await crud_roles.get_role_by_code(db, tenant_a.tenant_id, "crear_clientes")

        await crud_profiles.assign_roles(db, tenant_a.tenant_id, profile.id, [ver.id, crear.id])
        detail = await crud_profiles.assign_roles(db, tenant_a.tenant_id, profile.id, [ver.id])

        assert detail["roles"] == ["ver_clientes"]

    async def test_assign_foreign_role_is_rejected_entirely(self, db, tenant_a, tenant_b):
        profile = await crud_profiles.create_profile(db, tenant_a.tenant_id, schemas.ProfileCreate(nombre="Operador"))
        ver = await crud_roles.get_role_by_code(db, tenant_a.tenant_id, "ver_clientes")
        foreign = await crud_roles.get_role_by_code(db, tenant_b.tenant_id, "ver_tenants")

        with pytest.raises(InvalidReferenceError):
            await crud_profiles.assign_roles(db, tenant_a.tenant_id, profile.id, [ver.id, foreign.id])
        assert await crud_profiles.get_assigned_role_ids(db, tenant_a.tenant_id, profile.id) == []

    async def test_available_roles_mark_assigned(self, db, tenant_a):
        profile = await crud_profiles.create_profile(db, tenant_a.tenant_id, schemas.ProfileCreate(nombre="Operador"))
        ver = await crud_roles.get_role_by_code(db, tenant_a.tenant_id, "ver_ordenes")
        await crud_profiles.assign_roles(db, tenant_a.tenant_id, profile.id, [ver.id])

        available = await crud_profiles.get_available_roles(db, tenant_a.tenant_id, profile.id)

        assert len(available) == len(Modulo) * len(TipoAccion)
        assert [r["codigo"] for r in available if r["asignado"]] == ["ver_ordenes"]

    async def test_profile_in_use_cannot_be_deactivated(self, db, tenant_a):
        with pytest.raises(ConflictError):
            await crud_profiles.deactivate_profile(db, tenant_a.tenant_id, tenant_a.profile_id)

    async def test_unused_profile_can_be_deactivated(self, db, tenant_a):
        profile = await crud_profiles.create_profile(db, tenant_a.tenant_id, schemas.ProfileCreate(nombre="Temporal"))
        profile = await crud_profiles.deactivate_profile(db, tenant_a.tenant_id, profile.id)
        assert profile.activo is False


class TestUsers:
    async def test_user_without_password_is_pending(self, db, tenant_a):
        user = await crud_users.create_user(db, tenant_a.tenant_id, schemas.UserCreate(
            correo="Pedro@Andes.cl", nombre="Pedro Soto", perfil_id=tenant_a.profile_id, rut="7.654.321-6"
        ))
        assert user.correo == "pedro@andes.cl"
        assert user.rut == "7654321-6"
        assert user.estado == models.EstadoUsuario.PENDIENTE
        assert user.perfil.nombre == "Administrador"

    async def test_setting_password_activates_pending_user(self, db, tenant_a):
        user = await crud_users.create_user(db, tenant_a.tenant_id, schemas.UserCreate(
            correo="pedro@andes.cl", nombre="Pedro Soto", perfil_id=tenant_a.profile_id
        ))
        user = await crud_users.update_user(db, tenant_a.tenant_id, user.id, schemas.UserUpdate(password="secreta123"))
        assert user.estado == models.EstadoUsuario.ACTIVO

    async def test_email_is_unique_across_tenants(self, db, tenant_a, tenant_b):
        with pytest.raises(ConflictError):
            await crud_users.create_user(db, tenant_b.tenant_id, schemas.UserCreate(
                correo=tenant_a.correo, nombre="Copia", perfil_id=tenant_b.profile_id
            ))

    async def test_profile_from_other_tenant_is_rejected(self, db, tenant_a, tenant_b):
        with pytest.raises(InvalidReferenceError):
            await crud_users.create_user(db, tenant_b.tenant_id, schemas.UserCreate(
                correo="nuevo@biobio.cl", nombre="Nuevo", perfil_id=tenant_a.profile_id
            ))

    async def test_list_is_tenant_scoped(self, db, tenant_a, tenant_b):
        result = await crud_users.get_users(db, tenant_b.tenant_id)
        assert [u.correo for u in result["items"]] == [tenant_b.correo]
