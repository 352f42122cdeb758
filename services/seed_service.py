"""Seeding of the default roles and permissions.

Seeding is idempotent: existing roles, permissions and assignments are left
alone and only missing rows are inserted.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.role import Permission, Role, RolePermission

logger = logging.getLogger(__name__)

DEFAULT_PERMISSIONS = [
    "create_user",
    "manage_inventory",
    "view_reports",
    "delete_user",
    "edit_settings",
    "register_sample",
    "view_sample_details",
    "update_sample_status",
    "generate_barcode",
    "manage_storage_locations",
    "view_sample_lifecycle",
    "manage_chain_of_custody",
    "manage_sample_types",
    "manage_sources",
    "view_all_samples",
    "view_tests",
    "manage_tests",
    "request_sample_tests",
    "enter_test_results",
    "validate_test_results",
    "approve_test_results",
]

RESEARCHER_PERMISSIONS = [
    "view_reports",
    "manage_inventory",
    "register_sample",
    "view_sample_details",
    "update_sample_status",
    "generate_barcode",
    "view_sample_lifecycle",
    "manage_chain_of_custody",
    "view_tests",
    "request_sample_tests",
    "enter_test_results",
]

LAB_MANAGER_PERMISSIONS = RESEARCHER_PERMISSIONS + [
    "create_user",
    "manage_storage_locations",
    "manage_sample_types",
    "manage_sources",
    "view_all_samples",
    "manage_tests",
    "validate_test_results",
    "approve_test_results",
]

DEFAULT_ROLE_PERMISSIONS: dict[str, list[str]] = {
    "administrator": DEFAULT_PERMISSIONS,
    "lab_manager": LAB_MANAGER_PERMISSIONS,
    "researcher": RESEARCHER_PERMISSIONS,
}


async def seed_roles_and_permissions(
    session: AsyncSession,
    role_permissions: dict[str, list[str]] | None = None,
) -> dict[str, Role]:
    """
    Ensure the default roles and permissions exist.

    Args:
        session: Database session
        role_permissions: Mapping of role name to permission names
            (defaults to ``DEFAULT_ROLE_PERMISSIONS``)

    Returns:
        Mapping of role name to Role
    """
    role_permissions = role_permissions or DEFAULT_ROLE_PERMISSIONS

    permission_names = sorted({name for names in role_permissions.values() for name in names})
    result = await session.execute(select(Permission).where(Permission.name.in_(permission_names)))
    permissions = {p.name: p for p in result.scalars().all()}
    for name in permission_names:
        if name not in permissions:
            permissions[name] = Permission(name=name)
            session.add(permissions[name])

    result = await session.execute(select(Role).where(Role.name.in_(list(role_permissions))))
    roles = {r.name: r for r in result.scalars().all()}
    for name in role_permissions:
        if name not in roles:
            roles[name] = Role(name=name)
            session.add(roles[name])

    await session.flush()

    result = await session.execute(select(RolePermission))
    existing = {(rp.role_id, rp.permission_id) for rp in result.scalars().all()}
    added = 0
    for role_name, names in role_permissions.items():
        role_id = roles[role_name].id
        for name in names:
            key = (role_id, permissions[name].id)
            if key not in existing:
                session.add(RolePermission(role_id=key[0], permission_id=key[1]))
                existing.add(key)
                added += 1

    await session.commit()
    logger.info(
        "Seeded %d role(s), %d permission(s), %d new assignment(s)",
        len(roles),
        len(permissions),
        added,
    )
    return roles
