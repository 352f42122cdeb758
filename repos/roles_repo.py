"""Repository for Role and Permission database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.role import Permission, Role, RolePermission


async def get_by_name(session: AsyncSession, *, name: str) -> Role | None:
    """
    Get a role by its unique name.

    Args:
        session: Database session
        name: Role name

    Returns:
        Role if found, None otherwise
    """
    result = await session.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def get_by_id(session: AsyncSession, *, role_id: int) -> Role | None:
    """Get a role by ID."""
    result = await session.execute(select(Role).where(Role.id == role_id))
    return result.scalar_one_or_none()


async def list_permission_names(session: AsyncSession, *, role_name: str) -> set[str]:
    """
    List the permission names assigned to a role.

    Unknown roles simply yield an empty set.

    Args:
        session: Database session
        role_name: Role name

    Returns:
        Set of permission names
    """
    query = (
        select(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .where(Role.name == role_name)
    )
    result = await session.execute(query)
    return set(result.scalars().all())


async def role_has_any(session: AsyncSession, *, role_name: str, names: list[str]) -> bool:
    """
    Check whether a role holds at least one of the given permissions.

    Args:
        session: Database session
        role_name: Role name
        names: Permission names to test

    Returns:
        True if any of the permissions is assigned to the role
    """
    if not names:
        return False
    query = (
        select(Permission.id)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .where(Role.name == role_name, Permission.name.in_(names))
        .limit(1)
    )
    result = await session.execute(query)
    return result.first() is not None
