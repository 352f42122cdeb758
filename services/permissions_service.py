"""Service layer for role/permission resolution.

Resolution is read-only and fails closed: an unknown role has no
permissions, and lookups never raise for a missing role.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from api.principal import Principal
from repos import roles_repo
from services.errors import ForbiddenError

logger = logging.getLogger(__name__)


async def get_role_permissions(session: AsyncSession, role_name: str) -> set[str]:
    """
    Get every permission name assigned to a role.

    Args:
        session: Database session
        role_name: Role name

    Returns:
        Set of permission names (empty for an unknown role)
    """
    if not role_name:
        return set()
    return await roles_repo.list_permission_names(session, role_name=role_name)


async def has_permission(session: AsyncSession, role_name: str, capability: str) -> bool:
    """Return True if the role holds the capability."""
    return await has_any_permission(session, role_name, [capability])


async def has_any_permission(
    session: AsyncSession,
    role_name: str,
    capabilities: list[str],
) -> bool:
    """
    Return True if the role holds at least one of the capabilities.

    An empty capability list is never satisfied.
    """
    if not role_name or not capabilities:
        return False
    return await roles_repo.role_has_any(session, role_name=role_name, names=list(capabilities))


async def require_permission(
    session: AsyncSession,
    principal: Principal,
    *capabilities: str,
) -> None:
    """
    Ensure the principal holds at least one of the listed capabilities.

    Args:
        session: Database session
        principal: Acting principal
        *capabilities: Acceptable capabilities (any one suffices)

    Raises:
        ForbiddenError: If none of the capabilities is held
    """
    if await has_any_permission(session, principal.role_name, list(capabilities)):
        return
    logger.warning(
        "Permission denied for user %s (role %r): needs one of %s",
        principal.principal_id,
        principal.role_name,
        ", ".join(capabilities),
    )
    if len(capabilities) == 1:
        raise ForbiddenError(f"Permission '{capabilities[0]}' is required")
    raise ForbiddenError(f"One of the permissions {', '.join(capabilities)} is required")
