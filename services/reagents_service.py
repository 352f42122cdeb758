"""Service layer for Reagent stock."""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.principal import Principal
from models.reagent import Reagent, ReagentCreate, ReagentUpdate
from repos import reagent_orders_repo, reagents_repo
from services import permissions_service
from services.errors import ConflictError, InternalError, NotFoundError, ValidationError
from services.validators import parse_calendar_date

logger = logging.getLogger(__name__)


def _require_non_negative(value, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Invalid {field}. Must be a non-negative integer")
    return value


_UPDATABLE_FIELDS = (
    "name",
    "lot_number",
    "expiry_date",
    "manufacturer",
    "sds_link",
    "current_stock",
    "min_stock_level",
)


async def create_reagent(
    session: AsyncSession,
    *,
    principal: Principal,
    reagent_data: ReagentCreate,
) -> Reagent:
    """
    Register a reagent lot.

    Args:
        session: Database session
        principal: Acting principal
        reagent_data: Reagent payload

    Returns:
        The created reagent

    Raises:
        ForbiddenError: If the principal lacks ``manage_inventory``
        ValidationError: Missing name/lot, bad expiry date, or negative stock values
        ConflictError: If the lot number already exists
        InternalError: If the insert fails for any other reason
    """
    await permissions_service.require_permission(session, principal, "manage_inventory")

    if not reagent_data.name or not reagent_data.lot_number:
        raise ValidationError("Missing required fields: name, lot_number, expiry_date")
    expiry_date = parse_calendar_date(reagent_data.expiry_date, field="expiry_date")
    current_stock = _require_non_negative(reagent_data.current_stock, field="current_stock")
    min_stock_level = _require_non_negative(reagent_data.min_stock_level, field="min_stock_level")

    if await reagents_repo.get_by_lot_number(session, lot_number=reagent_data.lot_number):
        raise ConflictError("Lot number already exists")

    reagent = Reagent(
        name=reagent_data.name,
        lot_number=reagent_data.lot_number,
        expiry_date=expiry_date,
        manufacturer=reagent_data.manufacturer,
        sds_link=reagent_data.sds_link,
        current_stock=current_stock,
        min_stock_level=min_stock_level,
    )

    try:
        reagent = await reagents_repo.create(session, reagent)
        await session.commit()
        await session.refresh(reagent)
    except IntegrityError:
        # Another request inserted the same lot between the check and the insert
        await session.rollback()
        raise ConflictError("Lot number already exists")
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to create reagent lot %s", reagent_data.lot_number)
        raise InternalError("Failed to create reagent")

    logger.info("Reagent %s (lot %s) created", reagent.id, reagent.lot_number)
    return reagent


async def list_reagents(session: AsyncSession) -> list[Reagent]:
    """List all reagents. Open to every authenticated principal."""
    return await reagents_repo.list_all(session)


async def get_reagent(session: AsyncSession, *, reagent_id: int) -> Reagent:
    """
    Get a reagent by ID.

    Raises:
        NotFoundError: If the reagent does not exist
    """
    reagent = await reagents_repo.get_by_id(session, reagent_id=reagent_id)
    if not reagent:
        raise NotFoundError(f"Reagent {reagent_id} not found")
    return reagent


async def update_reagent(
    session: AsyncSession,
    *,
    principal: Principal,
    reagent_id: int,
    patch: ReagentUpdate,
) -> Reagent:
    """
    Apply a partial update to a reagent.

    Only fields explicitly present in ``patch`` are changed. Setting
    ``current_stock`` here replaces the stored value outright; it must still
    be non-negative.

    Args:
        session: Database session
        principal: Acting principal
        reagent_id: Reagent to update
        patch: Fields to change

    Returns:
        The updated reagent

    Raises:
        ForbiddenError: If the principal lacks ``manage_inventory``
        ValidationError: Empty patch, blank name/lot, bad expiry date, or
            negative stock values
        NotFoundError: If the reagent does not exist
        ConflictError: If the new lot number belongs to another reagent
        InternalError: If the update fails
    """
    await permissions_service.require_permission(session, principal, "manage_inventory")

    changes = {
        k: v for k, v in patch.model_dump(exclude_unset=True).items() if k in _UPDATABLE_FIELDS
    }
    if not changes:
        raise ValidationError("No fields provided for update")

    reagent = await reagents_repo.get_by_id(session, reagent_id=reagent_id, for_update=True)
    if not reagent:
        raise NotFoundError(f"Reagent {reagent_id} not found")

    values = {}
    for field in ("name", "lot_number"):
        if field in changes:
            if not changes[field] or not changes[field].strip():
                raise ValidationError(f"{field} cannot be empty")
            values[field] = changes[field]
    if "expiry_date" in changes:
        raw = changes["expiry_date"]
        values["expiry_date"] = (
            None if raw is None else parse_calendar_date(raw, field="expiry_date")
        )
    for field in ("current_stock", "min_stock_level"):
        if field in changes:
            values[field] = _require_non_negative(changes[field], field=field)
    for field in ("manufacturer", "sds_link"):
        if field in changes:
            values[field] = changes[field]

    lot_number = values.get("lot_number")
    if lot_number is not None and lot_number != reagent.lot_number:
        if await reagents_repo.get_by_lot_number(session, lot_number=lot_number):
            raise ConflictError("Lot number already exists")

    try:
        for field, value in values.items():
            setattr(reagent, field, value)
        await session.commit()
        await session.refresh(reagent)
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Lot number already exists")
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to update reagent %s", reagent_id)
        raise InternalError("Failed to update reagent")

    logger.info("Reagent %s updated (%s)", reagent_id, ", ".join(sorted(values)))
    return reagent


async def delete_reagent(session: AsyncSession, *, principal: Principal, reagent_id: int) -> None:
    """
    Delete a reagent that no order refers to.

    Raises:
        ForbiddenError: If the principal lacks ``manage_inventory``
        NotFoundError: If the reagent does not exist
        ConflictError: If any reagent order still references the reagent
        InternalError: If the delete fails
    """
    await permissions_service.require_permission(session, principal, "manage_inventory")

    reagent = await reagents_repo.get_by_id(session, reagent_id=reagent_id, for_update=True)
    if not reagent:
        raise NotFoundError(f"Reagent {reagent_id} not found")

    if await reagent_orders_repo.exists_for_reagent(session, reagent_id=reagent_id):
        raise ConflictError("Reagent has orders and cannot be deleted")

    try:
        await reagents_repo.delete(session, reagent)
        await session.commit()
    except IntegrityError:
        # An order was created for the reagent after the check above
        await session.rollback()
        raise ConflictError("Reagent has orders and cannot be deleted")
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to delete reagent %s", reagent_id)
        raise InternalError("Failed to delete reagent")

    logger.info("Reagent %s deleted by user %s", reagent_id, principal.principal_id)


async def adjust_stock(
    session: AsyncSession,
    *,
    principal: Principal,
    reagent_id: int,
    change: int,
) -> Reagent:
    """
    Apply a signed change to a reagent's current stock.

    Args:
        session: Database session
        principal: Acting principal
        reagent_id: Reagent to adjust
        change: Amount to add (negative to consume)

    Returns:
        The updated reagent

    Raises:
        ForbiddenError: If the principal lacks ``manage_inventory``
        ValidationError: If ``change`` is not an integer or the stock would go negative
        NotFoundError: If the reagent does not exist
        InternalError: If the update fails
    """
    await permissions_service.require_permission(session, principal, "manage_inventory")

    if isinstance(change, bool) or not isinstance(change, int):
        raise ValidationError("Invalid stock change amount. Must be an integer")

    reagent = await reagents_repo.get_by_id(session, reagent_id=reagent_id, for_update=True)
    if not reagent:
        raise NotFoundError(f"Reagent {reagent_id} not found")

    if reagent.current_stock + change < 0:
        raise ValidationError("Stock level cannot go below zero")

    try:
        await reagents_repo.increment_stock(session, reagent_id=reagent_id, quantity=change)
        await session.commit()
        await session.refresh(reagent)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to adjust stock of reagent %s", reagent_id)
        raise InternalError("Failed to update reagent stock")

    logger.info(
        "Reagent %s stock adjusted by %+d to %d", reagent_id, change, reagent.current_stock
    )
    return reagent


async def list_low_stock(session: AsyncSession, *, principal: Principal) -> list[Reagent]:
    """
    List reagents below their minimum stock level.

    Raises:
        ForbiddenError: Unless the principal holds ``manage_inventory`` or ``view_reports``
    """
    await permissions_service.require_permission(
        session, principal, "manage_inventory", "view_reports"
    )
    return await reagents_repo.list_low_stock(session)
