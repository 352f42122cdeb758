"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from api.deps import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Reports the environment and whether the database answers a trivial query.

    Returns:
        dict: Status, environment and database information
    """
    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unavailable"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "env": config.settings.ENV,
        "db": db_status,
    }
