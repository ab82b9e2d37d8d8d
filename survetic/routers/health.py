"""Health check endpoint."""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from survetic.config import get_settings
from survetic.version import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for monitoring."""
    engine = request.app.state.engine
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "message": "Database connection failed"},
        )

    return {
        "status": "ok",
        "database": "connected",
        "version": APP_VERSION,
        "environment": get_settings().environment,
    }
