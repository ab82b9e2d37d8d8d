"""FastAPI application entry point."""
import os

# Force UTC before anything caches timezone information
os.environ['TZ'] = 'UTC'

import time

if hasattr(time, "tzset"):
    time.tzset()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from survetic.config import get_settings
from survetic.database import create_db_engine, create_session_factory
from survetic.errors import SurveticError
from survetic.routers import admin, auth, health, responses, surveys
from survetic.services.email_service import EmailService
from survetic.version import APP_VERSION

logger = logging.getLogger(__name__)
api_logger = logging.getLogger("survetic.api")


class SQLTransactionFilter(logging.Filter):
    def filter(self, record):
        # Only filter INFO level messages
        if record.levelno == logging.INFO and hasattr(record, 'getMessage'):
            message = record.getMessage()

            # Drop transaction bookkeeping entirely
            if any(keyword in message for keyword in ['ROLLBACK', 'BEGIN', 'COMMIT', 'generated in']):
                return False

            # Collapse multi-line statements onto one line
            if any([kw in message for kw in ['SELECT', 'DELETE', 'INSERT', 'UPDATE']]):
                record.msg = ' '.join(message.split())
                record.args = ()

        return True


def configure_logging(logs_dir: Path = Path("logs")) -> None:
    """Console plus rotating files for general, SQL and API request logs."""
    logs_dir.mkdir(exist_ok=True)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # 1 MB per file, keep 5 backups
    rotating_handler = RotatingFileHandler(
        logs_dir / "survetic.log", maxBytes=1024 * 1024, backupCount=5, encoding='utf-8'
    )
    rotating_handler.setFormatter(formatter)

    sql_rotating_handler = RotatingFileHandler(
        logs_dir / "survetic_sql.log", maxBytes=1024 * 1024, backupCount=5, encoding='utf-8'
    )
    sql_rotating_handler.setFormatter(formatter)

    api_rotating_handler = RotatingFileHandler(
        logs_dir / "survetic_api.log", maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8'
    )
    api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

    # force=True overrides any existing configuration (e.g., from uvicorn)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(), rotating_handler],
        force=True,
    )

    api_logger.handlers.clear()
    api_logger.addHandler(api_rotating_handler)
    api_logger.setLevel(logging.INFO)
    api_logger.propagate = False

    uvicorn_access_logger = logging.getLogger("uvicorn.access")
    uvicorn_access_logger.setLevel(logging.INFO)
    if rotating_handler not in uvicorn_access_logger.handlers:
        uvicorn_access_logger.addHandler(rotating_handler)

    sqlalchemy_logger = logging.getLogger("sqlalchemy.engine.Engine")
    sqlalchemy_logger.handlers.clear()
    sqlalchemy_logger.addHandler(sql_rotating_handler)
    sqlalchemy_logger.setLevel(logging.INFO)
    sqlalchemy_logger.propagate = False
    sqlalchemy_logger.addFilter(SQLTransactionFilter())


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Build shared resources on startup and release them on shutdown."""
    settings = get_settings()
    logger.info("=" * 60)
    logger.info(f"Survetic API {APP_VERSION} Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'SQLite'}")
    logger.info("=" * 60)

    engine = create_db_engine(settings)
    email_service = EmailService(settings)
    await email_service.startup()

    app_instance.state.engine = engine
    app_instance.state.session_factory = create_session_factory(engine)
    app_instance.state.email_service = email_service

    try:
        yield
    finally:
        await email_service.shutdown()
        await engine.dispose()
        logger.info("Survetic API Shutting Down... Goodbye!")


async def survetic_error_handler(request: Request, exc: SurveticError):
    if exc.status_code >= 500:
        logger.error(f"Internal error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render pydantic validation errors as a 400 with per-field details."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        # Drop the leading "body"/"query" segment
        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": error.get("msg", "Validation error"),
            "type": error.get("type", "unknown"),
        })

    message = f"{errors[0]['field']}: {errors[0]['message']}" if errors else "Request validation failed"
    return JSONResponse(status_code=400, content={"message": message, "errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


async def log_requests(request: Request, call_next):
    """Log every request with status, timing and client address."""
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"
    method = request.method
    path = request.url.path
    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"

    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip}")
    try:
        response = await call_next(request)
    except Exception as e:
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | Time: {time.time() - start_time:.3f}s | IP: {client_ip}"
        )
        raise

    api_logger.info(
        f"<< {request_id} | COMPLETE | {method} {path} | "
        f"Status: {response.status_code} | Time: {time.time() - start_time:.3f}s | IP: {client_ip}"
    )
    return response


def create_app() -> FastAPI:
    settings = get_settings()
    app_instance = FastAPI(
        title="Survetic API",
        description="Survey authoring, publishing and analytics",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app_instance.add_exception_handler(SurveticError, survetic_error_handler)
    app_instance.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app_instance.add_exception_handler(RequestValidationError, validation_exception_handler)
    app_instance.add_exception_handler(Exception, unhandled_exception_handler)

    app_instance.middleware("http")(log_requests)
    app_instance.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app_instance.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app_instance.include_router(surveys.router, prefix="/api/surveys", tags=["surveys"])
    app_instance.include_router(responses.router, prefix="/api/responses", tags=["responses"])
    app_instance.include_router(admin.router, prefix="/api/admin", tags=["admin"])
    app_instance.include_router(health.router, tags=["health"])

    @app_instance.get("/")
    async def root():
        return {
            "message": "Survetic API",
            "version": APP_VERSION,
            "environment": settings.environment,
            "docs": "/docs",
        }

    return app_instance


configure_logging()
app = create_app()
