"""FastAPI application for the Saúde Para Todos API."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import fastapi
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    init_db,
)
from core.logger import configure_logging
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.telemetry import RequestTimingMiddleware, SecurityHeadersMiddleware
from routes import (
    cbo_router,
    componentes_router,
    escolaridades_router,
    estabelecimentos_router,
    estados_router,
    habilitacao_router,
    health_router,
    municipios_router,
    natureza_router,
    paises_router,
    qualificacao_router,
    racas_router,
    relatorio_router,
    tipo_estabelecimento_router,
    turnos_router,
)

configure_logging()
logger = logging.getLogger(__name__)

_CODE_BY_STATUS = {
    400: "VALIDATION_ERROR",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "DUPLICATE",
    503: "SERVICE_UNAVAILABLE",
}


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred. Please try again.",
            "code": "INTERNAL_ERROR",
        },
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render HTTP errors as ``{"detail", "code"}``."""
    if not isinstance(exc, StarletteHTTPException):
        return await global_exception_handler(request, exc)

    code = getattr(exc, "code", None) or _CODE_BY_STATUS.get(
        exc.status_code, "HTTP_ERROR"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": code},
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handler for request validation errors (body, path and query)."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
        },
    )
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request data",
            "code": "VALIDATION_ERROR",
            "errors": errors,
        },
    )


async def _run_alembic_migrations() -> None:
    """Run Alembic migrations in a subprocess.

    Migrations use the synchronous psycopg2 driver; a subprocess keeps its
    connection handling away from the application's event loop.
    """
    import subprocess
    import sys

    cmd = [
        sys.executable,
        "-c",
        (
            "from alembic import command; "
            "from alembic.config import Config; "
            "command.upgrade(Config('alembic.ini'), 'head')"
        ),
    ]
    cwd = Path(__file__).parent

    result = await asyncio.to_thread(
        lambda: subprocess.run(
            cmd, cwd=cwd, capture_output=True, text=True, timeout=120
        )
    )

    if result.returncode != 0:
        stderr = result.stderr.strip()
        logger.error("migrations.failed", extra={"stderr": stderr})
        raise RuntimeError(f"Alembic migration failed:\n{stderr}")

    logger.info("migrations.complete")


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create DB engine at startup, dispose on shutdown."""
    settings = get_settings()
    app.state.engine = create_engine()
    app.state.session_maker = create_session_maker(app.state.engine)

    app.state.init_done = False
    app.state.init_error = None

    try:
        async with asyncio.timeout(60):
            await init_db(app.state.engine)

        if settings.run_migrations_on_startup:
            async with asyncio.timeout(120):
                await _run_alembic_migrations()

        app.state.init_done = True
        logger.info("init.complete")
    except TimeoutError:
        logger.error(
            "init.timeout",
            extra={
                "init_done": app.state.init_done,
                "hint": "Startup hung, check DB connectivity and migration state",
            },
        )
        raise RuntimeError("Application startup timed out")
    except Exception as e:
        app.state.init_error = str(e)
        logger.error(
            "init.failed",
            extra={"error": str(e)},
            exc_info=True,
        )
        raise

    try:
        yield
    finally:
        await dispose_engine(app.state.engine)


_settings = get_settings()

app = fastapi.FastAPI(
    title="Saúde Para Todos API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(SecurityHeadersMiddleware)

if _settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["X-Request-Duration-Ms", "X-Request-Id"],
        max_age=600,
    )

# Outermost, so the canonical request log line covers every layer
app.add_middleware(RequestTimingMiddleware)

app.include_router(health_router)
app.include_router(componentes_router)
app.include_router(tipo_estabelecimento_router)
app.include_router(natureza_router)
app.include_router(turnos_router)
app.include_router(escolaridades_router)
app.include_router(racas_router)
app.include_router(paises_router)
app.include_router(estados_router)
app.include_router(municipios_router)
app.include_router(cbo_router)
app.include_router(habilitacao_router)
app.include_router(qualificacao_router)
# Report before establishments so /relatorio is not read as an establishment id
app.include_router(relatorio_router)
app.include_router(estabelecimentos_router)
