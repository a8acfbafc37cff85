from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.engine import make_url
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import (
    auth,
    birthday_notifications,
    contact_notifications,
    contact_profile,
    contacts,
    notifications,
    privacy,
    reputation,
    users,
    wishes,
)
from app.core.config import settings
from app.core.errors import DomainError
from app.core.logger import configure_logging
from app.db.session import Base, async_session_factory, engine


logger = configure_logging()

app = FastAPI(
    title=settings.app_name,
    description="Listas de deseos compartidas entre contactos",
    version="0.1.0",
)

cors_origins = settings.cors_origins
logger.info("CORS origins parsed=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.middleware("http")
async def tracing_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    start = perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (perf_counter() - start) * 1000.0
        logger.exception(
            "Request failed id=%s method=%s path=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            duration_ms,
        )
        raise

    duration_ms = (perf_counter() - start) * 1000.0
    logger.info(
        "Request completed id=%s method=%s path=%s status=%s duration_ms=%.2f",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    response.headers["X-Request-Id"] = request_id
    return response


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.on_event("startup")
async def on_startup() -> None:
    try:
        db_url = make_url(settings.database_url)
        logger.info(
            "DB config driver=%s host=%s database=%s",
            db_url.get_backend_name(),
            db_url.host,
            db_url.database,
        )
    except Exception:
        logger.warning("DB config parse failed", exc_info=True)

    from app.models import models as _models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Error en la solicitud"
    return _error_response(exc.status_code, message, getattr(exc, "headers", None))


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.info(
        "Domain error %s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Datos de entrada inválidos"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": message, "errors": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Error interno del servidor")


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(contacts.router)
app.include_router(contact_notifications.router)
app.include_router(wishes.router)
app.include_router(notifications.router)
app.include_router(birthday_notifications.router)
app.include_router(privacy.router)
app.include_router(contact_profile.router)
app.include_router(reputation.router)


@app.get("/api/health")
@app.get("/health", include_in_schema=False)
async def health() -> dict[str, object]:
    return {
        "success": True,
        "message": "GiFiTi API funcionando correctamente",
        "data": {
            "status": "ok",
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }


@app.get("/health/db")
async def health_db():
    try:
        async with async_session_factory() as session:
            result = await session.execute(select(1))
            return {"success": True, "data": {"status": "ok", "database": str(result.scalar())}}
    except Exception:
        logger.exception("DB health check failed")
        return _error_response(500, "Base de datos no disponible")
