import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from telehealth.api.routes import availability, consultations, slots
from telehealth.core.config import _ENV_FILE, settings
from telehealth.core.db import init_db
from telehealth.core.errors import DomainError, InternalError

if os.getenv("ENV") == "production":
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
    )
else:
    logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Authorization", "Content-Type"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Settings from %s (exists: %s), env=%s", _ENV_FILE, _ENV_FILE.exists(), settings.env)
    logger.info(
        "Slots: default %d min, insert batch %d, max range %d days",
        settings.default_slot_duration_minutes,
        settings.slot_insert_batch_size,
        settings.max_slot_generation_days,
    )
    if settings.auto_create_tables:
        logger.warning("AUTO_CREATE_TABLES is on; creating missing tables without Alembic")
        await init_db()
    yield


app = FastAPI(
    title="Telehealth Booking API",
    description="Doctor weekly availability, slot generation and consultation booking",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=ALLOWED_METHODS,
    allow_headers=ALLOWED_HEADERS,
)

for module in (availability, slots, consultations):
    app.include_router(module.router, prefix="/api/v1")


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    """JSON error that carries CORS headers, so browsers can read failed responses."""
    origins = settings.cors_origins_list
    origin = request.headers.get("origin")
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
    }
    if origin in origins:
        headers["Access-Control-Allow-Origin"] = origin
    elif origins:
        headers["Access-Control-Allow-Origin"] = origins[0]
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    # Rule violations are the caller's problem; only store failures are logged as errors
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.debug("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.detail)
    return _error_response(request, exc.status_code, {"detail": exc.detail, "code": exc.code})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, HTTPException):
        return _error_response(request, exc.status_code, {"detail": exc.detail})
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(request, 500, {"detail": "Internal server error", "code": "operation_failed"})


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
