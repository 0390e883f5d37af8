# scheduling_api/main.py
import os
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import init_db
from .exceptions import SchedulingError, StoreError

# Routers
from .routers.appointments import router as appointments_router

# ──────────────────────────────────────────────────────────────────────────────
# LOGGING
# Levels from environment variables:
#   LOG_LEVEL, SQLA_LOG_LEVEL, UVICORN_LOG_LEVEL
# ──────────────────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logging.getLogger("sqlalchemy.engine").setLevel(
    getattr(logging, os.getenv("SQLA_LOG_LEVEL", "WARNING"), logging.WARNING)
)
logging.getLogger("uvicorn.error").setLevel(
    getattr(logging, os.getenv("UVICORN_LOG_LEVEL", "INFO"), logging.INFO)
)

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────
app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointments_router)


# ──────────────────────────────────────────────────────────────────────────────
# Error mapping
# ──────────────────────────────────────────────────────────────────────────────
def _error_body(exc: SchedulingError) -> dict:
    body = {"detail": exc.message, "error": exc.code}
    if exc.details and settings.is_dev:
        body["details"] = exc.details
    return body


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    err = StoreError("A database error occurred while processing your request", details=str(exc))
    return JSONResponse(status_code=err.status_code, content=_error_body(err))


# ──────────────────────────────────────────────────────────────────────────────
# Lifecycle
# ──────────────────────────────────────────────────────────────────────────────
@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Startup complete: %s (%s)", settings.APP_NAME, settings.ENV)


@app.get("/")
def root():
    return {"ok": True, "app": settings.APP_NAME, "env": settings.ENV}
