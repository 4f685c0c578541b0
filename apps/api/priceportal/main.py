from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from priceportal.core.config import settings
from priceportal.db import engine
from priceportal import models  # noqa: F401
from priceportal.models.base import Base
from priceportal.routes.access_requests import router as access_requests_router
from priceportal.routes.admin_price_groups import router as admin_price_groups_router
from priceportal.routes.admin_users import router as admin_users_router
from priceportal.routes.announcements import router as announcements_router
from priceportal.routes.auth import router as auth_router
from priceportal.routes.branches import router as branches_router
from priceportal.routes.dashboard import router as dashboard_router
from priceportal.routes.price_groups import router as price_groups_router
from priceportal.routes.telegram import router as telegram_router
from priceportal.routes.uploads import router as uploads_router
from priceportal.routes.user_logs import router as user_logs_router
from priceportal.routes.users import router as users_router
from priceportal.services.storage import LocalStorage

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# httpx logs request URLs at INFO; Bot API URLs contain the token
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# ============================================================
# DB table creation (DEV ONLY)
# - In production, use Alembic migrations.
# ============================================================
if settings.RUN_CREATE_ALL:
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("DB tables ensured via create_all (RUN_CREATE_ALL=1).")
    except SQLAlchemyError:
        logger.exception("Base.metadata.create_all failed; continuing startup without it.")

app = FastAPI(
    title="Price Portal API",
    version="1.0.0",
)

# ============================================================
# CORS
# ============================================================
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL.strip():
    origins.append(settings.FRONTEND_URL.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted({o for o in origins if o}),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# error envelope: {"error": "...", "details"?: ...}
# ============================================================
@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = {"error": exc.detail if isinstance(exc.detail, str) else jsonable_encoder(exc.detail)}
    details = getattr(exc, "details", None)
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


API_PREFIX = "/api"


@app.api_route("/", methods=["GET", "HEAD"], status_code=status.HTTP_200_OK)
def root():
    return {
        "status": "ok",
        "service": "price-portal-api",
        "version": "1.0.0",
    }


@app.api_route("/health", methods=["GET", "HEAD"], status_code=status.HTTP_200_OK)
def health_check():
    """Health check endpoint for uptime monitoring."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {
            "status": "ok",
            "service": "price-portal-api",
            "version": "1.0.0",
            "database": "connected",
        }
    except SQLAlchemyError:
        logger.warning("health check: database unreachable", exc_info=True)
        return {
            "status": "error",
            "service": "price-portal-api",
            "database": "disconnected",
        }


# public read-only object storage
app.mount(
    "/storage",
    StaticFiles(directory=str(LocalStorage().root), check_dir=False),
    name="storage",
)

# Routers
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(branches_router, prefix=API_PREFIX)
app.include_router(access_requests_router, prefix=API_PREFIX)
app.include_router(price_groups_router, prefix=API_PREFIX)
app.include_router(admin_price_groups_router, prefix=API_PREFIX)
app.include_router(admin_users_router, prefix=API_PREFIX)
app.include_router(announcements_router, prefix=API_PREFIX)
app.include_router(uploads_router, prefix=API_PREFIX)
app.include_router(telegram_router, prefix=API_PREFIX)
app.include_router(user_logs_router, prefix=API_PREFIX)
app.include_router(dashboard_router, prefix=API_PREFIX)
