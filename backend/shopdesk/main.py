"""
ShopDesk Backend: point-of-sale and inventory API.

ARCHITECTURE:
- FastAPI Backend: sales, inventory, purchase-bill ingestion, reports
- SQL database (SQLite in development): source of truth for stock and history
- Object storage (MinIO, or local /uploads): bill images and generated PDFs
- Groq LLM / OCR: turns uploaded purchase bills into line items

STOCK SAFETY:
- A sale validates, records and decrements stock in one transaction
- Stock is decremented with a guarded UPDATE, never below zero
- Purchase bill lines are applied one savepoint at a time
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from shopdesk.api.routes import bills, dashboard, inventory, sales
from shopdesk.core.config import settings
from shopdesk.core.exceptions import ShopDeskError, error_response, server_error_response
from shopdesk.core.logging_config import setup_logging
from shopdesk.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    1. Configure logging
    2. Initialize database tables
    """
    setup_logging()
    logger.info("Initializing database...")
    init_db()
    logger.info(f"ShopDesk API ready ({settings.ENVIRONMENT})")

    yield

    logger.info("ShopDesk API shutting down")


app = FastAPI(
    title="ShopDesk API",
    description="Point-of-sale, inventory and purchase bill processing.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
    ],
    max_age=600,  # Cache preflight for 10 minutes
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"  # Prevent MIME sniffing
    response.headers["X-Frame-Options"] = "DENY"  # Prevent clickjacking
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(ShopDeskError)
async def shopdesk_error_handler(request: Request, exc: ShopDeskError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message, getattr(exc, "errors", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    return server_error_response(exc)


app.include_router(sales.router, prefix="/api/sales", tags=["sales"])
app.include_router(inventory.router, prefix="/api/inventory", tags=["inventory"])
app.include_router(bills.router, prefix="/api/bills", tags=["bills"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])

# Local storage backend serves stored files from here
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/health")
def health():
    return {"status": "ok", "storage": "minio" if settings.storage_configured else "local"}
