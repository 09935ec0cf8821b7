"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import element_types, partitions, product_types, products, reasons, stock_elements, units
from config import settings
from database import get_session_local, init_db
from logging_config import setup_logging
from services.exceptions import LedgerError
from services.reason_service import ReasonService

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and seed the reason catalog on startup."""
    init_db()

    if settings.SEED_DEFAULT_REASONS:
        SessionLocal = get_session_local()
        db = SessionLocal()
        try:
            ReasonService.seed_default_reasons(db)
            db.commit()
        except Exception:
            db.rollback()
            logger.warning("Reason seeding failed on startup", exc_info=True)
        finally:
            db.close()
    yield


app = FastAPI(
    title="Stock Ledger",
    description="Weight and quantity stock ledgers with audit and soft delete",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Map ledger errors to JSON responses with the error's status code."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message
        )
    else:
        logger.info(
            "%s %s rejected (%d): %s",
            request.method, request.url.path, exc.status_code, exc.message,
        )
    headers = {"Retry-After": "1"} if exc.retriable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "detail": exc.message,
            "details": exc.details,
        },
        headers=headers,
    )


# Include API routers
app.include_router(reasons.router)
app.include_router(product_types.router)
app.include_router(products.router)
app.include_router(units.router)
app.include_router(partitions.router)
app.include_router(element_types.router)
app.include_router(stock_elements.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
