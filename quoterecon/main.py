"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quoterecon.config import settings

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=logging.INFO,
)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Quote Reconciliation API",
    description=(
        "Reconciles supplier quotes against the items requested in an RFQ. "
        "Reads quote documents with a vision model, matches quoted lines to requested "
        "items, flags quantity/price/alternate discrepancies and turns an approval "
        "decision into catalog price updates with an audit trail."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS — allow all in development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Mount routers
# ---------------------------------------------------------------------------

from quoterecon.routers.files import router as files_router
from quoterecon.routers.reconcile import router as reconcile_router
from quoterecon.routers.quotes import router as quotes_router
from quoterecon.routers.export import router as export_router
from quoterecon.routers.jobs import router as jobs_router

app.include_router(files_router)
app.include_router(reconcile_router)
app.include_router(quotes_router)
app.include_router(export_router)
app.include_router(jobs_router)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["system"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Quote Reconciliation API",
        "version": "1.0.0",
        "extraction_configured": bool(settings.openai_api_key),
    }


@app.get("/", tags=["system"])
async def root():
    return {
        "message": "Quote Reconciliation API",
        "docs": "/docs",
        "health": "/health",
    }
