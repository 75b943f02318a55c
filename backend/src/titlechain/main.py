"""
FastAPI application entry point.

This is the main application that ties together all components:
- API routes for transactions, documents, verification and e-signature
- Ledger and audit sink lifecycle management
- Audit log routing
- Error handling and logging
"""

import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from titlechain import __version__
from titlechain.api.routes import audit, documents, esignature, health, transactions, verification
from titlechain.api.schemas import ErrorResponse
from titlechain.config import Settings, get_settings
from titlechain.infrastructure.store import InMemoryLedgerStore, demo_transactions
from titlechain.services.audit import (
    AUDIT_LOGGER_NAME,
    AuditSink,
    CompositeAuditSink,
    DatabaseAuditSink,
    LoggingAuditSink,
)
from titlechain.services.ledger import DocumentLedger

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging and, optionally, a JSON-lines audit file.

    Audit lines go to ``audit_log_path`` as bare messages so the file can
    be parsed line by line. Safe to call once per app: the file handler is
    attached only once per path.
    """
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if settings.audit_log_path is None:
        return

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    log_path = os.path.abspath(settings.audit_log_path)
    for existing in audit_logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == log_path:
            return

    settings.audit_log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.setLevel(logging.INFO)
    audit_logger.addHandler(handler)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Overrides the environment-derived settings (tests)

    Returns:
        Configured FastAPI instance ready to serve requests.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Builds the ledger and its audit sinks on startup, drains pending
        audit deliveries and closes the audit database on shutdown.
        """
        configure_logging(settings)
        logger.info(f"Starting titlechain v{__version__}")
        logger.info(f"Debug mode: {settings.debug}")

        store = InMemoryLedgerStore(demo_transactions() if settings.seed_demo_data else None)

        sinks: list[AuditSink] = [LoggingAuditSink()]
        audit_database = None
        if settings.audit_database_url:
            audit_database = DatabaseAuditSink.from_url(
                settings.audit_database_url, echo=settings.debug,
            )
            await audit_database.init()
            sinks.append(audit_database)
            logger.info("Audit database initialized")

        ledger = DocumentLedger(
            store=store,
            audit_sink=CompositeAuditSink(sinks),
            hash_prefix_length=settings.audit_hash_prefix_length,
        )

        app.state.settings = settings
        app.state.ledger = ledger
        app.state.audit_database = audit_database

        yield  # Application runs here

        logger.info("Shutting down titlechain")
        await ledger.flush_notifications()
        if audit_database is not None:
            await audit_database.close()

    app = FastAPI(
        title="titlechain API",
        description=(
            "Tamper-evident ledger for commercial real estate loan closings.\n\n"
            "Every upload, approval, signature and recording is an append-only "
            "event carrying the document's SHA-256 hash, so any copy of a "
            "closing document can be checked against the ledger."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(transactions.router, prefix="/api/v1")
    app.include_router(documents.router, prefix="/api/v1")
    app.include_router(verification.router, prefix="/api/v1")
    app.include_router(esignature.router, prefix="/api/v1")
    app.include_router(audit.router, prefix="/api/v1")

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Turn anything the routes did not map into a 500."""
        logger.exception(f"Unhandled error: {exc}")

        # Don't expose internal errors in production
        if settings.debug:
            detail = str(exc)
        else:
            detail = "An internal error occurred"

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal Server Error", detail=detail).model_dump(),
        )

    return app


# ASGI entry point (uvicorn titlechain.main:app)
app = create_app()


# Development server entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "titlechain.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
