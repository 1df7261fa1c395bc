"""
Billing Sync - FastAPI Application

Main entry point for the backend API.
Provides the Stripe webhook plus the landing-page checkout endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from billing_sync.config.settings import settings
from billing_sync.infrastructure.exceptions import BillingSyncError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"Billing Sync starting in {settings.environment} mode...")

    database_configured = bool(settings.database_url or settings.supabase_password)

    if database_configured:
        try:
            from billing_sync.infrastructure.db.database import init_db
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    yield

    if database_configured:
        try:
            from billing_sync.infrastructure.db.database import close_db
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("Billing Sync shutting down...")


app = FastAPI(
    title="Billing Sync",
    description="Stripe subscription webhook reconciliation",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings (landing page calls /api/checkout)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(BillingSyncError)
async def general_error_handler(request: Request, exc: BillingSyncError):
    """Handle application errors not mapped by a route."""
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "billing-sync"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Billing Sync API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from billing_sync.api.routes import checkout, webhooks  # noqa: E402

app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
app.include_router(checkout.router, prefix="/api", tags=["Checkout"])
