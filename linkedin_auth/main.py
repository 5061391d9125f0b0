"""
FastAPI application hosting the LinkedIn sign-in flow.

This module wires dependencies and configures the application.
Flow logic is in linkedin_auth/oauth, the LinkedIn client in
linkedin_auth/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

# Configure logging FIRST, before other local imports
from linkedin_auth.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from linkedin_auth.core.exceptions import LinkedInError  # noqa: E402
from linkedin_auth.oauth import router as linkedin_router  # noqa: E402
from linkedin_auth.oauth.config import get_linkedin_config  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Lifecycle
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Logs whether LinkedIn is configured; the routes answer 503 until it is.
    """
    config = get_linkedin_config()
    if config.is_configured():
        logger.info(
            "LinkedIn OAuth configured",
            extra={"server_exchange": bool(config.client_secret)},
        )
    else:
        logger.warning("LinkedIn OAuth not configured (missing client ID or redirect URI)")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="LinkedIn Sign-In",
    description="Three-legged LinkedIn OAuth flow and member profile lookup",
    version="1.0.0",
    lifespan=lifespan,
)

# Session middleware holds the pending state between login and callback
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
if not SESSION_SECRET_KEY:
    raise ValueError("SESSION_SECRET_KEY is not set in the environment.")
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET_KEY)


# ============================================================================
# Centralized Exception Handlers
# ============================================================================


@app.exception_handler(LinkedInError)
async def linkedin_error_handler(request: Request, exc: LinkedInError):
    """
    Handle LinkedIn errors that escaped a route.

    Returns 502 Bad Gateway: the upstream provider, not the caller, failed.
    """
    logger.error(f"Unhandled LinkedIn error: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "status": "error",
            "message": "LinkedIn request failed",
        },
    )


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "linkedin-auth",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(linkedin_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
