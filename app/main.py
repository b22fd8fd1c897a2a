import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import auth, forms, invitations, notifications, profiles
from app.config import settings
from app.services.email_sender import WebhookEmailSender
from app.services.errors import ConfigurationError, ServiceError, UpstreamError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the outbound HTTP client for the life of the process."""
    client = httpx.AsyncClient(timeout=settings.webhook_timeout)
    app.state.email_sender = WebhookEmailSender(client)
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(title="Formtrack", version="0.1.0", lifespan=lifespan)


# =============================================================================
# Error handling
# =============================================================================


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Convert service errors to `{"error", "code"}` JSON with their status."""
    if isinstance(exc, ConfigurationError):
        logger.critical(
            "Configuration error on %s %s: %s", request.method, request.url.path, exc.message
        )
    elif exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)

    content = {"error": exc.message, "code": exc.code}
    if isinstance(exc, UpstreamError) and exc.upstream_status is not None:
        content["upstream_status"] = exc.upstream_status
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid {field}: {first.get('msg')}" if field else "Invalid request body"
    return JSONResponse(
        status_code=400, content={"error": message, "code": "invalid_input"}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content={"error": "Internal server error", "code": "unknown"}
    )


# Include routers
app.include_router(auth.router)
app.include_router(invitations.router)
app.include_router(notifications.router)
app.include_router(forms.router)
app.include_router(profiles.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
