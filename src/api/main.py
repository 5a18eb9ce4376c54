"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from identity.dependencies.runtime import IdentityRuntime
from identity.presentation import router as identity_router
from infrastructure.database.dependencies import (
    check_database,
    close_database_connections,
)
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_notification_settings, get_settings
from infrastructure.version import __version__


@asynccontextmanager
async def identity_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Identity runtime (event dispatcher workers, notifier HTTP client)
    - Database engine disposal on shutdown
    """
    settings = get_settings()
    configure_logging(debug=settings.debug)
    probe = DefaultStartupProbe()

    runtime = IdentityRuntime.from_settings(app_name=settings.app_name)
    await runtime.start()
    app.state.identity_runtime = runtime

    if not get_notification_settings().delivery_enabled:
        probe.email_delivery_disabled()
    if runtime.affiliation.registry_enabled:
        probe.affiliation_registry_enabled()
    probe.application_started(version=__version__, debug=settings.debug)

    try:
        yield
    finally:
        probe.application_stopping()
        await runtime.stop()
        await close_database_connections()


app = FastAPI(
    title="Identity API",
    description="Dual-path (credential and federated) identity and session issuance",
    version=__version__,
    lifespan=identity_lifespan,
)

app.include_router(identity_router)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400, like domain validation failures."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/db")
async def health_db() -> dict:
    """Check database connectivity."""
    if await check_database():
        return {"status": "ok", "connected": True}
    return {"status": "unhealthy", "connected": False}
