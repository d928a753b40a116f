"""Villa billing FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from villa_billing.api import invoices
from villa_billing.api.errors import InvalidBillingDataError, error_response
from villa_billing.config import settings
from villa_billing.models import Base
from villa_billing.services import engine
from villa_billing.services.logging import setup_server_logging
from villa_billing.services.records import BillingValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Billing and invoice engine for property management",
    version=settings.api_version,
    lifespan=lifespan,
)

app.include_router(invoices.router)


@app.exception_handler(BillingValidationError)
async def billing_validation_error_handler(request: Request, exc: BillingValidationError):
    """Return negative amounts or readings in stored data as a 422 error."""
    logger.error("Invalid billing data on %s: %s", request.url.path, exc)
    error = InvalidBillingDataError(str(exc))
    return JSONResponse(status_code=error.http_status, content={"detail": error_response(error)})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    setup_server_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
