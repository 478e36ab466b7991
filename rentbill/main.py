"""RentBill FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from rentbill.api.errors import register_error_handlers
from rentbill.api.routes import billing, contracts, payments
from rentbill.config import settings
from rentbill.models import Base
from rentbill.services.db import engine
from rentbill.services.logging import setup_server_logging

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
    description="Rental billing: meter readings, invoices, late fees and payments",
    version=settings.api_version,
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(billing.router)
app.include_router(contracts.router)
app.include_router(payments.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def run(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the API server with file + stdout logging."""
    load_dotenv()
    setup_server_logging(settings.log_file)
    logger.info("Starting RentBill API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run()
