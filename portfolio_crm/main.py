"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from portfolio_crm.core.config import settings
from portfolio_crm.errors import AppError, EngineError, app_error_handler, engine_error_handler
from portfolio_crm.routers import contacts, health, narrative, organizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown of the API process."""
    logger.info("Starting %s...", settings.APP_NAME)

    yield

    logger.info("Shutting down %s...", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Entity resolution and deduplication engine for the portfolio CRM",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(EngineError, engine_error_handler)

app.include_router(health.router, tags=["Health"])
app.include_router(organizations.router)
app.include_router(contacts.router)
app.include_router(narrative.router)
