"""
ERP Ledger: FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from erp_ledger.config import get_settings
from erp_ledger.logging_config import configure_logging
from erp_ledger.api.health import router as health_router
from erp_ledger.api.accounting import router as accounting_router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry accounting ledger for the distribution ERP",
    lifespan=lifespan,
)

# Register routers
app.include_router(health_router)
app.include_router(accounting_router)
