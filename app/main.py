# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.core.errors import install_error_handlers
from app.db.sql import init_db
from app.routers import health, appointments, providers, portal

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Define lifespan event
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    The lifespan function is used to manage the FastAPI application lifecycle.
    """
    if settings.DB_AUTO_CREATE:
        logger.info("DB_AUTO_CREATE enabled, creating missing tables")
        await init_db()
    yield


app = FastAPI(
    title="Provider Booking API",
    lifespan=lifespan,
)
install_error_handlers(app)

# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(providers.router, prefix=settings.API_PREFIX)
app.include_router(appointments.router, prefix=settings.API_PREFIX)
app.include_router(portal.router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    return {"message": "Provider Booking API running"}
