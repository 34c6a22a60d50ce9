import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from analytics_api import router as analytics_router
from database import init_db
from health_api import router as health_router
from logging_config import setup_logging
from sessions_api import router as sessions_router
from sync_api import router as sync_router
from templates_api import router as templates_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Local store ready")
    yield


app = FastAPI(title="Fitlog Server", version="1.0.0", lifespan=lifespan)


@app.middleware("http")
async def log_internal_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled exception during request: %s %s", request.method, request.url
        )
        raise


# Include routers
app.include_router(sessions_router)
app.include_router(templates_router)
app.include_router(health_router)
app.include_router(analytics_router)
app.include_router(sync_router)


@app.get("/")
async def root():
    return {"message": "Welcome to Fitlog Server"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
