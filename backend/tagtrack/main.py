"""
TagTrack IMS — FastAPI ASGI Entry Point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tagtrack.api.v1.router import api_router
from tagtrack.config import get_settings
from tagtrack.core.logging import setup_logging
from tagtrack.core.responses import register_exception_handlers
from tagtrack.db.session import engine

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — logging on startup, engine disposal on shutdown."""
    setup_logging(settings)
    logger.info("TagTrack IMS starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()


app = FastAPI(
    title="TagTrack IMS",
    description="Instance-level inventory with tag-based reservations, loans and fulfillment",
    version="0.1.0",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    """Health check for load balancers and Docker."""
    return {"status": "ok", "service": "tagtrack-ims"}
