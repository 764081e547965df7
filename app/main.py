from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.exceptions import register_exception_handlers
from app.api.routes.health import router as health_router
from app.api.routes.transcripts import router as transcripts_router
from app.api.routes.sync import router as sync_router
from app.services.background_sync import background_sync
from app.database.connection import init_db, close_db, create_tables

setup_logging(settings.LOG_LEVEL, echo_sql=settings.DEBUG)
logger = logging.getLogger(__name__)


async def _prepare_database() -> bool:
    """Connect and ensure the meeting tables exist. False when unavailable."""
    try:
        await init_db()
        if settings.DB_CREATE_TABLES_ON_STARTUP:
            await create_tables()
        return True
    except Exception as e:
        logger.warning(f"⚠️ Database unavailable, serving health checks only: {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {settings.APP_NAME} starting ({settings.ENV})")

    if settings.FATHOM_API_KEY == "__MISSING__":
        logger.warning("⚠️ FATHOM_API_KEY not set - sync endpoints will fail until it is configured")

    if await _prepare_database():
        # First incremental sync runs in the background right away
        await background_sync.start()
    else:
        logger.info("⏸️ Auto sync not started (database unavailable)")

    yield

    logger.info(f"👋 {settings.APP_NAME} shutting down...")
    await background_sync.stop()
    try:
        await close_db()
    except Exception as e:
        logger.warning(f"⚠️ Database close failed: {e}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Fathom meeting sync, transcript search and plain-text export",
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENV == "development" else None,
    redoc_url="/redoc" if settings.ENV == "development" else None,
    openapi_url="/openapi.json" if settings.ENV == "development" else None,
)

register_exception_handlers(app)

# Browser front end posts transcript ids and downloads files cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.include_router(health_router, tags=["Health"])

for api_router in (transcripts_router, sync_router):
    app.include_router(api_router, prefix=settings.API_PREFIX)
