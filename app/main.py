from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import configure_logging, request_id_middleware
from app.db.init import create_tables, sanitize_db_url
from app.vending.router import get_token_issuer
from app.vending.router import router as vend_router

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.ENV, settings.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration and prepare the database before serving."""
    logger.info("=" * 70)
    logger.info("Starting STS vend service...")
    logger.info(f"Environment: {settings.ENV}")

    # Any misconfiguration aborts startup.
    settings.validate_required()
    issuer = get_token_issuer()
    logger.info(
        f"STS gateway: {issuer.config.base_url} "
        f"({len(issuer.config.user_ids)} account(s) in pool)"
    )
    logger.info(f"Database: {sanitize_db_url(settings.DATABASE_URL or '')}")

    if settings.ENV in ("development", "test"):
        await create_tables()

    logger.info("Startup complete - ready to vend")
    logger.info("=" * 70)

    yield

    logger.info("Shutting down STS vend service...")
    from app.db import base as db_base

    await db_base.engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(title="STS Vend Service", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)
register_exception_handlers(app)
app.include_router(vend_router)


@app.get("/")
def health_check():
    logger.debug("Health check endpoint called")
    return {"status": "ok"}


@app.get("/healthz")
def healthz():
    return {"status": "healthy", "env": settings.ENV}


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings.validate_required()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
