import asyncio
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from indexer.core.config import settings
from indexer.core.database import async_session
from indexer.api.routes.collections import router as collections_router
from indexer.api.routes.marketplace import router as marketplace_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


app = FastAPI(title=settings.PROJECT_NAME, debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(collections_router, prefix="/api/v1")
app.include_router(marketplace_router, prefix="/api/v1")


@app.get("/health")
async def health():
    try:
        async with async_session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {e}"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "network": settings.NETWORK,
        "db": db_status,
    }


@app.post("/migrate")
async def run_migrations():
    """Upgrade the database to the latest alembic revision."""
    try:
        # Import here to avoid startup issues
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(os.path.join(BACKEND_DIR, "alembic.ini"))
        alembic_cfg.set_main_option("script_location", os.path.join(BACKEND_DIR, "alembic"))

        # env.py runs its own event loop
        await asyncio.to_thread(command.upgrade, alembic_cfg, "head")

        return {"success": True, "message": "Migrations completed successfully"}
    except Exception as e:
        logger.exception("Migration failed")
        return {"success": False, "error": str(e)}
