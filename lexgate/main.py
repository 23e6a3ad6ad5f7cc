# lexgate/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
from typing import Dict
from dotenv import load_dotenv
load_dotenv()

from .settings import settings
from .core.runtime import build_runtime
from .routing.endpoints import routing_admin_router, principal_router
from .storage.sqlite_base import close_sqlite_db_connection, get_sqlite_db_connection
from .tenants.endpoints import tenants_admin_router

# Configure logging based on debug mode setting
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level="DEBUG" if settings.debug_mode else settings.lexgate_log_level.upper(),
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG if settings.debug_mode else logging.INFO)


@asynccontextmanager
async def lexgate_app_lifespan(app_instance: FastAPI):
    """
    Application lifespan manager: opens the control-plane database, builds the
    routing runtime for this process, and releases every cached backend
    connection on shutdown.
    """
    logger.info("Application startup initiated.")
    try:
        await get_sqlite_db_connection()
        logger.info("SQLite control-plane connection initialized.")
        app_instance.state.runtime = await build_runtime(settings)
    except Exception as e:
        logger.error(f"Error during application startup: {e}", exc_info=True)
        await close_sqlite_db_connection()
        raise

    yield

    logger.info("Application shutdown initiated.")
    try:
        await app_instance.state.runtime.shutdown()
    except Exception as e:
        logger.error(f"Teardown error: {e}", exc_info=True)
    finally:
        app_instance.state.runtime = None
        await close_sqlite_db_connection()
    logger.info("All components torn down.")


# FastAPI application setup with lifespan management
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug_mode,
    version="0.1.0",
    lifespan=lexgate_app_lifespan
)


@app.get("/")
async def root_api():
    return {"message": f"Welcome to {settings.app_name}!"}


@app.get("/health")
async def health_api():
    """Health check endpoint that validates control-plane storage and invalidation connectivity."""
    store_statuses: Dict[str, str] = {}
    all_healthy = True

    try:
        conn = await get_sqlite_db_connection()
        conn.execute("SELECT 1")
        store_statuses["sqlite_control_plane"] = "healthy"
    except Exception as e:
        store_statuses["sqlite_control_plane"] = f"unhealthy: {e}"
        all_healthy = False

    runtime = getattr(app.state, "runtime", None)
    if runtime is not None and runtime.broadcaster is not None:
        if runtime.broadcaster.is_available():
            try:
                await runtime.broadcaster.redis.ping()
                store_statuses["invalidation_redis"] = "healthy"
            except Exception as e:
                store_statuses["invalidation_redis"] = f"unhealthy: {e}"
                all_healthy = False
        else:
            store_statuses["invalidation_redis"] = "unavailable: invalidation is local only"
            all_healthy = False

    return {
        "status": "healthy" if all_healthy else "degraded",
        "cached_connections": len(runtime.cache) if runtime is not None else 0,
        "details": store_statuses
    }


# Mount all routers
app.include_router(tenants_admin_router)
app.include_router(routing_admin_router)
app.include_router(principal_router)

logger.info(f"{settings.app_name} initialized. Routers mounted.")
