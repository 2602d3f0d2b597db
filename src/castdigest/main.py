"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from castdigest import __version__
from castdigest.api.summaries import router as summaries_router
from castdigest.api.system import router as system_router
from castdigest.db.config import get_db_config
from castdigest.db.connection import init_db
from castdigest.scheduler import start_scheduler, stop_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting castdigest...")

    init_db()
    logger.info(f"Database initialized at {get_db_config().database_path}")

    start_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down castdigest...")
    stop_scheduler()


# Create FastAPI app
app = FastAPI(
    title="castdigest",
    description="Podcast transcript acquisition and summary service",
    version=__version__,
    lifespan=lifespan,
)

# Include routers
app.include_router(summaries_router)
app.include_router(system_router)


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "castdigest.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    run_server()
