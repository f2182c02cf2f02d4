"""tidyquest - Gamified household chore tracking."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.errors import TidyQuestError
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.scheduler import start_scheduler, stop_scheduler
from src.core.schema import init_db
from src.interface.api_router import router as api_router, tidyquest_error_handler


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    await init_db()
    logger.info("Database initialized", extra={"db_path": settings.sqlite_db_path})

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()


app = FastAPI(
    title="tidyquest",
    description="Gamified household chore tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(api_router)
app.add_exception_handler(TidyQuestError, tidyquest_error_handler)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
