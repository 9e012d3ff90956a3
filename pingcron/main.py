"""FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from pingcron.api.cron import router as cron_router
from pingcron.api.stats import router as stats_router
from pingcron.api.tasks import router as tasks_router
from pingcron.core.auth import verify_api_key
from pingcron.core.database import create_tables
from pingcron.core.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_tables()
    yield


app = FastAPI(
    title="PingCron API",
    description="Scheduler that invokes HTTP ping tasks periodically and records outcomes",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tasks_router, prefix="/v1", tags=["tasks"])
app.include_router(stats_router, prefix="/v1", tags=["stats"])
app.include_router(cron_router, prefix="/v1", tags=["cron"])


@app.get("/health")
def health_check(api_key: str = Depends(verify_api_key)):
    """Health check endpoint."""
    return {"status": "healthy"}
