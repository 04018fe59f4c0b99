"""
Automation Engine API

Small FastAPI application around the automation scheduler:
- /health: liveness
- /about.json: client host, server time and the service catalog
- /api/scheduler/status: whether the embedded scheduler is running

With AUTOMATION_SCHEDULER_ENABLED=true the scheduler runs inside the API
process (started in the app lifespan). Otherwise run it on its own:
  cd api && python -m jobs.automation_scheduler
"""

import os
import time
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging - ensure INFO level logs are visible
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from integrations.catalog import get_service_catalog

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _scheduler_enabled() -> bool:
    return os.getenv("AUTOMATION_SCHEDULER_ENABLED", "false").lower() in ("1", "true", "yes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.scheduler = None
    if _scheduler_enabled():
        from jobs.automation_scheduler import build_scheduler

        app.state.scheduler = build_scheduler()
        app.state.scheduler.start()
        logger.info("[API] Embedded automation scheduler started")
    try:
        yield
    finally:
        if app.state.scheduler is not None:
            await app.state.scheduler.stop()
            logger.info("[API] Embedded automation scheduler stopped")


app = FastAPI(
    title="Automation Engine API",
    description="Trigger/reaction automations across third-party services",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}


@app.get("/about.json")
async def about(request: Request):
    return {
        "client": {"host": request.client.host if request.client else None},
        "server": {
            "current_time": int(time.time()),
            "services": get_service_catalog(),
        },
    }


@app.get("/api/scheduler/status")
async def scheduler_status(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return {"enabled": False, "running": False}
    return {
        "enabled": True,
        "running": scheduler.is_running,
        "cycle_in_progress": scheduler.cycle_in_progress,
        "interval_seconds": scheduler.config.interval_seconds,
    }
