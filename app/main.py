# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.middleware.error_handler import service_error_handler
from app.scheduler import init_scheduler, shutdown_scheduler, get_scheduler_status
from app.services.exceptions import ServiceError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if settings.SCHEDULER_ENABLED:
        init_scheduler()
    yield
    logger.info("Application shutting down...")
    shutdown_scheduler()


app = FastAPI(
    title="Club Event Series Service",
    version="1.0.0",
    description="""
        Recurring club sessions, generated one bounded batch at a time.

        ## Features

        * **Event Series**: Weekly recurrence with timezone-correct dates
        * **Batch Generation**: Events materialised ahead of time, batch by batch
        * **Lifecycle**: Automatic not started -> in progress -> completed transitions
        * **Timeslots**: Capacity limits with a first-come waitlist

        ## Authentication

        All endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

origins = [
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ServiceError, service_error_handler)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Club Event Series Service is running"}


@app.get("/health/scheduler")
def scheduler_health():
    return get_scheduler_status()
