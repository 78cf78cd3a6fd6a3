from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.common.http_errors import register_huddle_exception_handlers
from services.common.logging_config import (
    create_request_logging_middleware,
    get_logger,
    log_service_shutdown,
    log_service_startup,
    setup_service_logging,
)
from services.meetings.api import (
    auth_router,
    availability_router,
    join_router,
    meetings_router,
    users_router,
)
from services.meetings.settings import get_settings

# Set up centralized logging - will be initialized in lifespan
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()

    setup_service_logging(
        service_name="meetings",
        log_level=settings.log_level,
        log_format=settings.log_format,
    )

    log_service_startup(
        "meetings",
        version="0.1.0",
        provider_app_id_configured=bool(settings.provider_app_id),
    )
    yield
    log_service_shutdown("meetings")


def register_routes(app: FastAPI) -> None:
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(meetings_router, prefix="/api/v1/meetings", tags=["meetings"])
    app.include_router(
        availability_router, prefix="/api/v1/availability", tags=["availability"]
    )
    app.include_router(join_router, prefix="/api/v1/join", tags=["join"])


app = FastAPI(
    title="Huddle Meetings Service",
    version="0.1.0",
    description="Meeting scheduling, availability and join access for Huddle.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
app.middleware("http")(create_request_logging_middleware())

# Register standardized exception handlers
register_huddle_exception_handlers(app)

register_routes(app)


@app.get("/health")
def health() -> dict:
    logger.info("Health check endpoint accessed")
    return {"status": "ok"}
