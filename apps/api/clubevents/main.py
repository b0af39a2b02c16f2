from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from clubevents.api.v1.router import router as v1_router
from clubevents.core.config import settings
from clubevents.core.logging import configure_logging
from clubevents.db import init_db
from clubevents.middleware.rate_limit import RateLimitMiddleware
from clubevents.middleware.request_id import RequestIdMiddleware
from clubevents.middleware.security_headers import SecurityHeadersMiddleware

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.db_auto_create:
        init_db()
    logger.info(
        "api_started",
        env=settings.env,
        auth_mode=settings.auth_mode,
        notifications_backend=settings.notifications_backend,
        export_backend=settings.export_backend,
    )
    yield


app = FastAPI(title="University Club Events API", lifespan=lifespan)

# Starlette runs the last added middleware first (outermost).
# RequestId and SecurityHeaders wrap everything, CORS answers preflight,
# and the rate limiter sits closest to the routes.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
def root():
    return {"name": "University Club Events API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(v1_router, prefix="/v1")
