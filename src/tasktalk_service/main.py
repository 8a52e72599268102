"""FastAPI application entrypoint with Lambda handler."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum

from .config import settings
from .dependencies import build_services
from .errors import RateLimitExceeded, TaskTalkError
from .routes import auth, health, tasks

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(f"Starting {settings.service_name} in {settings.environment} mode")
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)
    yield
    await app.state.services.aclose()
    logger.info(f"Shutting down {settings.service_name}")


app = FastAPI(
    title="TaskTalk Service",
    description="Natural-language task capture backed by a delegated task provider",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskTalkError)
async def handle_tasktalk_error(request: Request, exc: TaskTalkError) -> JSONResponse:
    """Map the error taxonomy onto HTTP status codes."""
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(max(1, round(exc.retry_after)))}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()), headers=headers)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors, reported as 400."""
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "detail": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


# Include routers
app.include_router(health.router)
app.include_router(tasks.router, prefix="/tasks")
app.include_router(auth.router, prefix="/auth")

# Lambda handler via Mangum
handler = Mangum(app, lifespan="off")
