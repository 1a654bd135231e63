"""
FastAPI API Server.

HTTP entry point for the AI recruiter: the vacancy chat, session
inspection, the field schema and one-shot job description generation.

Start with:
    uvicorn src.api_server:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware import RateLimitMiddleware, RequestIdMiddleware
from src.api.recruiter import init_conversation_manager, router as recruiter_router
from src.config import get_settings
from src.logging_config import get_logger, setup_logging

settings = get_settings()
setup_logging(settings)
logger = get_logger(__name__)

SERVICE_NAME = "ai-recruiter"
SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ConfigurationError here stops startup when OPENAI_API_KEY is missing
    manager = init_conversation_manager()
    logger.info(
        "api_server_started",
        environment=settings.environment.value,
        model=manager.extractor.llm.model,
        session_backend=settings.session_backend.value,
        webhook_enabled=settings.webhook_enabled,
    )
    try:
        yield
    finally:
        close = getattr(manager.store, "close", None)
        if close is not None:
            await close()
        logger.info("api_server_stopped")


app = FastAPI(
    title="AI Recruiter API",
    description="Conversational vacancy builder with LLM-assisted field extraction",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# Starlette wraps in reverse: CORS runs first, the rate limit last
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.include_router(recruiter_router)


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/", tags=["System"])
async def root() -> dict[str, str]:
    return {"service": SERVICE_NAME, "version": SERVICE_VERSION, "docs": "/docs"}
