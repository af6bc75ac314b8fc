# FastAPI Application Entry Point
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import httpx

# Configuration and Observability
from bami_service.app.config import settings
from bami_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

# Process-wide services lifecycle
from bami_service.app.dependencies.services import (
    get_case_repository,
    get_event_channel,
    get_pipeline_scheduler,
    shutdown_services,
)

# API Routers
from bami_service.app.api.v1.endpoints import health as health_router
from bami_service.app.api.v1.endpoints import cases as cases_router
from bami_service.app.api.v1.endpoints import documents as documents_router
from bami_service.app.api.v1.endpoints import chat as chat_router
from bami_service.app.api.v1.endpoints import stream as stream_router
from bami_service.app.api.v1.endpoints import webhooks as webhooks_router
from bami_service.app.api.v1.endpoints import admin as admin_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="BAMI Tracker Service",
    description="Tracks banking application cases, reads uploaded documents with AI and narrates progress live.",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key", "Authorization"],
    max_age=86400,
)

# --- Event Handlers for shared resources ---
@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        app.state.http_client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
        HTTPXClientInstrumentor().instrument()
        logger.info(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

        get_case_repository()
        get_event_channel()
        get_pipeline_scheduler()
        logger.info("Case repository, event channel and pipeline scheduler ready.")

        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not set; AI reading, validation and chat will fall back or fail.")
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    await shutdown_services()
    logger.info("Pipelines drained and live streams closed.")

    if hasattr(app.state, 'http_client') and app.state.http_client:
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

# Instrument FastAPI app
FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router)
app.include_router(stream_router.router, prefix="/api")
app.include_router(cases_router.router, prefix="/api")
app.include_router(documents_router.router, prefix="/api")
app.include_router(chat_router.router, prefix="/api")
app.include_router(webhooks_router.router, prefix="/api")
app.include_router(admin_router.router, prefix="/api")

logger.info("API routers included. Application setup complete.")

# To run: uvicorn bami_service.app.main:app --reload --port 5176
