import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from affilify.config import settings
from affilify.db.base import engine, init_db
from affilify.llm.client import LLMClient
from affilify.routers import websites
from affilify.services.website_pipeline import PipelineError

logger = logging.getLogger(__name__)


def _log_degraded_integrations() -> None:
    provider = LLMClient.provider_for_model(settings.LLM_DEFAULT_MODEL)
    model_keys = {
        "gemini": settings.GEMINI_API_KEY,
        "openai": settings.OPENAI_API_KEY,
        "anthropic": settings.ANTHROPIC_API_KEY,
    }
    if not model_keys.get(provider):
        logger.warning(
            "No model credential configured; websites will use the fallback template",
            extra={"model": settings.LLM_DEFAULT_MODEL, "provider": provider},
        )
    if not settings.UNSPLASH_ACCESS_KEY:
        logger.warning("UNSPLASH_ACCESS_KEY not set; websites will use placeholder images")
    if not settings.NETLIFY_ACCESS_TOKEN:
        logger.warning("NETLIFY_ACCESS_TOKEN not set; websites will only be served internally")


@asynccontextmanager
async def _app_lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_db()
    _log_degraded_integrations()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Affilify Website Generator API",
        default_response_class=ORJSONResponse,
        lifespan=_app_lifespan,
    )

    allow_origins = sorted(set(settings.BACKEND_CORS_ORIGINS))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(_request: Request, exc: PipelineError) -> ORJSONResponse:
        return ORJSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(_request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
        logger.exception("Database error", exc_info=exc)
        return ORJSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": "Database query failed."},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": "Internal server error."},
        )

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health/db")
    def health_db() -> dict[str, str]:
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return {"db": "ok"}
        except SQLAlchemyError as exc:
            return {"db": f"error: {exc}"}

    app.include_router(websites.router)

    return app


app = create_app()
