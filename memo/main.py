"""
Relay service main entry point.

Serves the streaming analysis and chat endpoints used by the extension.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from memo.api.middleware import RequestIDMiddleware
from memo.api.routes import api_router
from memo.core.config import Settings, get_settings
from memo.core.exceptions import MemoException
from memo.core.logging import LogConfig, get_logger, setup_logging
from memo.providers.llm import BaseLLMProvider, OpenAIProvider
from memo.services import RelayService

logger = get_logger("app")


def create_provider(settings: Settings) -> BaseLLMProvider:
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        model_name=settings.openai_model,
        base_url=settings.openai_base_url,
        connect_timeout=settings.upstream_connect_timeout,
        idle_timeout=settings.upstream_idle_timeout,
    )


async def memo_exception_handler(request: Request, exc: MemoException) -> JSONResponse:
    """Render relay errors as JSON with their own status code."""
    logger.warning(
        f"{request.method} {request.url.path} failed: {exc.message}",
        extra={
            "extra_fields": {
                "event": "request_error",
                "error_code": exc.error_code,
                "status_code": exc.status_code,
            }
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    settings: Settings | None = None,
    provider: BaseLLMProvider | None = None,
) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()
    provider = provider or create_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting relay on port {settings.port}")
        logger.info(f"Upstream: {settings.openai_base_url} ({settings.openai_model})")
        yield
        await provider.aclose()
        logger.info("Relay shutdown")

    app = FastAPI(
        title=settings.app_name,
        description="Streaming sentence analysis relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay_service = RelayService(provider, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(MemoException, memo_exception_handler)

    app.include_router(api_router)
    return app


def main():
    """Run the relay service."""
    settings = get_settings()
    setup_logging(LogConfig(level=settings.log_level, format=settings.log_format))
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="info" if not settings.debug else "debug",
    )


if __name__ == "__main__":
    main()
