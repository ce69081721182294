from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from persona_chat.api import chat as chat_api
from persona_chat.content.loader import load_content
from persona_chat.core.config import get_settings
from persona_chat.core.logging import setup_logging
from persona_chat.services.conversation_service import create_conversation_service


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Invalid settings or conversation content raise here, so a misconfigured
    process never starts serving.
    """

    settings = get_settings()
    setup_logging(settings.log_level)
    content = load_content(settings.content_path)

    app = FastAPI(title=f"{content.persona.name} chat")
    app.state.content = content
    app.state.conversation_service = create_conversation_service(
        content=content, settings=settings
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_api.health_router)
    app.include_router(chat_api.router)

    return app


def run() -> None:
    """Serve the application with uvicorn using configured host and port."""

    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "persona_chat.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
    )
