"""Main FastAPI application for orbridge."""

import logging
from typing import Optional

from fastapi import FastAPI

from .api.routes import messages_endpoint, oai_chat_completions, oai_models, oai_responses
from .api.routes.oai import OAI_CHAT_PATH, OAI_MODELS_PATH, OAI_RESPONSES_PATH
from .config_loader import Settings, load_settings
from .logging import setup_logging

logger = logging.getLogger("orbridge")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Resolved settings; loaded from the config file and
            environment when omitted.
    """
    if settings is None:
        settings = load_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="orbridge")
    app.state.settings = settings

    app.post("/v1/messages")(messages_endpoint)
    app.post(OAI_CHAT_PATH)(oai_chat_completions)
    app.post(OAI_RESPONSES_PATH)(oai_responses)
    app.get(OAI_MODELS_PATH)(oai_models)
    app.get(OAI_MODELS_PATH + "/{model_id:path}")(oai_models)

    logger.info(
        "orbridge app created: upstream=%s, default_provider=%s",
        settings.base_url,
        settings.default_provider or "none",
    )
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = load_settings()
    app = create_app(settings)
    logger.info("Starting orbridge on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


__all__ = ["create_app", "run"]
