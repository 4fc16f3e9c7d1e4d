"""API module for the bridge."""

from .routes import messages_endpoint, oai_chat_completions, oai_models, oai_responses

__all__ = [
    "messages_endpoint",
    "oai_chat_completions",
    "oai_models",
    "oai_responses",
]
