"""API routes for the bridge."""

from .messages import messages_endpoint
from .oai import oai_chat_completions, oai_models, oai_responses

__all__ = [
    "messages_endpoint",
    "oai_chat_completions",
    "oai_models",
    "oai_responses",
]
