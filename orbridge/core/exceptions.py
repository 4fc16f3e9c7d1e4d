"""Core exceptions for the bridge."""

from typing import Optional


class ProxyError(Exception):
    """Base exception for bridge errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""
    pass


class TranslationError(ProxyError):
    """Base class for failures while translating a conversation."""

    code = "translation_error"


class StructuralInputError(TranslationError):
    """Raised when the source conversation or one of its messages is malformed.

    ``index`` is the offending message index (``None`` for top-level fields)
    and ``field`` names the missing or invalid field when known.
    """

    code = "invalid_request"

    def __init__(
        self,
        message: str,
        *,
        index: Optional[int] = None,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.field = field


class SerializationError(TranslationError):
    """Raised when tool input or tool result content cannot be serialized."""

    code = "serialization_error"
