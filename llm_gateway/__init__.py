from __future__ import annotations  # Re-export llm_gateway public API

from .errors import FieldError, LlmGatewayError, PermanentAPIError, SchemaError, TransientNetworkError
from .llm_gateway import HttpClient, HttpResponse, chat, resolve_api_key
from .validation import ValidationReport, require_valid, validate_payload

__all__ = [
    "FieldError",
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "PermanentAPIError",
    "SchemaError",
    "TransientNetworkError",
    "ValidationReport",
    "chat",
    "require_valid",
    "resolve_api_key",
    "validate_payload",
]
