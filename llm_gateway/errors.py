from __future__ import annotations  # Gateway error taxonomy

from typing import List, Optional, Sequence

from pydantic import BaseModel


class FieldError(BaseModel):  # Single field-level validation diagnostic
    loc: str
    message: str


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class TransientNetworkError(LlmGatewayError):  # Network failure or retryable status after retries ran out
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermanentAPIError(LlmGatewayError):  # Non-retryable provider failure
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SchemaError(LlmGatewayError):  # Agent output failed structural validation
    def __init__(self, message: str, errors: Sequence[FieldError] = ()) -> None:
        self.errors: List[FieldError] = list(errors)
        if self.errors:
            details = "; ".join(f"{item.loc}: {item.message}" for item in self.errors)
            message = f"{message}: {details}"
        super().__init__(message)


__all__ = [
    "FieldError",
    "LlmGatewayError",
    "PermanentAPIError",
    "SchemaError",
    "TransientNetworkError",
]
