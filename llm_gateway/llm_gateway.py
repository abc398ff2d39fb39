from __future__ import annotations  # LLM request gateway module

import json
import logging
import os
import time
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel

from config import LlmRoute
from .errors import LlmGatewayError, PermanentAPIError, TransientNetworkError
from .validation import require_valid


logger = logging.getLogger(__name__)  # Module logger setup

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


T = TypeVar("T", bound=BaseModel)


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    api_key: Optional[str] = None,
) -> T:
    base_messages: list[Dict[str, str]] = []
    if cfg.enforce_json:
        base_messages.append({"role": "system", "content": _schema_instruction(schema)})
    base_messages.extend(_normalize_messages(messages))
    payload = _build_payload(cfg, base_messages)
    headers = _build_headers(cfg, api_key)
    attempts = cfg.max_retries + 1
    preview = _preview(messages)
    if len(preview) > 120:
        preview = preview[:117] + "..."
    logger.info(
        "LLM request start route=%s model=%s attempts=%d preview=%s",
        cfg.name,
        cfg.model,
        attempts,
        preview,
    )
    for attempt in range(attempts):
        logger.info(
            "LLM request send route=%s model=%s attempt=%d/%d",
            cfg.name,
            cfg.model,
            attempt + 1,
            attempts,
        )
        try:
            data = _send(cfg, payload, headers, client)
        except TransientNetworkError as exc:
            if attempt + 1 >= attempts:
                logger.error("LLM request exhausted retries route=%s: %s", cfg.name, exc)
                raise TransientNetworkError(
                    f"LLM request failed after {attempts} attempts: {exc}",
                    status_code=exc.status_code,
                ) from exc
            delay = cfg.retry_delay_s * (2 ** attempt)
            logger.warning(
                "LLM request failed route=%s: %s, retrying in %.2fs (attempt %d/%d)",
                cfg.name,
                exc,
                delay,
                attempt + 1,
                attempts,
            )
            time.sleep(delay)
            continue
        content = _extract_content(data)
        parsed = require_valid(schema, _strip_code_fences(content), label=cfg.name)
        logger.info(
            "LLM request done route=%s model=%s attempt=%d",
            cfg.name,
            cfg.model,
            attempt + 1,
        )
        return parsed
    raise LlmGatewayError("LLM request made no attempts")


def resolve_api_key(cfg: LlmRoute, api_key: Optional[str] = None) -> Optional[str]:  # Explicit key wins over route env var
    if api_key:
        return api_key
    if cfg.api_key_env:
        return os.getenv(cfg.api_key_env) or None
    return None


def _send(
    cfg: LlmRoute,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    client: Optional[HttpClient],
) -> Any:  # Perform one HTTP round trip and classify failures
    try:
        response, close_cb = _post(f"{cfg.base_url}{cfg.endpoint}", payload, headers, cfg.timeout_s, client)
    except (httpx.TransportError, OSError) as exc:
        raise TransientNetworkError(f"LLM transport failed: {exc}") from exc
    try:
        status = response.status_code
        if status in RETRYABLE_STATUSES:
            logger.warning("LLM retryable status: %s", status)
            raise TransientNetworkError(f"LLM returned status {status}", status_code=status)
        if status >= 400:
            message = _error_message(response)
            logger.error("LLM error status: %s %s", status, message)
            raise PermanentAPIError(f"LLM returned status {status}: {message}", status_code=status)
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Invalid JSON payload from LLM: %s", exc)
            raise PermanentAPIError("LLM payload was not JSON", status_code=status) from exc
    finally:
        _close_safely(close_cb)


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _build_payload(cfg: LlmRoute, messages: Sequence[Dict[str, str]]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"model": cfg.model, "messages": list(messages)}
    if cfg.max_tokens is not None:
        payload["max_completion_tokens"] = cfg.max_tokens
    if cfg.reasoning_effort:
        payload["reasoning_effort"] = cfg.reasoning_effort
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}
    return payload


def _build_headers(cfg: LlmRoute, api_key: Optional[str]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    key = resolve_api_key(cfg, api_key)
    if key:
        headers["Authorization"] = f"Bearer {key}"
    headers.update(cfg.extra_headers)
    return headers


def _schema_instruction(schema: Type[BaseModel]) -> str:
    schema_json = json.dumps(schema.model_json_schema(), indent=2)
    return "Reply with a single JSON object matching this schema:\n" + schema_json


def _error_message(response: HttpResponse) -> str:  # Pull provider error message from an error body
    try:
        body = response.json()
    except ValueError:
        return response.text or "unknown error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
        if isinstance(body.get("message"), str):
            return body["message"]
    return response.text or "unknown error"


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> list[Dict[str, str]]:  # Ensure message payload shape
    normalized: list[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = _clean_prompt_text(str(item.get("content", "")))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _clean_prompt_text(text: str) -> str:  # Collapse blank lines and trim each line
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line).strip()


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in messages:
        text = str(message.get("content", "")).strip()
        if text:
            return text.splitlines()[0]
    return ""


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise PermanentAPIError("LLM response missing content")


def _strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines:
            lines = lines[1:]
            while lines and lines[0].strip() == "":
                lines = lines[1:]
            while lines and lines[-1].strip() == "":
                lines = lines[:-1]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text
