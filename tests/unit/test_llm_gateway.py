from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest

from agents.types import TopicAgentReply
from config import LlmRoute
from llm_gateway import PermanentAPIError, SchemaError, TransientNetworkError, chat, resolve_api_key

ASK = {"status": "ask", "question": {"text": "How does MVCC work?"}, "verdict": None}


class FakeResponse:
    def __init__(self, status_code: int, body: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._body = body
        self.text = text or (json.dumps(body) if body is not None else "")

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeClient:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> FakeResponse:
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _completion(content: str) -> FakeResponse:
    return FakeResponse(200, {"choices": [{"message": {"content": content}}]})


def _route(**overrides: Any) -> LlmRoute:
    data: Dict[str, Any] = {
        "name": "topic_agent",
        "base_url": "https://llm.test",
        "endpoint": "/v1/chat/completions",
        "model": "gpt-test",
        "timeout_s": 5,
        "max_retries": 2,
        "retry_delay_s": 0.5,
        "max_tokens": 500,
        "reasoning_effort": "low",
        "response_format": "json_object",
    }
    data.update(overrides)
    return LlmRoute(**data)


@pytest.fixture
def sleeps(monkeypatch):
    calls: List[float] = []
    monkeypatch.setattr("llm_gateway.llm_gateway.time.sleep", calls.append)
    return calls


def _messages() -> List[Dict[str, str]]:
    return [{"role": "system", "content": "Interview one topic."}, {"role": "user", "content": "{}"}]


def test_chat_parses_fenced_json(sleeps):
    client = FakeClient([_completion("```json\n" + json.dumps(ASK) + "\n```")])

    reply = chat(_messages(), TopicAgentReply, cfg=_route(), client=client, api_key="sk-explicit")

    assert reply.question.text == "How does MVCC work?"
    request = client.requests[0]
    assert request["url"] == "https://llm.test/v1/chat/completions"
    assert request["headers"]["Authorization"] == "Bearer sk-explicit"
    assert request["json"]["max_completion_tokens"] == 500
    assert request["json"]["reasoning_effort"] == "low"
    assert request["json"]["response_format"] == {"type": "json_object"}
    assert set(request["json"]) == {"model", "messages", "max_completion_tokens", "reasoning_effort", "response_format"}
    assert sleeps == []


def test_transient_status_is_retried_with_backoff(sleeps):
    client = FakeClient([FakeResponse(503, {}), FakeResponse(429, {}), _completion(json.dumps(ASK))])

    reply = chat(_messages(), TopicAgentReply, cfg=_route(), client=client)

    assert reply.status == "ask"
    assert len(client.requests) == 3
    assert sleeps == [0.5, 1.0]


def test_retries_exhausted_raise_transient(sleeps):
    client = FakeClient([FakeResponse(502, {}) for _ in range(3)])

    with pytest.raises(TransientNetworkError) as excinfo:
        chat(_messages(), TopicAgentReply, cfg=_route(), client=client)

    assert excinfo.value.status_code == 502
    assert "after 3 attempts" in str(excinfo.value)
    assert sleeps == [0.5, 1.0]


def test_transport_errors_are_transient(sleeps):
    client = FakeClient([httpx.ConnectError("connection refused"), _completion(json.dumps(ASK))])

    reply = chat(_messages(), TopicAgentReply, cfg=_route(), client=client)

    assert reply.status == "ask"
    assert sleeps == [0.5]


def test_permanent_error_is_not_retried(sleeps):
    body = {"error": {"message": "Incorrect API key provided"}}
    client = FakeClient([FakeResponse(401, body)])

    with pytest.raises(PermanentAPIError) as excinfo:
        chat(_messages(), TopicAgentReply, cfg=_route(), client=client)

    assert excinfo.value.status_code == 401
    assert "Incorrect API key provided" in str(excinfo.value)
    assert len(client.requests) == 1
    assert sleeps == []


def test_non_json_body_is_permanent(sleeps):
    client = FakeClient([FakeResponse(200, None, text="<html>gateway</html>")])

    with pytest.raises(PermanentAPIError):
        chat(_messages(), TopicAgentReply, cfg=_route(), client=client)


def test_missing_content_is_permanent(sleeps):
    client = FakeClient([FakeResponse(200, {"choices": []})])

    with pytest.raises(PermanentAPIError):
        chat(_messages(), TopicAgentReply, cfg=_route(), client=client)


def test_schema_violation_raises_with_field_errors(sleeps):
    bad = {"status": "ask", "question": None, "verdict": None}
    client = FakeClient([_completion(json.dumps(bad))])

    with pytest.raises(SchemaError) as excinfo:
        chat(_messages(), TopicAgentReply, cfg=_route(), client=client)

    assert excinfo.value.errors
    assert len(client.requests) == 1
    assert sleeps == []


def test_resolve_api_key_prefers_explicit_key(monkeypatch):
    monkeypatch.setenv("TEST_LLM_KEY", "sk-from-env")
    route = _route(api_key_env="TEST_LLM_KEY")

    assert resolve_api_key(route) == "sk-from-env"
    assert resolve_api_key(route, "sk-explicit") == "sk-explicit"
    assert resolve_api_key(_route()) is None
