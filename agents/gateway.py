from __future__ import annotations  # Role-aware gateway in front of the LLM client

import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from config import AppConfig, LlmRoute, resolve_registry, settings
from llm_gateway import HttpClient, LlmGatewayError, chat, require_valid, resolve_api_key
from observability import span
from .prompts import DEFAULT_PROMPTS
from .types import FINAL_SUMMARY_ROLE, PLANNER_ROLE, TOPIC_AGENT_ROLE, AgentRole, FinalSummary, PlannerPlan, TopicAgentReply

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

AGENT_SCHEMAS: Dict[str, Type[BaseModel]] = {
    PLANNER_ROLE: PlannerPlan,
    TOPIC_AGENT_ROLE: TopicAgentReply,
    FINAL_SUMMARY_ROLE: FinalSummary,
}


class AgentGateway:  # Sends a role prompt plus JSON input and returns the validated result
    def __init__(
        self,
        registry: Mapping[str, Tuple[LlmRoute, Type[BaseModel]]],
        *,
        prompts: Optional[Mapping[str, str]] = None,
        api_key: Optional[str] = None,
        client: Optional[HttpClient] = None,
    ) -> None:
        self._registry = dict(registry)
        self._prompts = {**DEFAULT_PROMPTS, **{k: v for k, v in (prompts or {}).items() if v and v.strip()}}
        self._api_key = api_key
        self._client = client

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        *,
        api_key: Optional[str] = None,
        client: Optional[HttpClient] = None,
    ) -> "AgentGateway":  # Build gateway from application config
        registry = {
            role: (_with_key_env(route), schema) for role, (route, schema) in resolve_registry(cfg, AGENT_SCHEMAS).items()
        }
        return cls(registry, prompts=cfg.prompts, api_key=api_key, client=client)

    def invoke_agent(self, role: AgentRole, payload: Dict[str, Any], schema: Optional[Type[T]] = None) -> BaseModel:
        route, registered = self._route(role)
        target = schema or registered
        prompt = self._prompts.get(role, "").strip()
        if not prompt:
            raise LlmGatewayError(f"System prompt for '{role}' is empty or not configured")
        messages = [
            {"role": "system", "content": prompt},
            {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
        ]
        with span("agent", role=role, model=route.model):
            return chat(messages, target, cfg=route, client=self._client, api_key=self._api_key)

    def credentials(self) -> Dict[str, Optional[str]]:  # API key each role will send
        return {role: resolve_api_key(route, self._api_key) for role, (route, _) in self._registry.items()}

    def _route(self, role: str) -> Tuple[LlmRoute, Type[BaseModel]]:
        if role not in self._registry:
            raise KeyError(f"Registry missing {role}")
        return self._registry[role]


def _with_key_env(route: LlmRoute) -> LlmRoute:  # Routes without their own key variable use the default one
    if route.api_key_env:
        return route
    return route.model_copy(update={"api_key_env": settings.API_KEY_ENV})


def coerce_output(result: Any, schema: Type[T], *, label: str) -> T:  # Normalize gateway output into the role schema
    if isinstance(result, schema):
        return result
    if isinstance(result, BaseModel):
        result = result.model_dump()
    return require_valid(schema, result, label=label)


__all__ = ["AGENT_SCHEMAS", "AgentGateway", "coerce_output"]
