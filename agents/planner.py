from __future__ import annotations  # Planner agent turning a job description and CV into topics

from typing import Any, List

from llm_gateway import FieldError, SchemaError
from .gateway import coerce_output
from .types import PLANNER_ROLE, PlannerPlan, Topic


class PlannerAgent:  # Produces the ordered topic plan for one interview
    def __init__(self, gateway: Any) -> None:
        self._gateway = gateway

    def plan(self, job_description: str, candidate_cv: str, *, max_topics: int) -> List[Topic]:
        raw = self._gateway.invoke_agent(
            PLANNER_ROLE,
            {"job_description": job_description, "candidate_cv": candidate_cv},
        )
        plan = coerce_output(raw, PlannerPlan, label="Planner")
        if len(plan.topics) > max_topics:
            raise SchemaError(
                "Planner validation failed",
                [FieldError(loc="topics", message=f"expected at most {max_topics} topics, got {len(plan.topics)}")],
            )
        return list(plan.topics)


__all__ = ["PlannerAgent"]
