from __future__ import annotations  # Agent exports for the interview orchestrator

from .final_summary import FinalSummaryAgent
from .gateway import AGENT_SCHEMAS, AgentGateway, coerce_output
from .planner import PlannerAgent
from .topic_agent import TopicAgent
from .types import (
    FINAL_SUMMARY_ROLE,
    PLANNER_ROLE,
    TOPIC_AGENT_ROLE,
    Ask,
    Final,
    FinalSummary,
    PlannerPlan,
    QAPair,
    Topic,
    TopicAgentReply,
    TopicComment,
    TopicTurn,
    Verdict,
)

__all__ = [
    "AGENT_SCHEMAS",
    "AgentGateway",
    "Ask",
    "FINAL_SUMMARY_ROLE",
    "Final",
    "FinalSummary",
    "FinalSummaryAgent",
    "PLANNER_ROLE",
    "PlannerAgent",
    "PlannerPlan",
    "QAPair",
    "TOPIC_AGENT_ROLE",
    "Topic",
    "TopicAgent",
    "TopicAgentReply",
    "TopicComment",
    "TopicTurn",
    "Verdict",
    "coerce_output",
]
