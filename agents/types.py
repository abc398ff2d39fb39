"""Shared type definitions for agents."""
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

Level = Literal["basic", "solid", "deep"]
FitLabel = Literal["Strong match", "Good / Partial fit", "Weak fit", "Poor fit"]

PLANNER_ROLE = "planner"
TOPIC_AGENT_ROLE = "topic_agent"
FINAL_SUMMARY_ROLE = "final_summary"
AgentRole = Literal["planner", "topic_agent", "final_summary"]


class Topic(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=3, max_length=100)
    importance: int = Field(ge=1, le=5)
    required_level: Level
    merged_from: List[str] = Field(default_factory=list, max_length=12)


class QAPair(BaseModel):
    question: str
    answer: str


class Verdict(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    assessed_level: Level
    score: int = Field(ge=0, le=5)
    confidence: float = Field(ge=0.0, le=1.0)
    strengths: List[str] = Field(default_factory=list, max_length=6)
    gaps: List[str] = Field(default_factory=list, max_length=8)


class PlannerPlan(BaseModel):
    topics: List[Topic] = Field(min_length=1, max_length=10)


class QuestionText(BaseModel):
    text: str = Field(min_length=8, max_length=400)


class Ask(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ask"] = "ask"
    text: str


class Final(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["final"] = "final"
    verdict: Verdict


TopicTurn = Union[Ask, Final]


class TopicAgentReply(BaseModel):
    """Raw topic agent output.

    Both ``question`` and ``verdict`` are required keys; the one that does not
    match ``status`` must be an explicit ``null``.
    """

    status: Literal["ask", "final"]
    question: Optional[QuestionText]
    verdict: Optional[Verdict]

    @model_validator(mode="after")
    def _check_branch(self) -> "TopicAgentReply":
        if self.status == "ask":
            if self.question is None:
                raise ValueError("status 'ask' requires a question")
            if self.verdict is not None:
                raise ValueError("status 'ask' requires verdict to be null")
        else:
            if self.verdict is None:
                raise ValueError("status 'final' requires a verdict")
            if self.question is not None:
                raise ValueError("status 'final' requires question to be null")
        return self

    def as_turn(self) -> TopicTurn:
        if self.status == "ask" and self.question is not None:
            return Ask(text=self.question.text)
        if self.verdict is not None:
            return Final(verdict=self.verdict)
        raise ValueError("topic agent reply carries neither question nor verdict")


class TopicComment(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    score: int = Field(ge=0, le=5)
    assessed_level: Level
    comment: str = Field(min_length=10, max_length=300)


class FinalSummary(BaseModel):
    per_topic: List[TopicComment] = Field(min_length=1)
    fit_overall_percent: int = Field(ge=0, le=100)
    fit_label: FitLabel


__all__ = [
    "AgentRole",
    "Ask",
    "FINAL_SUMMARY_ROLE",
    "Final",
    "FinalSummary",
    "FitLabel",
    "Level",
    "PLANNER_ROLE",
    "PlannerPlan",
    "QAPair",
    "QuestionText",
    "TOPIC_AGENT_ROLE",
    "Topic",
    "TopicAgentReply",
    "TopicComment",
    "TopicTurn",
    "Verdict",
]
