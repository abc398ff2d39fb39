from __future__ import annotations  # Interview session state models

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from agents.types import QAPair, Topic, Verdict
from .report import InterviewReport

TopicStatus = Literal["not_started", "probing", "done"]
Phase = Literal["idle", "planning", "awaiting_answer", "transitioning", "ending"]

SNAPSHOT_VERSION = "2.0"


class TopicState(BaseModel):  # Per-topic progress, indexed by topic position
    status: TopicStatus = "not_started"
    qa_list: List[QAPair] = Field(default_factory=list)
    verdict: Optional[Verdict] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "TopicState":
        if self.status == "done" and self.verdict is None:
            raise ValueError("topic marked done without a verdict")
        if self.status == "not_started" and self.qa_list:
            raise ValueError("topic not started but has recorded answers")
        return self


class PrefetchEntry(BaseModel):  # Opening question fetched ahead for a topic not yet begun
    question_text: str
    topic_index: int = Field(ge=0)
    raw_agent_output: Dict[str, Any] = Field(default_factory=dict)


class CurrentQuestion(BaseModel):  # Question currently awaiting the candidate's answer
    text: str
    topic_index: int = Field(ge=0)


class Session(BaseModel):  # Serializable interview session owned by TopicSessionState
    session_id: str = Field(default_factory=lambda: uuid4().hex)
    topics: List[Topic] = Field(min_length=1)
    topic_states: List[TopicState]
    current_topic_index: int = Field(default=0, ge=0)
    max_questions_per_topic: int = Field(default=5, ge=1)
    enable_final_summary: bool = False
    prefetched_questions: Dict[int, PrefetchEntry] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_shape(self) -> "Session":
        if len(self.topic_states) != len(self.topics):
            raise ValueError("topic_states must have one entry per topic")
        if self.current_topic_index > len(self.topics):
            raise ValueError("current_topic_index out of bounds")
        return self


class SessionSnapshot(BaseModel):  # Unit handed to the persistence collaborator
    version: str = SNAPSHOT_VERSION
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session: Session
    current_question: Optional[CurrentQuestion] = None
    phase: Phase = "awaiting_answer"


class TopicOverview(BaseModel):  # Status row for progress displays
    index: int
    name: str
    status: TopicStatus
    questions_asked: int
    score: Optional[int] = None
    is_current: bool = False


class InterviewRequest(BaseModel):  # Inputs required to plan an interview
    job_description: str
    candidate_cv: str
    enable_final_summary: Optional[bool] = None


class InterviewTurn(BaseModel):  # What the caller shows after start, submit or restore
    session_id: str
    phase: Phase
    question: Optional[CurrentQuestion] = None
    topic_name: Optional[str] = None
    progress_current: int = 0
    progress_total: int = 0
    finished: bool = False
    report: Optional[InterviewReport] = None


class InterviewStatus(BaseModel):  # Read-only view for progress displays
    phase: Phase
    session_id: Optional[str] = None
    progress_current: int = 0
    progress_total: int = 0
    current_question: Optional[CurrentQuestion] = None
    topics: List[TopicOverview] = Field(default_factory=list)


__all__ = [
    "CurrentQuestion",
    "InterviewRequest",
    "InterviewStatus",
    "InterviewTurn",
    "Phase",
    "PrefetchEntry",
    "SNAPSHOT_VERSION",
    "Session",
    "SessionSnapshot",
    "TopicOverview",
    "TopicState",
    "TopicStatus",
]
