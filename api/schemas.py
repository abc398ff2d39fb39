"""Pydantic schemas for the interview API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from interview.models import InterviewRequest, InterviewTurn


class StartReq(InterviewRequest):
    pass


class AnswerReq(BaseModel):
    answer: str


class RestoreResp(BaseModel):
    restored: bool
    turn: Optional[InterviewTurn] = None


class ErrorDetail(BaseModel):
    message: str
    status_code: Optional[int] = None
    errors: List[str] = Field(default_factory=list)
