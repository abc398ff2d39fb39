from __future__ import annotations  # End-of-interview result report

from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from agents.types import FinalSummary, FitLabel, Level, Topic, Verdict


class TopicResult(BaseModel):  # One row of the results table
    name: str
    required_level: Optional[Level] = None
    assessed: bool = False
    assessed_level: Optional[Level] = None
    score: Optional[int] = None
    confidence: Optional[float] = None
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    comment: str = ""


class InterviewReport(BaseModel):
    session_id: str
    verdicts: List[Verdict] = Field(default_factory=list)
    topics: List[TopicResult] = Field(default_factory=list)
    summary: Optional[FinalSummary] = None
    fit_overall_percent: Optional[int] = None
    fit_label: Optional[FitLabel] = None

    @property
    def assessed_count(self) -> int:
        return sum(1 for row in self.topics if row.assessed)

    @classmethod
    def build(
        cls,
        session_id: str,
        results: Sequence[Tuple[Topic, Optional[Verdict]]],
        summary: Optional[FinalSummary] = None,
    ) -> "InterviewReport":
        """Assemble the report in planning order.

        Summary comments are matched to verdict rows by topic name; topics that
        never got a verdict are listed as unassessed.
        """

        comments: Dict[str, str] = {}
        if summary is not None:
            comments = {item.name.strip().lower(): item.comment for item in summary.per_topic}

        rows: List[TopicResult] = []
        verdicts: List[Verdict] = []
        for topic, verdict in results:
            if verdict is None:
                rows.append(TopicResult(name=topic.name, required_level=topic.required_level))
                continue
            verdicts.append(verdict)
            comment = comments.get(verdict.name.strip().lower()) or comments.get(topic.name.strip().lower(), "")
            rows.append(
                TopicResult(
                    name=verdict.name,
                    required_level=topic.required_level,
                    assessed=True,
                    assessed_level=verdict.assessed_level,
                    score=verdict.score,
                    confidence=verdict.confidence,
                    strengths=list(verdict.strengths),
                    gaps=list(verdict.gaps),
                    comment=comment,
                )
            )

        return cls(
            session_id=session_id,
            verdicts=verdicts,
            topics=rows,
            summary=summary,
            fit_overall_percent=summary.fit_overall_percent if summary is not None else None,
            fit_label=summary.fit_label if summary is not None else None,
        )


__all__ = ["InterviewReport", "TopicResult"]
