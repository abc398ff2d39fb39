from __future__ import annotations  # Closing summary agent over all topic verdicts

from typing import Any, Sequence

from .gateway import coerce_output
from .types import FINAL_SUMMARY_ROLE, FinalSummary, Verdict


class FinalSummaryAgent:  # Produces the overall fit assessment
    def __init__(self, gateway: Any) -> None:
        self._gateway = gateway

    def summarize(self, verdicts: Sequence[Verdict]) -> FinalSummary:
        raw = self._gateway.invoke_agent(
            FINAL_SUMMARY_ROLE,
            {"topic_verdicts": [item.model_dump() for item in verdicts]},
        )
        return coerce_output(raw, FinalSummary, label="FinalSummary")


__all__ = ["FinalSummaryAgent"]
