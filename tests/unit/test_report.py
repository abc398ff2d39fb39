from __future__ import annotations

from agents.types import FinalSummary, Topic, Verdict
from interview.report import InterviewReport


def _topic(name: str) -> Topic:
    return Topic(name=name, importance=3, required_level="solid")


def _verdict(name: str, score: int) -> Verdict:
    return Verdict(name=name, assessed_level="solid", score=score, confidence=0.6, strengths=["depth"])


def test_report_merges_summary_comments_by_name():
    summary = FinalSummary.model_validate(
        {
            "per_topic": [
                {"name": "sql databases", "score": 2, "assessed_level": "basic", "comment": "Needs more on locking."},
                {"name": "Python", "score": 4, "assessed_level": "solid", "comment": "Confident with the runtime."},
            ],
            "fit_overall_percent": 64,
            "fit_label": "Good / Partial fit",
        }
    )
    results = [
        (_topic("Python"), _verdict("Python", 4)),
        (_topic("SQL databases"), _verdict("SQL databases", 2)),
        (_topic("Kafka queues"), None),
    ]

    report = InterviewReport.build("session-1", results, summary)

    assert [row.comment for row in report.topics] == [
        "Confident with the runtime.",
        "Needs more on locking.",
        "",
    ]
    assert [row.assessed for row in report.topics] == [True, True, False]
    assert report.assessed_count == 2
    assert report.fit_overall_percent == 64
    assert report.fit_label == "Good / Partial fit"


def test_report_without_summary():
    report = InterviewReport.build("session-2", [(_topic("Python"), _verdict("Python", 3))])

    assert report.summary is None
    assert report.fit_overall_percent is None
    assert report.fit_label is None
    assert report.topics[0].strengths == ["depth"]
    assert [item.name for item in report.verdicts] == ["Python"]
