import copy
import os
import sys
import threading
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agents.types import FINAL_SUMMARY_ROLE, PLANNER_ROLE, TOPIC_AGENT_ROLE
from config.settings import settings
from storage.migrate import migrate

JOB_DESCRIPTION = (
    "Senior backend engineer. Python services, PostgreSQL tuning, message queues "
    "and distributed systems design for a payments platform."
)
CANDIDATE_CV = (
    "Eight years building Python APIs with FastAPI and Django, ran PostgreSQL clusters, "
    "designed Kafka pipelines and led a migration to Kubernetes."
)

Handler = Callable[[Dict[str, Any]], Any]


def ask(text: str) -> Dict[str, Any]:
    return {"status": "ask", "question": {"text": text}, "verdict": None}


def verdict(name: str, score: int = 3, level: str = "solid") -> Dict[str, Any]:
    return {
        "name": name,
        "assessed_level": level,
        "score": score,
        "confidence": 0.8,
        "strengths": ["clear reasoning"],
        "gaps": [],
    }


def final(name: str, score: int = 3, level: str = "solid") -> Dict[str, Any]:
    return {"status": "final", "question": None, "verdict": verdict(name, score, level)}


def topic(name: str, importance: int = 3, level: str = "solid") -> Dict[str, Any]:
    return {"name": name, "importance": importance, "required_level": level, "merged_from": []}


def plan(*names: str) -> Dict[str, Any]:
    return {"topics": [topic(name) for name in names]}


def default_topic_agent(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Asks until told to finalize, then scores the topic 3/5."""

    if payload.get("finalize"):
        return final(payload["topic_name"])
    return ask(f"Question {payload['questions_asked'] + 1} about {payload['topic_name']}?")


class ScriptedGateway:
    """Stands in for ``AgentGateway``; each role is answered by a plain callable."""

    def __init__(
        self,
        *,
        planner: Optional[Handler] = None,
        topic_agent: Optional[Handler] = None,
        final_summary: Optional[Handler] = None,
        api_key: Optional[str] = "sk-test-key",
    ) -> None:
        self.handlers: Dict[str, Optional[Handler]] = {
            PLANNER_ROLE: planner,
            TOPIC_AGENT_ROLE: topic_agent or default_topic_agent,
            FINAL_SUMMARY_ROLE: final_summary,
        }
        self.api_key = api_key
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def invoke_agent(self, role: str, payload: Dict[str, Any], schema: Any = None) -> Any:
        with self._lock:
            self.calls.append((role, copy.deepcopy(payload)))
        handler = self.handlers.get(role)
        if handler is None:
            raise AssertionError(f"unexpected {role} call")
        return handler(payload)

    def credentials(self) -> Dict[str, Optional[str]]:
        return {role: self.api_key for role in self.handlers}

    def calls_for(self, role: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [payload for name, payload in self.calls if name == role]


def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture(autouse=True)
def tmp_cache(monkeypatch, tmp_path):
    db_path = str(tmp_path / "session.db")
    monkeypatch.setattr(settings, "SESSION_CACHE_PATH", db_path, raising=False)
    migrate(db_path)
    yield db_path


@pytest.fixture
def fakes():
    return SimpleNamespace(
        ScriptedGateway=ScriptedGateway,
        ask=ask,
        final=final,
        verdict=verdict,
        topic=topic,
        plan=plan,
        default_topic_agent=default_topic_agent,
        wait_until=wait_until,
        JOB_DESCRIPTION=JOB_DESCRIPTION,
        CANDIDATE_CV=CANDIDATE_CV,
    )
