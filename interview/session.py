"""Topic session state: the single writer of an interview session.

Every read and write goes through a re-entrant lock so that worker threads
(prefetch, background verdicts) and the foreground orchestrator always observe
a consistent session between operations. Reads hand out copies.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from agents.types import QAPair, Topic, Verdict
from .errors import SessionStateError, ValidationError
from .models import PrefetchEntry, Session, TopicOverview, TopicState

logger = logging.getLogger(__name__)

TopicInput = Union[Topic, Dict[str, Any]]


class TopicSessionState:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._lock = RLock()
        self._background_tasks: List[Future] = []

    @classmethod
    def initialize(
        cls,
        topics: Sequence[TopicInput],
        max_questions_per_topic: int,
        enable_final_summary: bool = False,
        *,
        session_id: Optional[str] = None,
    ) -> "TopicSessionState":
        """Build a fresh session with every topic ``not_started`` and the cursor at 0."""

        if not topics:
            raise ValidationError("Topics array must be non-empty")
        if max_questions_per_topic < 1:
            raise ValidationError("max_questions_per_topic must be at least 1")
        parsed = [_coerce_topic(item, index) for index, item in enumerate(topics)]
        fields: Dict[str, Any] = {
            "topics": parsed,
            "topic_states": [TopicState() for _ in parsed],
            "max_questions_per_topic": max_questions_per_topic,
            "enable_final_summary": enable_final_summary,
        }
        if session_id:
            fields["session_id"] = session_id
        return cls(Session(**fields))

    @classmethod
    def restore(cls, session: Session) -> "TopicSessionState":
        """Rebuild state from a persisted session. Background tasks never survive a restore."""

        return cls(Session.model_validate(session.model_dump()))

    # -- plain reads -------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def max_questions_per_topic(self) -> int:
        return self._session.max_questions_per_topic

    @property
    def enable_final_summary(self) -> bool:
        return self._session.enable_final_summary

    @property
    def current_topic_index(self) -> int:
        with self._lock:
            return self._session.current_topic_index

    @property
    def topic_count(self) -> int:
        return len(self._session.topics)

    @property
    def topics(self) -> Tuple[Topic, ...]:
        return tuple(self._session.topics)

    def topic(self, index: int) -> Topic:
        self._check_index(index)
        return self._session.topics[index]

    def topic_state(self, index: int) -> TopicState:
        with self._lock:
            self._check_index(index)
            return self._session.topic_states[index].model_copy(deep=True)

    def qa_list(self, index: int) -> List[QAPair]:
        with self._lock:
            self._check_index(index)
            return [item.model_copy() for item in self._session.topic_states[index].qa_list]

    def current_topic(self) -> Optional[Topic]:
        with self._lock:
            index = self._session.current_topic_index
            if index >= len(self._session.topics):
                return None
            return self._session.topics[index]

    def current_topic_state(self) -> Optional[TopicState]:
        with self._lock:
            index = self._session.current_topic_index
            if index >= len(self._session.topics):
                return None
            return self._session.topic_states[index].model_copy(deep=True)

    # -- mutations ---------------------------------------------------------

    def record_answer(self, question: str, answer: str) -> QAPair:
        with self._lock:
            state = self._current_state_or_raise()
            pair = QAPair(question=question, answer=answer)
            state.qa_list.append(pair)
            if state.status == "not_started":
                state.status = "probing"
            return pair.model_copy()

    def record_verdict(self, verdict: Verdict, index: Optional[int] = None) -> None:
        """Store ``verdict`` for ``index`` (default: current topic) and mark it done.

        The latest call wins; verdicts are never merged.
        """

        with self._lock:
            target = self._session.current_topic_index if index is None else index
            if not 0 <= target < len(self._session.topics):
                raise IndexError(f"Topic index {target} out of range")
            state = self._session.topic_states[target]
            state.verdict = verdict.model_copy(deep=True)
            state.status = "done"

    def advance_topic(self) -> bool:
        with self._lock:
            if self._session.current_topic_index + 1 >= len(self._session.topics):
                return False
            self._session.current_topic_index += 1
            return True

    # -- gates and aggregates ---------------------------------------------

    def should_continue_topic(self) -> bool:
        with self._lock:
            index = self._session.current_topic_index
            if index >= len(self._session.topics):
                return False
            state = self._session.topic_states[index]
            return len(state.qa_list) < self._session.max_questions_per_topic and state.status != "done"

    def has_more_topics(self) -> bool:
        with self._lock:
            return self._session.current_topic_index + 1 < len(self._session.topics)

    def all_verdicts(self) -> List[Verdict]:
        with self._lock:
            return [
                state.verdict.model_copy(deep=True)
                for state in self._session.topic_states
                if state.verdict is not None
            ]

    def results(self) -> List[Tuple[Topic, Optional[Verdict]]]:  # Planning order, verdict or None
        with self._lock:
            return [
                (topic, state.verdict.model_copy(deep=True) if state.verdict is not None else None)
                for topic, state in zip(self._session.topics, self._session.topic_states)
            ]

    def incomplete_topics(self) -> List[Tuple[int, Topic, TopicState]]:
        with self._lock:
            return [
                (index, topic, state.model_copy(deep=True))
                for index, (topic, state) in enumerate(zip(self._session.topics, self._session.topic_states))
                if state.status != "done"
            ]

    def progress(self) -> Tuple[int, int]:
        with self._lock:
            total = len(self._session.topics)
            return min(self._session.current_topic_index + 1, total), total

    def topic_overview(self) -> List[TopicOverview]:
        with self._lock:
            cursor = self._session.current_topic_index
            return [
                TopicOverview(
                    index=index,
                    name=topic.name,
                    status=state.status,
                    questions_asked=len(state.qa_list),
                    score=state.verdict.score if state.verdict is not None else None,
                    is_current=index == cursor,
                )
                for index, (topic, state) in enumerate(zip(self._session.topics, self._session.topic_states))
            ]

    # -- prefetch slots ----------------------------------------------------

    def store_prefetch(self, entry: PrefetchEntry) -> bool:
        """Put ``entry`` in its slot, overwriting any earlier one.

        Refused when the slot's topic is at or behind the cursor or has started.
        """

        with self._lock:
            index = entry.topic_index
            if index <= self._session.current_topic_index or index >= len(self._session.topics):
                return False
            if self._session.topic_states[index].status != "not_started":
                return False
            self._session.prefetched_questions[index] = entry.model_copy(deep=True)
            return True

    def peek_prefetch(self, index: int) -> Optional[PrefetchEntry]:
        with self._lock:
            entry = self._session.prefetched_questions.get(index)
            return entry.model_copy(deep=True) if entry is not None else None

    def pop_prefetch(self, index: int) -> Optional[PrefetchEntry]:
        with self._lock:
            return self._session.prefetched_questions.pop(index, None)

    def clear_prefetches(self) -> None:
        with self._lock:
            self._session.prefetched_questions.clear()

    # -- background task registry -----------------------------------------

    def add_background_task(self, future: Future) -> None:
        with self._lock:
            self._background_tasks.append(future)

    def background_tasks(self) -> List[Future]:
        with self._lock:
            return list(self._background_tasks)

    def clear_background_tasks(self) -> List[Future]:
        with self._lock:
            tasks = self._background_tasks
            self._background_tasks = []
            return tasks

    # -- persistence -------------------------------------------------------

    def snapshot(self) -> Session:
        """Detached copy of the serializable session."""

        with self._lock:
            return Session.model_validate(self._session.model_dump())

    def _current_state_or_raise(self) -> TopicState:
        index = self._session.current_topic_index
        if index >= len(self._session.topics):
            raise SessionStateError("No current topic to record an answer for")
        return self._session.topic_states[index]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._session.topics):
            raise IndexError(f"Topic index {index} out of range")


def _coerce_topic(item: TopicInput, index: int) -> Topic:
    if isinstance(item, Topic):
        return item
    try:
        return Topic.model_validate(item)
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ())) or '<root>'}: {err.get('msg')}"
            for err in exc.errors()
        )
        logger.warning("Rejected topic at index %d: %s", index, details)
        raise ValidationError(f"Topic at index {index} is invalid: {details}") from exc


__all__ = ["TopicSessionState"]
