from __future__ import annotations  # Speculative question fetching and deferred verdicts

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from agents.topic_agent import TopicAgent
from agents.types import Ask, QAPair, Topic, Verdict
from config.settings import settings
from observability import log_event
from .models import PrefetchEntry
from .session import TopicSessionState

logger = logging.getLogger(__name__)


@dataclass
class DrainResult:  # Outcome of joining background verdict tasks
    completed: int = 0
    failed: int = 0
    timed_out: int = 0


class PrefetchManager:
    """Runs topic agent calls off the foreground path.

    Only two kinds of writes reach the session from worker threads: a stored
    prefetch slot and ``record_verdict`` with the index captured at launch.
    Both stop once the manager is closed.
    """

    def __init__(
        self,
        state: TopicSessionState,
        topic_agent: TopicAgent,
        *,
        max_workers: int = settings.PREFETCH_WORKERS,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._state = state
        self._topic_agent = topic_agent
        self._on_change = on_change
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="interview-prefetch")
        self._guard = threading.Lock()
        self._inflight: Set[int] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def inflight(self) -> Set[int]:
        with self._guard:
            return set(self._inflight)

    def prefetch_next(self) -> Optional[Future]:
        """Fetch the opening question for the topic after the cursor, if useful."""

        index = self._state.current_topic_index + 1
        if index >= self._state.topic_count:
            return None
        if self._state.peek_prefetch(index) is not None:
            return None
        if self._state.topic_state(index).status != "not_started":
            return None
        with self._guard:
            if self._closed or index in self._inflight:
                return None
            self._inflight.add(index)
        topic = self._state.topic(index)
        logger.debug("Prefetching opening question for topic %d (%s)", index, topic.name)
        return self._executor.submit(self._prefetch, index, topic)

    def consume(self, index: int) -> Optional[PrefetchEntry]:
        entry = self._state.pop_prefetch(index)
        if entry is not None:
            log_event("prefetch_consumed", self._state.session_id, topic_index=index)
            self._notify()
        return entry

    def launch_background_verdict(self, left_index: int) -> Future:
        """Close ``left_index`` off the foreground path with a snapshot of its history."""

        topic = self._state.topic(left_index)
        qa_list = self._state.qa_list(left_index)
        future = self._executor.submit(self._resolve_verdict, left_index, topic, qa_list)
        self._state.add_background_task(future)
        log_event("background_verdict_started", self._state.session_id, topic_index=left_index, topic=topic.name)
        return future

    def drain(self, timeout: float) -> DrainResult:
        """Join registered verdict tasks for up to ``timeout`` seconds, then close.

        Closing also drops any prefetched questions that were never consumed.
        """

        tasks = self._state.clear_background_tasks()
        result = DrainResult()
        if tasks:
            done, pending = wait(tasks, timeout=timeout)
            for future in done:
                if future.exception() is not None or future.result() is None:
                    result.failed += 1
                else:
                    result.completed += 1
            result.timed_out = len(pending)
            if pending:
                logger.warning("%d background verdict task(s) still running after %.1fs", len(pending), timeout)
        with self._guard:
            self._closed = True
        self._state.clear_prefetches()
        log_event(
            "background_drained",
            self._state.session_id,
            completed=result.completed,
            failed=result.failed,
            timed_out=result.timed_out,
        )
        return result

    def shutdown(self) -> None:
        with self._guard:
            self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _prefetch(self, index: int, topic: Topic) -> bool:
        try:
            reply = self._topic_agent.request(topic, [])
            turn = reply.as_turn()
            if not isinstance(turn, Ask):
                logger.warning("Prefetch for topic %d returned a verdict instead of a question", index)
                return False
            entry = PrefetchEntry(question_text=turn.text, topic_index=index, raw_agent_output=reply.model_dump())
            with self._guard:
                stored = not self._closed and self._state.store_prefetch(entry)
            if stored:
                log_event("prefetch_stored", self._state.session_id, topic_index=index, topic=topic.name)
                self._notify()
            return stored
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prefetch for topic %d failed: %s", index, exc)
            return False
        finally:
            with self._guard:
                self._inflight.discard(index)

    def _resolve_verdict(self, index: int, topic: Topic, qa_list: List[QAPair]) -> Optional[Verdict]:
        try:
            verdict = self._topic_agent.closing_verdict(topic, qa_list)
        except Exception as exc:  # noqa: BLE001
            logger.error("Background verdict for topic %d failed: %s", index, exc)
            return None
        with self._guard:
            if self._closed:
                logger.warning("Discarding late verdict for topic %d", index)
                return None
            self._state.record_verdict(verdict, index=index)
        log_event("background_verdict_recorded", self._state.session_id, topic_index=index, score=verdict.score)
        self._notify()
        return verdict

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


__all__ = ["DrainResult", "PrefetchManager"]
