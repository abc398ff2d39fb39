"""Interview orchestrator: the root of the interview core.

Drives the phase machine ``idle -> planning -> awaiting_answer -> transitioning
-> ending -> idle``. User-facing operations are mutually exclusive through a
non-blocking busy lock; a second concurrent call fails fast with
``ConcurrencyError`` instead of queueing.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Tuple

from agents.final_summary import FinalSummaryAgent
from agents.planner import PlannerAgent
from agents.topic_agent import TopicAgent
from agents.types import Ask, FinalSummary, Verdict
from config import InterviewSettings
from config.settings import Settings, settings as default_settings
from llm_gateway import LlmGatewayError
from observability import log_event
from storage.session_cache import InMemorySessionCache, SessionCache
from .errors import ConcurrencyError, SessionStateError
from .inputs import validate_answer, validate_api_key, validate_candidate_cv, validate_job_description
from .models import CurrentQuestion, InterviewRequest, InterviewStatus, InterviewTurn, Phase, SessionSnapshot
from .prefetch import PrefetchManager
from .report import InterviewReport
from .session import TopicSessionState

logger = logging.getLogger(__name__)


class InterviewOrchestrator:
    def __init__(
        self,
        gateway: Any,
        *,
        interview: Optional[InterviewSettings] = None,
        cache: Optional[SessionCache] = None,
        cfg: Settings = default_settings,
    ) -> None:
        self._gateway = gateway
        self._interview = interview or InterviewSettings()
        self._cache: SessionCache = cache if cache is not None else InMemorySessionCache()
        self._cfg = cfg
        self._planner = PlannerAgent(gateway)
        self._summary_agent = FinalSummaryAgent(gateway)
        self._busy = threading.Lock()
        self._persist_lock = threading.Lock()
        self._phase: Phase = "idle"
        self._state: Optional[TopicSessionState] = None
        self._topic_agent: Optional[TopicAgent] = None
        self._prefetch: Optional[PrefetchManager] = None
        self._current_question: Optional[CurrentQuestion] = None
        self._early_verdict: Optional[Tuple[int, Verdict]] = None

    # -- read-only views ---------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def state(self) -> Optional[TopicSessionState]:
        return self._state

    @property
    def prefetch(self) -> Optional[PrefetchManager]:
        return self._prefetch

    @property
    def current_question(self) -> Optional[CurrentQuestion]:
        return self._current_question

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def status(self) -> InterviewStatus:
        state = self._state
        if state is None:
            return InterviewStatus(phase=self._phase)
        current, total = state.progress()
        return InterviewStatus(
            phase=self._phase,
            session_id=state.session_id,
            progress_current=current,
            progress_total=total,
            current_question=self._current_question,
            topics=state.topic_overview(),
        )

    # -- user-facing operations ----------------------------------------------

    def start(self, request: InterviewRequest) -> InterviewTurn:
        with self._single_flight("start an interview"):
            if self._state is not None:
                raise SessionStateError("An interview is already in progress")
            self._check_credentials()
            job_description = validate_job_description(request.job_description, self._cfg)
            candidate_cv = validate_candidate_cv(request.candidate_cv, self._cfg)
            enable_summary = (
                self._interview.enable_final_summary
                if request.enable_final_summary is None
                else request.enable_final_summary
            )
            self._clear_cache()

            self._phase = "planning"
            try:
                topics = self._planner.plan(job_description, candidate_cv, max_topics=self._interview.max_topics)
                state = TopicSessionState.initialize(
                    topics,
                    self._interview.max_questions_per_topic,
                    enable_summary,
                )
            except Exception:
                self._phase = "idle"
                raise
            log_event("interview_planned", state.session_id, topics=[topic.name for topic in state.topics])

            self._install(state)
            try:
                question = self._require_topic_agent().opening_question(state.topics[0])
            except Exception:
                self._teardown()
                raise
            self._set_question(question.text, 0)
            self._phase = "awaiting_answer"
            self._persist()
            log_event("interview_started", state.session_id, topic_index=0, topic=state.topics[0].name)
            self._require_prefetch().prefetch_next()
            return self._turn(state)

    def submit_answer(self, answer: str) -> InterviewTurn:
        with self._single_flight("submit an answer"):
            state = self._require_state()
            if self._phase != "awaiting_answer" or self._current_question is None:
                raise SessionStateError(f"Answers are not accepted while {self._phase}")
            text = validate_answer(answer, self._cfg)
            self._phase = "transitioning"
            try:
                return self._handle_answer(state, text)
            except Exception:
                if self._state is state and self._phase == "transitioning":
                    self._phase = "awaiting_answer"
                    self._persist()
                raise

    def end(self) -> InterviewReport:
        with self._single_flight("end the interview"):
            state = self._require_state()
            if self._phase not in ("awaiting_answer", "ending"):
                raise SessionStateError(f"Cannot end the interview while {self._phase}")
            return self._finish(state)

    def restore(self) -> Optional[InterviewTurn]:
        """Resume from the cached snapshot, or return None when there is nothing to resume."""

        with self._single_flight("restore an interview"):
            if self._state is not None:
                raise SessionStateError("An interview is already in progress")
            snapshot = self._load_snapshot()
            if snapshot is None:
                return None
            wrapping_up = snapshot.phase == "ending"
            if snapshot.current_question is None and not wrapping_up:
                return None
            state = TopicSessionState.restore(snapshot.session)
            self._install(state)
            if wrapping_up:
                # Only end() is accepted until the report is produced.
                self._phase = "ending"
            else:
                self._current_question = snapshot.current_question
                self._phase = "awaiting_answer"
            log_event(
                "interview_restored",
                state.session_id,
                topic_index=state.current_topic_index,
                saved_phase=snapshot.phase,
            )
            if not wrapping_up:
                self._require_prefetch().prefetch_next()
            return self._turn(state)

    def abandon(self) -> None:
        """Discard the current interview without producing a report."""

        with self._single_flight("abandon the interview"):
            state = self._state
            if state is None:
                return
            log_event("interview_abandoned", state.session_id, phase=self._phase)
            self._teardown()

    # -- answer handling -------------------------------------------------------

    def _handle_answer(self, state: TopicSessionState, text: str) -> InterviewTurn:
        question = self._current_question
        if question is None:
            raise SessionStateError("No question is awaiting an answer")
        state.record_answer(question.text, text)
        self._persist()
        index = state.current_topic_index
        topic = state.topic(index)
        log_event("answer_recorded", state.session_id, topic_index=index, topic=topic.name)

        # A topic already closed by a verdict never gets a second one.
        verdict_needed = state.topic_state(index).status != "done"
        early = self._early_verdict
        if early is not None and early[0] != index:
            early = None
        if early is not None:
            verdict_needed = False
        elif verdict_needed and state.should_continue_topic():
            qa_list = state.qa_list(index)
            turn = self._require_topic_agent().next_turn(topic, qa_list, last_answer=text)
            if isinstance(turn, Ask):
                self._set_question(turn.text, index)
                self._phase = "awaiting_answer"
                self._persist()
                if len(qa_list) == state.max_questions_per_topic - 1 and state.has_more_topics():
                    self._require_prefetch().prefetch_next()
                return self._turn(state)
            early = (index, turn.verdict)
            self._early_verdict = early
            log_event("topic_closed_early", state.session_id, topic_index=index, score=turn.verdict.score)
            verdict_needed = False

        if state.has_more_topics():
            self._transition(state, index, verdict_needed, early[1] if early is not None else None)
            return self._turn(state)

        if early is not None:
            state.record_verdict(early[1], index=index)
            self._early_verdict = None
        elif verdict_needed:
            verdict = self._require_topic_agent().closing_verdict(topic, state.qa_list(index))
            state.record_verdict(verdict, index=index)
        report = self._finish(state)
        return InterviewTurn(
            session_id=report.session_id,
            phase=self._phase,
            progress_current=state.topic_count,
            progress_total=state.topic_count,
            finished=True,
            report=report,
        )

    def _transition(
        self,
        state: TopicSessionState,
        left_index: int,
        verdict_needed: bool,
        early: Optional[Verdict] = None,
    ) -> None:
        """Move to the next topic; nothing is written until its opening question is in hand."""

        prefetch = self._require_prefetch()
        topic_agent = self._require_topic_agent()
        next_index = left_index + 1
        entry = prefetch.consume(next_index)
        source = "prefetch"
        if entry is not None:
            self._advance(state, left_index, entry.question_text, early)
            if verdict_needed:
                prefetch.launch_background_verdict(left_index)
        elif verdict_needed:
            source = "paired"
            left_topic = state.topic(left_index)
            qa_list = state.qa_list(left_index)
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="interview-transition") as pool:
                verdict_future = pool.submit(topic_agent.closing_verdict, left_topic, qa_list)
                question_future = pool.submit(topic_agent.opening_question, state.topic(next_index))
                verdict = verdict_future.result()
                question = question_future.result()
            self._advance(state, left_index, question.text, verdict)
        else:
            source = "sync"
            question = topic_agent.opening_question(state.topic(next_index))
            self._advance(state, left_index, question.text, early)

        self._phase = "awaiting_answer"
        self._persist()
        log_event(
            "topic_advanced",
            state.session_id,
            topic_index=next_index,
            topic=state.topic(next_index).name,
            status=source,
        )
        prefetch.prefetch_next()

    def _advance(self, state: TopicSessionState, left_index: int, question_text: str, verdict: Optional[Verdict]) -> None:
        # Background saves never see the cursor and the current question out of step.
        with self._persist_lock:
            if verdict is not None:
                state.record_verdict(verdict, index=left_index)
            state.advance_topic()
            self._set_question(question_text, left_index + 1)
            self._early_verdict = None

    def _finish(self, state: TopicSessionState) -> InterviewReport:
        self._phase = "ending"
        self._persist()
        prefetch = self._require_prefetch()
        prefetch.drain(self._cfg.BACKGROUND_DRAIN_TIMEOUT_S)

        topic_agent = self._require_topic_agent()
        for index, topic, topic_state in state.incomplete_topics():
            if not topic_state.qa_list:
                continue
            verdict = topic_agent.closing_verdict(topic, topic_state.qa_list)
            state.record_verdict(verdict, index=index)
            self._persist()

        summary = self._summarize(state)
        report = InterviewReport.build(state.session_id, state.results(), summary)
        log_event(
            "interview_finished",
            state.session_id,
            assessed=report.assessed_count,
            fit=report.fit_overall_percent,
        )
        self._teardown()
        return report

    def _summarize(self, state: TopicSessionState) -> Optional[FinalSummary]:
        if not state.enable_final_summary:
            return None
        verdicts = state.all_verdicts()
        if not verdicts:
            return None
        try:
            return self._summary_agent.summarize(verdicts)
        except LlmGatewayError as exc:
            logger.warning("Final summary unavailable: %s", exc)
            return None

    # -- plumbing ----------------------------------------------------------------

    @contextmanager
    def _single_flight(self, action: str) -> Iterator[None]:
        if not self._busy.acquire(blocking=False):
            raise ConcurrencyError(f"Cannot {action}: another operation is in progress")
        try:
            yield
        finally:
            self._busy.release()

    def _check_credentials(self) -> None:
        for role, key in self._gateway.credentials().items():
            try:
                validate_api_key(key, prefix=self._cfg.API_KEY_PREFIX)
            except Exception:
                logger.error("Credential check failed for role %s", role)
                raise

    def _install(self, state: TopicSessionState) -> None:
        self._state = state
        self._topic_agent = TopicAgent(self._gateway, max_questions=state.max_questions_per_topic)
        self._prefetch = PrefetchManager(
            state,
            self._topic_agent,
            max_workers=self._cfg.PREFETCH_WORKERS,
            on_change=lambda: self._persist_if_live(state),
        )

    def _teardown(self) -> None:
        if self._prefetch is not None:
            self._prefetch.shutdown()
        with self._persist_lock:
            self._prefetch = None
            self._topic_agent = None
            self._state = None
            self._current_question = None
            self._early_verdict = None
            self._phase = "idle"
            self._clear_cache()

    def _set_question(self, text: str, topic_index: int) -> None:
        self._current_question = CurrentQuestion(text=text, topic_index=topic_index)

    def _turn(self, state: TopicSessionState) -> InterviewTurn:
        current, total = state.progress()
        question = self._current_question
        topic_name = state.topic(question.topic_index).name if question is not None else None
        return InterviewTurn(
            session_id=state.session_id,
            phase=self._phase,
            question=question,
            topic_name=topic_name,
            progress_current=current,
            progress_total=total,
        )

    def _require_state(self) -> TopicSessionState:
        if self._state is None:
            raise SessionStateError("No interview in progress")
        return self._state

    def _require_topic_agent(self) -> TopicAgent:
        if self._topic_agent is None:
            raise SessionStateError("No interview in progress")
        return self._topic_agent

    def _require_prefetch(self) -> PrefetchManager:
        if self._prefetch is None:
            raise SessionStateError("No interview in progress")
        return self._prefetch

    # -- persistence (best-effort) -----------------------------------------------

    def _persist_if_live(self, state: TopicSessionState) -> None:
        if self._state is state:
            self._persist()

    def _persist(self) -> None:
        with self._persist_lock:
            state = self._state
            if state is None:
                return
            snapshot = SessionSnapshot(
                saved_at=datetime.now(timezone.utc),
                session=state.snapshot(),
                current_question=self._current_question,
                phase=self._phase,
            )
            try:
                self._cache.save(snapshot)
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to save session snapshot: %s", exc)

    def _load_snapshot(self) -> Optional[SessionSnapshot]:
        try:
            return self._cache.load()
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to load session snapshot: %s", exc)
            return None

    def _clear_cache(self) -> None:
        try:
            self._cache.clear()
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to clear session cache: %s", exc)


__all__ = ["InterviewOrchestrator"]
