from __future__ import annotations

import threading

import pytest

from agents.topic_agent import TopicAgent
from interview.prefetch import PrefetchManager
from interview.session import TopicSessionState
from llm_gateway import TransientNetworkError


def _state(fakes, *names: str) -> TopicSessionState:
    return TopicSessionState.initialize([fakes.topic(name) for name in names], 3)


def _manager(fakes, state, handler=None, on_change=None) -> PrefetchManager:
    gateway = fakes.ScriptedGateway(topic_agent=handler)
    manager = PrefetchManager(state, TopicAgent(gateway, max_questions=3), max_workers=2, on_change=on_change)
    manager.gateway = gateway
    return manager


@pytest.fixture
def cleanup():
    managers = []
    yield managers.append
    for manager in managers:
        manager.shutdown()


def test_prefetch_next_stores_opening_question(fakes, cleanup):
    state = _state(fakes, "Python", "SQL databases")
    changes = []
    manager = _manager(fakes, state, on_change=lambda: changes.append(True))
    cleanup(manager)

    future = manager.prefetch_next()

    assert future.result(timeout=2) is True
    entry = state.peek_prefetch(1)
    assert entry.question_text == "Question 1 about SQL databases?"
    assert entry.raw_agent_output["status"] == "ask"
    assert changes
    payload = manager.gateway.calls_for("topic_agent")[0]
    assert payload["recent_qa"] == [] and payload["questions_asked"] == 0


def test_consume_pops_the_slot(fakes, cleanup):
    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state)
    cleanup(manager)
    manager.prefetch_next().result(timeout=2)

    assert manager.consume(1).question_text == "Question 1 about SQL databases?"
    assert manager.consume(1) is None


def test_prefetch_skipped_without_next_topic(fakes, cleanup):
    state = _state(fakes, "Python")
    manager = _manager(fakes, state)
    cleanup(manager)

    assert manager.prefetch_next() is None
    assert manager.gateway.calls == []


def test_prefetch_skipped_when_slot_filled(fakes, cleanup):
    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state)
    cleanup(manager)
    manager.prefetch_next().result(timeout=2)

    assert manager.prefetch_next() is None
    assert len(manager.gateway.calls) == 1


def test_final_reply_is_not_stored(fakes, cleanup):
    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state, handler=lambda payload: fakes.final(payload["topic_name"]))
    cleanup(manager)

    assert manager.prefetch_next().result(timeout=2) is False
    assert state.peek_prefetch(1) is None


def test_prefetch_failure_is_swallowed(fakes, cleanup):
    def boom(payload):
        raise TransientNetworkError("LLM request failed after 4 attempts: timeout")

    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state, handler=boom)
    cleanup(manager)

    assert manager.prefetch_next().result(timeout=2) is False
    assert state.peek_prefetch(1) is None
    assert state.current_topic_index == 0
    assert manager.inflight() == set()


def test_inflight_prefetch_is_not_duplicated(fakes, cleanup):
    release = threading.Event()

    def slow(payload):
        release.wait(2)
        return fakes.ask("Slow opening question?")

    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state, handler=slow)
    cleanup(manager)

    first = manager.prefetch_next()
    assert manager.prefetch_next() is None
    release.set()

    assert first.result(timeout=2) is True
    assert len(manager.gateway.calls) == 1


def test_stale_prefetch_is_refused_after_cursor_moves(fakes, cleanup):
    release = threading.Event()

    def slow(payload):
        release.wait(2)
        return fakes.ask("Late opening question?")

    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state, handler=slow)
    cleanup(manager)

    future = manager.prefetch_next()
    state.advance_topic()
    release.set()

    assert future.result(timeout=2) is False
    assert state.peek_prefetch(1) is None


def test_background_verdict_uses_captured_index(fakes, cleanup):
    release = threading.Event()

    def handler(payload):
        if payload.get("finalize"):
            release.wait(2)
        return fakes.default_topic_agent(payload)

    state = _state(fakes, "Python", "SQL databases", "Kafka queues")
    manager = _manager(fakes, state, handler=handler)
    cleanup(manager)
    state.record_answer("Q1?", "Python answer")

    state.advance_topic()
    future = manager.launch_background_verdict(0)
    state.record_answer("Q1?", "SQL answer")
    state.advance_topic()
    release.set()

    assert future.result(timeout=2).name == "Python"
    assert state.topic_state(0).status == "done"
    assert state.topic_state(1).verdict is None
    assert state.current_topic_index == 2
    payload = manager.gateway.calls_for("topic_agent")[0]
    assert payload["finalize"] is True
    assert payload["recent_answer"] == "Python answer"


def test_drain_waits_for_background_verdicts(fakes, cleanup):
    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state)
    cleanup(manager)
    state.record_answer("Q1?", "A1")
    state.advance_topic()
    manager.launch_background_verdict(0)

    result = manager.drain(timeout=2)

    assert (result.completed, result.failed, result.timed_out) == (1, 0, 0)
    assert state.topic_state(0).verdict is not None
    assert state.background_tasks() == []
    assert manager.closed


def test_drain_drops_unconsumed_prefetches(fakes, cleanup):
    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state)
    cleanup(manager)
    manager.prefetch_next().result(timeout=2)
    assert state.peek_prefetch(1) is not None

    manager.drain(timeout=2)

    assert state.peek_prefetch(1) is None
    assert state.snapshot().prefetched_questions == {}


def test_drain_counts_failures(fakes, cleanup):
    def boom(payload):
        raise TransientNetworkError("LLM request failed after 4 attempts: 503")

    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state, handler=boom)
    cleanup(manager)
    state.record_answer("Q1?", "A1")
    state.advance_topic()
    manager.launch_background_verdict(0)

    result = manager.drain(timeout=2)

    assert result.failed == 1
    assert state.topic_state(0).status == "probing"


def test_late_verdict_after_drain_is_discarded(fakes, cleanup):
    release = threading.Event()

    def slow(payload):
        release.wait(2)
        return fakes.default_topic_agent(payload)

    state = _state(fakes, "Python", "SQL databases")
    manager = _manager(fakes, state, handler=slow)
    cleanup(manager)
    state.record_answer("Q1?", "A1")
    state.advance_topic()
    future = manager.launch_background_verdict(0)

    result = manager.drain(timeout=0.05)
    release.set()

    assert result.timed_out == 1
    assert future.result(timeout=2) is None
    assert state.topic_state(0).verdict is None
