from __future__ import annotations  # Topic agent asking questions and closing topics with a verdict

from typing import Any, Dict, Optional, Sequence

from llm_gateway import SchemaError
from .gateway import coerce_output
from .types import TOPIC_AGENT_ROLE, Ask, Final, QAPair, Topic, TopicAgentReply, TopicTurn, Verdict


class TopicAgent:  # Drives the question/verdict exchange for a single topic
    def __init__(self, gateway: Any, *, max_questions: int) -> None:
        self._gateway = gateway
        self._max_questions = max_questions

    def request(
        self,
        topic: Topic,
        qa_list: Sequence[QAPair],
        *,
        last_answer: Optional[str] = None,
        finalize: bool = False,
    ) -> TopicAgentReply:  # Raw validated reply, kept for prefetch caching
        payload = self._payload(topic, qa_list, last_answer=last_answer, finalize=finalize)
        raw = self._gateway.invoke_agent(TOPIC_AGENT_ROLE, payload)
        return coerce_output(raw, TopicAgentReply, label="TopicAgent")

    def next_turn(self, topic: Topic, qa_list: Sequence[QAPair], *, last_answer: Optional[str] = None) -> TopicTurn:
        return self.request(topic, qa_list, last_answer=last_answer).as_turn()

    def opening_question(self, topic: Topic) -> Ask:
        turn = self.request(topic, []).as_turn()
        if not isinstance(turn, Ask):
            raise SchemaError("TopicAgent did not return a question")
        return turn

    def closing_verdict(self, topic: Topic, qa_list: Sequence[QAPair]) -> Verdict:
        last_answer = qa_list[-1].answer if qa_list else None
        turn = self.request(topic, qa_list, last_answer=last_answer, finalize=True).as_turn()
        if not isinstance(turn, Final):
            raise SchemaError("TopicAgent did not provide final verdict")
        return turn.verdict

    def _payload(
        self,
        topic: Topic,
        qa_list: Sequence[QAPair],
        *,
        last_answer: Optional[str],
        finalize: bool,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "topic_name": topic.name,
            "required_level": topic.required_level,
            "max_questions": self._max_questions,
            "questions_asked": len(qa_list),
            "recent_qa": [item.model_dump() for item in qa_list],
        }
        if last_answer:
            payload["recent_answer"] = last_answer
        if finalize:
            payload["finalize"] = True
        return payload


__all__ = ["TopicAgent"]
