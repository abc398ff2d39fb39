"""FastAPI routes for interview control."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException

from agents.gateway import AgentGateway
from api.schemas import AnswerReq, ErrorDetail, RestoreResp, StartReq
from config import load_config
from config.settings import settings
from interview.errors import ConcurrencyError, SessionStateError, ValidationError
from interview.models import InterviewStatus, InterviewTurn
from interview.orchestrator import InterviewOrchestrator
from interview.report import InterviewReport
from llm_gateway import LlmGatewayError, PermanentAPIError, SchemaError, TransientNetworkError
from storage.session_cache import build_session_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interview")

_ORCHESTRATOR: Optional[InterviewOrchestrator] = None
_ORCHESTRATOR_GUARD = threading.Lock()


def get_orchestrator() -> InterviewOrchestrator:
    """Resolve the process-wide orchestrator, building it from config on first use."""

    global _ORCHESTRATOR
    with _ORCHESTRATOR_GUARD:
        if _ORCHESTRATOR is None:
            cfg = load_config(Path(settings.CONFIG_PATH))
            _ORCHESTRATOR = InterviewOrchestrator(
                AgentGateway.from_config(cfg),
                interview=cfg.interview,
                cache=build_session_cache(settings),
            )
        return _ORCHESTRATOR


@contextmanager
def _http_errors(action: str) -> Iterator[None]:
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=ErrorDetail(message=str(exc)).model_dump()) from exc
    except (ConcurrencyError, SessionStateError) as exc:
        raise HTTPException(status_code=409, detail=ErrorDetail(message=str(exc)).model_dump()) from exc
    except SchemaError as exc:
        logger.error("Agent output rejected while trying to %s: %s", action, exc)
        detail = ErrorDetail(
            message="Agent returned an invalid response",
            errors=[f"{err.loc}: {err.message}" for err in exc.errors],
        )
        raise HTTPException(status_code=502, detail=detail.model_dump()) from exc
    except TransientNetworkError as exc:
        logger.error("LLM unavailable while trying to %s: %s", action, exc)
        detail = ErrorDetail(message=str(exc), status_code=exc.status_code)
        raise HTTPException(status_code=503, detail=detail.model_dump()) from exc
    except PermanentAPIError as exc:
        logger.error("LLM request rejected while trying to %s: %s", action, exc)
        detail = ErrorDetail(message=str(exc), status_code=exc.status_code)
        raise HTTPException(status_code=502, detail=detail.model_dump()) from exc
    except LlmGatewayError as exc:
        logger.exception("LLM request failed while trying to %s", action)
        raise HTTPException(status_code=502, detail=ErrorDetail(message=str(exc)).model_dump()) from exc


@router.post("/start", response_model=InterviewTurn)
def start(req: StartReq, orchestrator: InterviewOrchestrator = Depends(get_orchestrator)) -> InterviewTurn:
    with _http_errors("start the interview"):
        return orchestrator.start(req)


@router.post("/answer", response_model=InterviewTurn)
def answer(req: AnswerReq, orchestrator: InterviewOrchestrator = Depends(get_orchestrator)) -> InterviewTurn:
    with _http_errors("submit an answer"):
        return orchestrator.submit_answer(req.answer)


@router.post("/end", response_model=InterviewReport)
def end(orchestrator: InterviewOrchestrator = Depends(get_orchestrator)) -> InterviewReport:
    with _http_errors("end the interview"):
        return orchestrator.end()


@router.post("/restore", response_model=RestoreResp)
def restore(orchestrator: InterviewOrchestrator = Depends(get_orchestrator)) -> RestoreResp:
    with _http_errors("restore the interview"):
        turn = orchestrator.restore()
    return RestoreResp(restored=turn is not None, turn=turn)


@router.post("/abandon", response_model=InterviewStatus)
def abandon(orchestrator: InterviewOrchestrator = Depends(get_orchestrator)) -> InterviewStatus:
    with _http_errors("abandon the interview"):
        orchestrator.abandon()
    return orchestrator.status()


@router.get("/status", response_model=InterviewStatus)
def status(orchestrator: InterviewOrchestrator = Depends(get_orchestrator)) -> InterviewStatus:
    return orchestrator.status()
