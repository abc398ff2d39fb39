"""Validation of free-text interview inputs and credentials."""
from __future__ import annotations

from typing import Optional

from config.settings import Settings, settings as default_settings

from .errors import ValidationError


def validate_api_key(api_key: Optional[str], *, prefix: Optional[str] = None) -> str:
    """Return the stripped key or raise ``ValidationError``."""

    key = (api_key or "").strip()
    if not key:
        raise ValidationError("API key is required")
    expected = default_settings.API_KEY_PREFIX if prefix is None else prefix
    if expected and not key.startswith(expected):
        raise ValidationError(f'Invalid API key format. Keys start with "{expected}"')
    return key


def validate_job_description(text: str, cfg: Settings = default_settings) -> str:
    return _bounded(
        text,
        label="Job description",
        min_chars=cfg.JOB_DESCRIPTION_MIN_CHARS,
        max_chars=cfg.JOB_DESCRIPTION_MAX_CHARS,
    )


def validate_candidate_cv(text: str, cfg: Settings = default_settings) -> str:
    return _bounded(
        text,
        label="CV/Resume",
        min_chars=cfg.CANDIDATE_CV_MIN_CHARS,
        max_chars=cfg.CANDIDATE_CV_MAX_CHARS,
    )


def validate_answer(text: str, cfg: Settings = default_settings) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Please enter an answer")
    if len(text) > cfg.ANSWER_MAX_CHARS:
        raise ValidationError(f"Answer is too long (maximum {cfg.ANSWER_MAX_CHARS:,} characters)")
    return cleaned


def _bounded(text: str, *, label: str, min_chars: int, max_chars: int) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} is required")
    if len(cleaned) < min_chars:
        raise ValidationError(f"{label} must be at least {min_chars} characters long")
    if len(text) > max_chars:
        raise ValidationError(f"{label} is too long (maximum {max_chars:,} characters)")
    return cleaned


__all__ = ["validate_answer", "validate_api_key", "validate_candidate_cv", "validate_job_description"]
