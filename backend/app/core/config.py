"""
Process configuration for the survey simulation backend.

Values are read from environment variables once per process (``backend/.env``
is loaded by the app factory before the first read) and exposed through an
immutable ``Settings`` instance. Malformed values fall back to defaults
instead of preventing startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Tuple, TypeVar

T = TypeVar("T", int, float)

DEFAULT_ALLOWED_ORIGINS: Tuple[str, ...] = (
    "https://naluinsights.lovable.app",
    "https://preview-naluinsights.lovable.app",
    "https://nalua.com",
    "https://www.nalua.com",
    "https://naluia.com",
    "https://www.naluia.com",
)


def _env(key: str) -> Optional[str]:
    value = (os.getenv(key) or "").strip()
    return value or None


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _number(key: str, default: T, cast: Callable[[str], T]) -> T:
    raw = _env(key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def _origins(key: str) -> Tuple[str, ...]:
    raw = _env(key)
    if raw is None:
        return DEFAULT_ALLOWED_ORIGINS
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    # Provider credentials
    openai_api_key: Optional[str]
    assistant_id: Optional[str]
    openai_base_url: Optional[str]

    # HTTP surface
    port: int
    allowed_origins: Tuple[str, ...]
    allowed_origin_suffix: str

    # Logging
    log_level: str
    log_json: bool

    # Provider polling and timeouts (seconds)
    poll_interval: float
    basic_timeout: float
    interview_timeout: float
    rationale_timeout: float

    # Professional batching
    batch_size: int
    batch_base_timeout: float
    batch_per_respondent_timeout: float
    batch_per_question_timeout: float
    pro_rationales: bool

    @property
    def has_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_assistant(self) -> bool:
        return bool(self.assistant_id)

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            openai_api_key=_env("OPENAI_API_KEY"),
            assistant_id=_env("ASSISTANT_ID"),
            openai_base_url=_env("OPENAI_BASE_URL"),

            port=_number("PORT", 10000, int),
            allowed_origins=_origins("CORS_ALLOWED_ORIGINS"),
            allowed_origin_suffix=_env("CORS_ALLOWED_ORIGIN_SUFFIX") or ".lovableproject.com",

            log_level=_env("LOG_LEVEL") or "INFO",
            log_json=_truthy(_env("LOG_JSON")),

            poll_interval=max(0.01, _number("SIM_POLL_INTERVAL", 0.9, float)),
            basic_timeout=_number("SIM_BASIC_TIMEOUT", 90.0, float),
            interview_timeout=_number("SIM_INTERVIEW_TIMEOUT", 90.0, float),
            rationale_timeout=_number("SIM_RATIONALE_TIMEOUT", 60.0, float),

            batch_size=max(1, _number("SIM_BATCH_SIZE", 100, int)),
            batch_base_timeout=_number("SIM_BATCH_BASE_TIMEOUT", 60.0, float),
            batch_per_respondent_timeout=_number("SIM_BATCH_PER_RESPONDENT_TIMEOUT", 1.0, float),
            batch_per_question_timeout=_number("SIM_BATCH_PER_QUESTION_TIMEOUT", 2.0, float),
            pro_rationales=_truthy(_env("SIM_PRO_RATIONALES") or "true"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment on first use."""
    return Settings.from_env()
