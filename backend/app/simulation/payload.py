"""
Normalization boundary between raw client JSON and ``SimulationRequest``.

The front-end has shipped several payload shapes over time. All shape
sniffing lives here; the rest of the pipeline only sees the canonical
request. Precedence between shape variants, highest first:

* questions: ``form_data.questions`` → ``questions``
* audience: ``audience_data`` → ``audience``
* type: ``type`` → ``form_data.type``
* context: ``form_data.contextData`` → ``contextData`` → ``audience.context``
* respondent count: ``audience.responseCount`` → ``responsesToSimulate`` → default
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List

from ..core.errors import PayloadValidationError
from ..models.schemas import (
    Audience,
    AudienceContext,
    Question,
    QuestionKind,
    SimulationKind,
    SimulationRequest,
    SurveyMode,
)
from .options import dedupe_options
from .percentages import clamp_int

logger = logging.getLogger("simulation.payload")

SINGLE_CHOICE_TYPES = {
    "multiple-choice", "single-choice", "single", "yes-no", "yesno", "boolean",
    "scale", "rating", "likert",
}
MULTI_SELECT_TYPES = {"multi-select", "checkbox", "multiple-select"}
YES_NO_TYPES = {"yes-no", "yesno", "boolean"}
YES_NO_OPTIONS = ["Sí", "No"]

SURVEY_COUNT_RANGE = (10, 1000)
INTERVIEW_COUNT_RANGE = (1, 5)
DEFAULT_SURVEY_COUNT = 100
DEFAULT_INTERVIEW_COUNT = 3


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def classify_question(declared_type: str, options: List[str]) -> QuestionKind:
    t = declared_type.lower()
    if t in SINGLE_CHOICE_TYPES:
        return QuestionKind.SINGLE_CHOICE
    if t in MULTI_SELECT_TYPES:
        return QuestionKind.MULTI_SELECT
    if options:
        return QuestionKind.SINGLE_CHOICE
    return QuestionKind.OPEN_TEXT


def normalize_question(raw: Dict[str, Any]) -> Question:
    declared_type = _text(raw.get("type")).lower()
    raw_options = raw.get("options")
    options = dedupe_options(raw_options) if isinstance(raw_options, list) else []
    if declared_type in YES_NO_TYPES and not options:
        declared_type = "yes-no"
        options = list(YES_NO_OPTIONS)
    return Question(
        id=_text(raw.get("id")),
        question=_text(raw.get("question") or raw.get("text") or raw.get("title")),
        type=declared_type,
        kind=classify_question(declared_type, options),
        options=options,
        required=bool(raw.get("required")),
    )


def _finite_count(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def resolve_respondent_count(body: Dict[str, Any], audience: Dict[str, Any], kind: SimulationKind) -> int:
    if kind == SimulationKind.INTERVIEW:
        default, (low, high) = DEFAULT_INTERVIEW_COUNT, INTERVIEW_COUNT_RANGE
    else:
        default, (low, high) = DEFAULT_SURVEY_COUNT, SURVEY_COUNT_RANGE
    for candidate in (audience.get("responseCount"), body.get("responsesToSimulate")):
        number = _finite_count(candidate)
        if number is not None:
            return clamp_int(number, low, high)
    return clamp_int(default, low, high)


def _audience(block: Dict[str, Any], form: Dict[str, Any], body: Dict[str, Any]) -> Audience:
    context_raw = _dict(form.get("contextData")) or _dict(body.get("contextData")) or _dict(block.get("context"))
    return Audience(
        name=_text(block.get("name")),
        description=_text(block.get("description")),
        demographics=_dict(block.get("demographics")),
        psychographics=_dict(block.get("psychographics")),
        context=AudienceContext(
            audienceContext=_text(context_raw.get("audienceContext")),
            userInsights=_text(context_raw.get("userInsights")),
        ),
    )


def normalize_payload(body: Any) -> SimulationRequest:
    """Build the canonical request from any accepted payload shape.

    Raises:
        PayloadValidationError: If no questions remain after normalization.
    """
    body = _dict(body)
    form = _dict(body.get("form_data"))
    audience_block = _dict(body.get("audience_data")) or _dict(body.get("audience"))

    type_raw = _text(body.get("type") or form.get("type")).lower()
    kind = SimulationKind.INTERVIEW if type_raw == "entrevista" else SimulationKind.SURVEY

    mode = None
    if kind == SimulationKind.SURVEY:
        survey_type = _text(audience_block.get("surveyType")).lower()
        mode = SurveyMode.PROFESSIONAL if survey_type == "professional" else SurveyMode.BASIC

    if isinstance(form.get("questions"), list):
        raw_questions = form["questions"]
    elif isinstance(body.get("questions"), list):
        raw_questions = body["questions"]
    else:
        raw_questions = []
    questions = [normalize_question(q) for q in raw_questions if isinstance(q, dict)]
    if not questions:
        raise PayloadValidationError("Faltan preguntas.")

    request = SimulationRequest(
        kind=kind,
        mode=mode,
        respondent_count=resolve_respondent_count(body, audience_block, kind),
        audience=_audience(audience_block, form, body),
        questions=questions,
    )
    logger.info(
        "Normalized payload kind=%s mode=%s respondents=%d questions=%d",
        request.kind.value,
        request.mode.value if request.mode else "-",
        request.respondent_count,
        len(request.questions),
    )
    return request
