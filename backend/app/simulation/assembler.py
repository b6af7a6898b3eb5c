"""
Response assembly for the three simulation paths.

Turns validated aggregates, canonical respondents and interview answers
into the ``SimulationResponse`` contract consumed by the front-end.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from ..core.errors import ParseError
from ..models.schemas import (
    AggregateResult,
    InterviewAnswer,
    InterviewResult,
    RespondentRecord,
    SimulationRequest,
    SimulationResponse,
)
from .aggregator import match_provider_results

logger = logging.getLogger("simulation.assembler")


def new_simulation_id() -> str:
    return f"sim_{int(time.time() * 1000)}"


def _status(payload: Optional[Dict[str, Any]]) -> str:
    status = str((payload or {}).get("status") or "").strip()
    return status or "completed"


def interview_results(request: SimulationRequest, payload: Dict[str, Any]) -> List[InterviewResult]:
    """Validate interview output: at most N non-empty answers per question."""
    results = payload.get("results")
    if not isinstance(results, list) or not results:
        raise ParseError("Reply has no results list")
    limit = request.respondent_count
    out: List[InterviewResult] = []
    for i, (q, item) in enumerate(zip(request.questions, match_provider_results(request.questions, results))):
        if item is None:
            logger.warning("Interview output has no answers for %s", q.result_id(i))
            item = {}
        answers: List[InterviewAnswer] = []
        raw_answers = item.get("answers")
        for entry in raw_answers if isinstance(raw_answers, list) else []:
            text = entry.get("text") if isinstance(entry, dict) else entry
            text = str(text or "").strip()
            if text:
                answers.append(InterviewAnswer(text=text))
        out.append(InterviewResult(
            questionId=q.result_id(i),
            question=q.question or str(item.get("question") or f"Pregunta {i + 1}"),
            answers=answers[:limit],
        ))
    return out


def assemble_interview(
    simulation_id: str,
    request: SimulationRequest,
    payload: Dict[str, Any],
) -> SimulationResponse:
    return SimulationResponse(
        simulationId=simulation_id,
        status=_status(payload),
        mode="interview",
        results=interview_results(request, payload),
    )


def assemble_basic(
    simulation_id: str,
    results: List[AggregateResult],
    payload: Dict[str, Any],
) -> SimulationResponse:
    return SimulationResponse(
        simulationId=simulation_id,
        status=_status(payload),
        mode="basic",
        results=results,
        rawRespondents=None,
    )


def assemble_professional(
    simulation_id: str,
    request: SimulationRequest,
    results: List[AggregateResult],
    records: List[RespondentRecord],
) -> SimulationResponse:
    return SimulationResponse(
        simulationId=simulation_id,
        mode="professional",
        results=results,
        rawRespondents=[r.to_wire(request.questions) for r in records],
    )


def response_body(response: SimulationResponse) -> Dict[str, Any]:
    body = response.model_dump(mode="json")
    if response.mode == "interview":
        body.pop("rawRespondents", None)
    return body
