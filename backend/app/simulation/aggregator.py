"""
Respondent cleaning and per-question aggregation.

Professional mode counts cleaned respondent records; Basic mode validates
the distributions the provider computed itself. Either way single-choice
questions leave this module summing to exactly 100.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from ..core.errors import ParseError
from ..models.schemas import AggregateResult, OptionShare, Question, RespondentRecord
from .options import canonicalize_option, canonicalize_selection
from .percentages import clamp_int, ensure_sums_to_100, normalize_to_100, round_half_up

logger = logging.getLogger("simulation.aggregator")


def _raw_answers(raw: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    answers: Dict[str, Dict[str, Any]] = {}
    for entry in raw.get("answers") or []:
        if not isinstance(entry, dict):
            continue
        qid = str(entry.get("questionId") or "").strip()
        if qid and qid not in answers:
            answers[qid] = entry
    return answers


def clean_respondent(questions: List[Question], raw: Any, respondent_id: str) -> RespondentRecord:
    """Keep only answers that resolve to declared options.

    Single-choice answers that match nothing are dropped, so the respondent
    does not count toward that question at all.
    """
    entries = _raw_answers(raw) if isinstance(raw, dict) else {}
    answers: Dict[str, List[str]] = {}
    dropped = 0
    for i, q in enumerate(questions):
        qid = q.result_id(i)
        entry = entries.get(qid)
        if entry is None or not q.has_options:
            continue
        choice = entry.get("choice")
        choices = entry.get("choices")
        if q.is_single_choice:
            if choice is None and isinstance(choices, list) and len(choices) == 1:
                choice = choices[0]
            option = canonicalize_option(q.options, choice)
            if option is None:
                dropped += 1
                continue
            answers[qid] = [option]
        else:
            if not isinstance(choices, list):
                choices = [choice] if choice is not None else []
            answers[qid] = canonicalize_selection(q.options, choices)
    if dropped:
        logger.warning("Respondent %s: dropped %d answer(s) outside the declared options", respondent_id, dropped)
    return RespondentRecord(respondentId=respondent_id, answers=answers)


def aggregate_question(
    question: Question,
    position: int,
    records: List[RespondentRecord],
    respondent_total: Optional[int] = None,
) -> AggregateResult:
    """Count answers for one question and convert them to percentages.

    The denominator is ``respondent_total`` when given, otherwise the
    number of respondents holding an answer for the question.
    """
    qid = question.result_id(position)
    result = AggregateResult(
        questionId=qid,
        question=question.question,
        type=question.type or question.kind.value,
        kind=question.kind,
        options=list(question.options),
    )
    if not question.has_options:
        return result

    counts: Counter[str] = Counter()
    answered = 0
    for record in records:
        selected = record.answers.get(qid)
        if selected is None:
            continue
        answered += 1
        if question.is_single_choice:
            counts[selected[0]] += 1
        else:
            # One count per option per respondent.
            counts.update(set(selected))

    denominator = respondent_total if respondent_total is not None else answered
    denominator = denominator or 1
    shares = [
        OptionShare(text=option, percentage=clamp_int(round_half_up(counts[option] * 100 / denominator), 0, 100))
        for option in question.options
    ]
    if question.is_single_choice:
        shares = normalize_to_100(shares)
        ensure_sums_to_100(shares, qid)
    result.aggregates = shares
    return result


def aggregate_respondents(questions: List[Question], records: List[RespondentRecord]) -> List[AggregateResult]:
    return [aggregate_question(q, i, records) for i, q in enumerate(questions)]


def match_provider_results(questions: List[Question], results: List[Any]) -> List[Optional[Dict[str, Any]]]:
    known_ids = {q.result_id(i) for i, q in enumerate(questions)}
    by_id: Dict[str, Dict[str, Any]] = {}
    for item in results:
        if isinstance(item, dict):
            rid = str(item.get("questionId") or "").strip()
            if rid and rid not in by_id:
                by_id[rid] = item
    matched: List[Optional[Dict[str, Any]]] = []
    for i, q in enumerate(questions):
        item = by_id.get(q.result_id(i))
        if item is None and i < len(results) and isinstance(results[i], dict):
            candidate = results[i]
            if str(candidate.get("questionId") or "").strip() not in known_ids:
                item = candidate
        matched.append(item)
    return matched


def shares_from_provider(question: Question, raw_aggregates: Any) -> List[OptionShare]:
    """Rebuild a provider distribution in declared option order.

    Texts are canonicalized; unknown options are ignored, missing ones get 0
    and a repeated option keeps its first value.
    """
    values: Dict[str, int] = {}
    for entry in raw_aggregates if isinstance(raw_aggregates, list) else []:
        if not isinstance(entry, dict):
            continue
        option = canonicalize_option(question.options, entry.get("text"))
        if option is None or option in values:
            continue
        values[option] = clamp_int(entry.get("percentage"), 0, 100)
    return [OptionShare(text=o, percentage=values.get(o, 0)) for o in question.options]


def aggregate_from_provider(questions: List[Question], payload: Dict[str, Any]) -> List[AggregateResult]:
    """Validate the distributions returned by the aggregate prompt.

    Raises:
        ParseError: If ``results`` is missing or omits a question with options.
    """
    results = payload.get("results")
    if not isinstance(results, list):
        raise ParseError("Reply has no results list")
    out: List[AggregateResult] = []
    for i, (q, item) in enumerate(zip(questions, match_provider_results(questions, results))):
        qid = q.result_id(i)
        if item is None and q.has_options:
            raise ParseError(f"Reply is missing question {qid}")
        item = item or {}
        result = AggregateResult(
            questionId=qid,
            question=q.question or str(item.get("question") or f"Pregunta {i + 1}"),
            type=q.type or q.kind.value,
            kind=q.kind,
            options=list(q.options),
            rationale=str(item.get("rationale") or "").strip(),
        )
        if q.has_options:
            shares = shares_from_provider(q, item.get("aggregates"))
            if q.is_single_choice:
                shares = normalize_to_100(shares)
                ensure_sums_to_100(shares, qid)
            result.aggregates = shares
        out.append(result)
    return out


def attach_rationales(results: List[AggregateResult], payload: Dict[str, Any]) -> int:
    """Copy ``rationales`` from a provider payload onto matching results."""
    entries = payload.get("rationales")
    by_id: Dict[str, str] = {}
    for entry in entries if isinstance(entries, list) else []:
        if not isinstance(entry, dict):
            continue
        qid = str(entry.get("questionId") or "").strip()
        text = str(entry.get("rationale") or "").strip()
        if qid and text:
            by_id[qid] = text
    attached = 0
    for result in results:
        if result.questionId in by_id:
            result.rationale = by_id[result.questionId]
            attached += 1
    return attached
