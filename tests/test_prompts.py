"""
Tests for provider prompt construction.
"""

from backend.app.simulation.aggregator import aggregate_respondents
from backend.app.simulation.payload import normalize_payload
from backend.app.simulation.prompts import (
    build_basic_survey_prompt,
    build_json_retry_prompt,
    build_professional_batch_prompt,
    build_rationale_prompt,
    format_respondent_id,
)


def _request():
    return normalize_payload({
        "form_data": {
            "questions": [{"question": "¿Comprarías?", "type": "yes-no"}],
            "contextData": {"audienceContext": "Lima urbana"},
        },
        "audience_data": {"name": "Millennials", "surveyType": "professional", "responseCount": 300},
    })


def test_respondent_ids_are_zero_padded():
    assert format_respondent_id(7) == "r0007"
    assert format_respondent_id(12345) == "r12345"


def test_prompts_are_pure():
    request = _request()
    assert build_basic_survey_prompt(request) == build_basic_survey_prompt(request)


def test_basic_prompt_embeds_audience_and_questions():
    prompt = build_basic_survey_prompt(_request())
    assert "Lima urbana" in prompt
    assert '"id": "q_1"' in prompt
    assert '"options": ["Sí", "No"]' in prompt
    assert '"aggregates"' in prompt


def test_batch_prompt_uses_batch_size_and_offset():
    prompt = build_professional_batch_prompt(_request(), offset=200, size=50)
    assert "EXACTAMENTE 50 personas" in prompt
    assert "desde r0201 hasta r0250" in prompt
    assert "300" not in prompt


def test_rationale_prompt_lists_computed_distributions():
    request = _request()
    results = aggregate_respondents(request.questions, [])
    prompt = build_rationale_prompt(request, results)
    assert '"rationales"' in prompt
    assert '"percentage": 100' in prompt


def test_retry_prompt_repeats_task():
    assert build_json_retry_prompt("TAREA").endswith("TAREA")
