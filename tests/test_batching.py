"""
Tests for professional-mode batch orchestration.
"""

import pytest

from backend.app.core.errors import ParseError, ProviderTimeout
from backend.app.simulation.batching import BatchOrchestrator, batch_timeout, plan_batches
from backend.app.simulation.payload import normalize_payload

from conftest import FakeAssistant, make_settings, respondents_payload


@pytest.fixture
def pro_request():
    return normalize_payload({
        "questions": [{"id": "q1", "question": "¿Comprarías?", "type": "yes-no"}],
        "audience": {"surveyType": "professional", "responseCount": 250},
    })


def _answer_yes(i):
    return [{"questionId": "q1", "choice": "Sí" if i % 2 == 0 else "No"}]


def test_plan_batches_covers_total():
    plans = plan_batches(250, 100)
    assert [(p.offset, p.size) for p in plans] == [(0, 100), (100, 100), (200, 50)]
    assert plans[2].first_id == "r0201"
    assert plans[2].last_id == "r0250"


def test_plan_batches_exact_multiple_and_empty():
    assert [p.size for p in plan_batches(200, 100)] == [100, 100]
    assert plan_batches(0, 100) == []


def test_batch_timeout_scales_with_size_and_questions(settings):
    assert batch_timeout(100, 5, settings) == 60.0 + 100 * 1.0 + 5 * 2.0
    assert batch_timeout(50, 5, settings) < batch_timeout(100, 5, settings)


async def test_generate_concatenates_batches_in_order(settings, pro_request):
    fake = FakeAssistant([
        respondents_payload(100, _answer_yes),
        respondents_payload(100, _answer_yes),
        respondents_payload(50, _answer_yes),
    ])
    records = await BatchOrchestrator(fake, settings).generate(pro_request, batch_size=100)

    ids = [r.respondentId for r in records]
    assert len(records) == 250
    assert ids == [f"r{i:04d}" for i in range(1, 251)]
    assert len(set(ids)) == 250
    assert fake.calls == 3
    assert "EXACTAMENTE 50 personas" in fake.prompts[2]
    assert "r0201" in fake.prompts[2]
    assert fake.timeouts == [batch_timeout(100, 1, settings)] * 2 + [batch_timeout(50, 1, settings)]


async def test_unparsable_batch_is_retried_once(settings, pro_request):
    fake = FakeAssistant([ParseError("bad json"), respondents_payload(20, _answer_yes)])
    records = await BatchOrchestrator(fake, settings).generate(pro_request, total=20, batch_size=20)
    assert len(records) == 20
    assert fake.calls == 2
    assert "no era un JSON válido" in fake.prompts[1]


async def test_second_parse_failure_fails_the_request(settings, pro_request):
    fake = FakeAssistant([
        respondents_payload(10, _answer_yes),
        ParseError("bad json"),
        {"status": "completed", "raw_respondents": []},
    ])
    with pytest.raises(ParseError):
        await BatchOrchestrator(fake, settings).generate(pro_request, total=20, batch_size=10)
    assert fake.calls == 3


async def test_short_batch_is_retried_and_ids_stay_contiguous(settings, pro_request):
    fake = FakeAssistant([
        respondents_payload(100, _answer_yes),
        respondents_payload(40, _answer_yes),
        respondents_payload(100, _answer_yes),
        respondents_payload(50, _answer_yes),
    ])
    records = await BatchOrchestrator(fake, settings).generate(pro_request, batch_size=100)
    assert len(records) == 250
    assert [r.respondentId for r in records] == [f"r{i:04d}" for i in range(1, 251)]
    assert fake.calls == 4
    assert "desde r0101 hasta r0200" in fake.prompts[2]


async def test_short_batch_twice_fails_the_request(settings, pro_request):
    fake = FakeAssistant([
        respondents_payload(100, _answer_yes),
        respondents_payload(40, _answer_yes),
        respondents_payload(40, _answer_yes),
    ])
    with pytest.raises(ParseError):
        await BatchOrchestrator(fake, settings).generate(pro_request, batch_size=100)
    assert fake.calls == 3


async def test_timeout_is_not_retried(settings, pro_request):
    fake = FakeAssistant([ProviderTimeout(1.0)])
    with pytest.raises(ProviderTimeout):
        await BatchOrchestrator(fake, settings).generate(pro_request, total=10, batch_size=10)
    assert fake.calls == 1


async def test_oversized_batch_is_truncated(settings, pro_request):
    fake = FakeAssistant([respondents_payload(15, _answer_yes)])
    records = await BatchOrchestrator(fake, settings).generate(pro_request, total=10, batch_size=10)
    assert [r.respondentId for r in records][-1] == "r0010"
    assert len(records) == 10


async def test_default_batch_size_comes_from_settings(pro_request):
    settings = make_settings(batch_size=125)
    fake = FakeAssistant([respondents_payload(125, _answer_yes), respondents_payload(125, _answer_yes)])
    records = await BatchOrchestrator(fake, settings).generate(pro_request)
    assert len(records) == 250
    assert fake.calls == 2
