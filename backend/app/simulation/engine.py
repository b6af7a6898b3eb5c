"""
Simulation engine: routes a canonical request through the right pipeline.

* Interview: one interview prompt, free-text answers per question.
* Basic survey: one aggregate prompt, provider distributions validated
  against the declared options and normalized.
* Professional survey: batched synthetic respondents, canonicalized and
  aggregated locally, with an optional rationale pass on top.

Every mandatory provider call aborts the request on failure. Only the
rationale pass is allowed to fail quietly, because it never changes a
number in the response.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..core.assistant_client import AssistantClient
from ..core.config import Settings, get_settings
from ..core.errors import ProviderError
from ..models.schemas import (
    AggregateResult,
    SimulationKind,
    SimulationRequest,
    SimulationResponse,
    SurveyMode,
)
from .aggregator import aggregate_from_provider, aggregate_respondents, attach_rationales
from .assembler import assemble_basic, assemble_interview, assemble_professional, new_simulation_id
from .batching import BatchOrchestrator
from .prompts import build_basic_survey_prompt, build_interview_prompt, build_rationale_prompt

logger = logging.getLogger("simulation.engine")


class SimulationEngine:
    """Driver for one simulation request.

    The engine holds no per-request state; a single instance can serve
    concurrent requests as long as the injected client is shareable.
    """

    def __init__(self, client: Optional[AssistantClient] = None, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.client = client or AssistantClient(settings=self.settings)
        self.batches = BatchOrchestrator(self.client, self.settings)

    async def run(self, request: SimulationRequest, simulation_id: Optional[str] = None) -> SimulationResponse:
        simulation_id = simulation_id or new_simulation_id()
        if request.kind == SimulationKind.INTERVIEW:
            return await self.run_interview(simulation_id, request)
        if request.mode == SurveyMode.PROFESSIONAL:
            return await self.run_professional(simulation_id, request)
        return await self.run_basic(simulation_id, request)

    async def run_interview(self, simulation_id: str, request: SimulationRequest) -> SimulationResponse:
        payload = await self.client.submit(build_interview_prompt(request), self.settings.interview_timeout)
        return assemble_interview(simulation_id, request, payload)

    async def run_basic(self, simulation_id: str, request: SimulationRequest) -> SimulationResponse:
        payload = await self.client.submit(build_basic_survey_prompt(request), self.settings.basic_timeout)
        results = aggregate_from_provider(request.questions, payload)
        return assemble_basic(simulation_id, results, payload)

    async def run_professional(self, simulation_id: str, request: SimulationRequest) -> SimulationResponse:
        records = await self.batches.generate(request)
        results = aggregate_respondents(request.questions, records)
        if self.settings.pro_rationales:
            await self._add_rationales(request, results)
        return assemble_professional(simulation_id, request, results, records)

    async def _add_rationales(self, request: SimulationRequest, results: List[AggregateResult]) -> None:
        if not any(r.aggregates for r in results):
            return
        prompt = build_rationale_prompt(request, results)
        try:
            payload = await self.client.submit(prompt, self.settings.rationale_timeout)
        except ProviderError as exc:
            logger.warning("Rationale pass failed, returning aggregates without rationales: %s", exc)
            return
        attached = attach_rationales(results, payload)
        logger.info("Attached %d rationale(s)", attached)
