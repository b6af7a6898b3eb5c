"""
Batch orchestration for professional surveys.

Large respondent pools are split into bounded batches, each generated by
its own provider call. Batches run sequentially so respondent ids stay
deterministic and only one run per request is outstanding at the
provider. Any batch that still fails after its single JSON retry fails
the whole simulation: a partial pool would bias every aggregate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.assistant_client import AssistantClient
from ..core.config import Settings, get_settings
from ..core.errors import ParseError
from ..models.schemas import RespondentRecord, SimulationRequest
from .aggregator import clean_respondent
from .prompts import build_json_retry_prompt, build_professional_batch_prompt, format_respondent_id

logger = logging.getLogger("simulation.batching")


@dataclass(frozen=True)
class BatchPlan:
    index: int
    offset: int
    size: int

    @property
    def first_id(self) -> str:
        return format_respondent_id(self.offset + 1)

    @property
    def last_id(self) -> str:
        return format_respondent_id(self.offset + self.size)


def plan_batches(total: int, batch_size: int) -> List[BatchPlan]:
    if total <= 0:
        return []
    batch_size = max(1, batch_size)
    count = math.ceil(total / batch_size)
    return [
        BatchPlan(index=b, offset=b * batch_size, size=min(batch_size, total - b * batch_size))
        for b in range(count)
    ]


def batch_timeout(size: int, question_count: int, settings: Settings) -> float:
    return (
        settings.batch_base_timeout
        + size * settings.batch_per_respondent_timeout
        + question_count * settings.batch_per_question_timeout
    )


class BatchOrchestrator:
    def __init__(self, client: AssistantClient, settings: Optional[Settings] = None) -> None:
        self.client = client
        self.settings = settings or get_settings()

    async def generate(
        self,
        request: SimulationRequest,
        total: Optional[int] = None,
        batch_size: Optional[int] = None,
    ) -> List[RespondentRecord]:
        """Generate ``total`` respondents, batch by batch, in id order."""
        total = request.respondent_count if total is None else total
        batch_size = batch_size or self.settings.batch_size
        plans = plan_batches(total, batch_size)
        logger.info("Generating %d respondents in %d batch(es) of up to %d", total, len(plans), batch_size)
        records: List[RespondentRecord] = []
        for plan in plans:
            records.extend(await self.run_batch(request, plan))
        return records

    async def run_batch(self, request: SimulationRequest, plan: BatchPlan) -> List[RespondentRecord]:
        prompt = build_professional_batch_prompt(request, plan.offset, plan.size)
        timeout = batch_timeout(plan.size, len(request.questions), self.settings)
        logger.info(
            "Batch %d: respondents %s..%s (timeout %.0fs)", plan.index, plan.first_id, plan.last_id, timeout
        )
        try:
            raw = await self._respondents(prompt, timeout, plan.size)
        except ParseError as exc:
            logger.warning("Batch %d returned unusable output (%s); retrying once", plan.index, exc)
            raw = await self._respondents(build_json_retry_prompt(prompt), timeout, plan.size)

        if len(raw) > plan.size:
            logger.warning("Batch %d: provider returned %d respondents, keeping %d", plan.index, len(raw), plan.size)
            raw = raw[: plan.size]

        # Provider ids are not trusted; ids follow position within the run.
        return [
            clean_respondent(request.questions, item, format_respondent_id(plan.offset + i + 1))
            for i, item in enumerate(raw)
        ]

    async def _respondents(self, prompt: str, timeout: float, size: int) -> List[Any]:
        payload: Dict[str, Any] = await self.client.submit(prompt, timeout)
        raw = payload.get("raw_respondents")
        if not isinstance(raw, list) or not raw:
            raise ParseError("Reply has no raw_respondents")
        # A short batch would leave a gap in the pool.
        if len(raw) < size:
            raise ParseError(f"Reply has {len(raw)} of {size} respondents")
        return raw
