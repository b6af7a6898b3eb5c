"""
Deterministic percentage normalization for single-choice distributions.

``normalize_to_100`` coerces a list of option shares into integers that sum
to exactly 100. It is order-preserving and free of randomness: the same
input always yields the same output, and any rounding residual is absorbed
by the first option.
"""

from __future__ import annotations

import math
from typing import Any, List

from ..core.errors import AggregationInconsistency
from ..models.schemas import OptionShare


def clamp_int(value: Any, low: int, high: int) -> int:
    """Round ``value`` to an int and clamp it to ``[low, high]``.

    Non-numeric and non-finite values count as 0.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if not math.isfinite(number):
        number = 0.0
    return max(low, min(high, round_half_up(number)))


def round_half_up(value: float) -> int:
    # Half-up, not banker's rounding.
    return int(math.floor(value + 0.5))


def normalize_to_100(shares: List[OptionShare]) -> List[OptionShare]:
    if not shares:
        return []
    clamped = [OptionShare(text=s.text, percentage=clamp_int(s.percentage, 0, 100)) for s in shares]
    total = sum(s.percentage for s in clamped)
    if total == 100:
        return clamped
    if total <= 0:
        return [
            OptionShare(text=s.text, percentage=100 if i == 0 else 0)
            for i, s in enumerate(clamped)
        ]
    scaled = [round_half_up(s.percentage * 100 / total) for s in clamped]
    scaled[0] += 100 - sum(scaled)
    # Many small shares can push the residual past the first bucket.
    if scaled[0] < 0 or scaled[0] > 100:
        return _redistribute(clamped, total)
    return [OptionShare(text=s.text, percentage=p) for s, p in zip(clamped, scaled)]


def _redistribute(clamped: List[OptionShare], total: int) -> List[OptionShare]:
    # Largest remainder: floor everything, then one point each to the biggest
    # fractional parts, ties in input order. Zero inputs stay at 0.
    floors = [s.percentage * 100 // total for s in clamped]
    fractions = [s.percentage * 100 % total for s in clamped]
    remainder = 100 - sum(floors)
    ranked = sorted(range(len(clamped)), key=lambda i: (-fractions[i], i))
    for i in ranked[:remainder]:
        floors[i] += 1
    return [OptionShare(text=s.text, percentage=p) for s, p in zip(clamped, floors)]


def ensure_sums_to_100(shares: List[OptionShare], question_id: str = "") -> None:
    if not shares:
        return
    total = sum(s.percentage for s in shares)
    if total != 100:
        raise AggregationInconsistency(
            f"Single-choice distribution for '{question_id}' sums to {total}"
        )
