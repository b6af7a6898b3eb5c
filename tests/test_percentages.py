"""
Tests for single-choice percentage normalization.
"""

import pytest

from backend.app.core.errors import AggregationInconsistency
from backend.app.models.schemas import OptionShare
from backend.app.simulation.percentages import clamp_int, ensure_sums_to_100, normalize_to_100


def _shares(*values):
    return [OptionShare(text=f"o{i}", percentage=v) for i, v in enumerate(values)]


def _values(shares):
    return [s.percentage for s in shares]


def test_already_normalized_is_unchanged():
    shares = _shares(60, 25, 15)
    assert _values(normalize_to_100(shares)) == [60, 25, 15]


@pytest.mark.parametrize(
    "values",
    [
        (0, 0, 0),
        (50, 30),
        (100, 100, 100),
        (1, 1, 1),
        (33, 33, 33),
        (0, 1, 1, 1, 1, 1, 1),
        (7,),
        (100, 0, 0, 0),
    ],
)
def test_output_sums_to_100_and_keeps_labels(values):
    shares = _shares(*values)
    result = normalize_to_100(shares)
    assert sum(_values(result)) == 100
    assert [s.text for s in result] == [s.text for s in shares]
    assert all(0 <= p <= 100 for p in _values(result))


def test_zero_total_gives_everything_to_first_option():
    assert _values(normalize_to_100(_shares(0, 0, 0))) == [100, 0, 0]


def test_residual_goes_to_first_option():
    # 62.5 -> 63 and 37.5 -> 38 overshoot by one point.
    assert _values(normalize_to_100(_shares(50, 30))) == [62, 38]


def test_many_small_shares_keep_zero_options_at_zero():
    assert _values(normalize_to_100(_shares(0, 1, 1, 1, 1, 1, 1))) == [0, 17, 17, 17, 17, 16, 16]


def test_is_deterministic():
    shares = _shares(10, 20, 30, 5)
    assert _values(normalize_to_100(shares)) == _values(normalize_to_100(shares))


def test_empty_input():
    assert normalize_to_100([]) == []


@pytest.mark.parametrize(
    "raw, expected",
    [(120, 100), (-5, 0), (49.5, 50), ("42", 42), (None, 0), ("abc", 0), (float("nan"), 0)],
)
def test_clamp_int(raw, expected):
    assert clamp_int(raw, 0, 100) == expected


def test_ensure_sums_to_100_flags_broken_distribution():
    with pytest.raises(AggregationInconsistency):
        ensure_sums_to_100(_shares(50, 40), "q1")
