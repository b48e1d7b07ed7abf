import math

from nodechart.analysis.sentinel import normalize, normalize_samples, normalize_value
from nodechart.core.models import RawSample


def test_negative_values_become_missing() -> None:
    for value in (-1.0, -0.001, -500.0):
        assert normalize(RawSample(task_id=1, timestamp_ms=0, value=value)).value is None


def test_non_negative_values_pass_through() -> None:
    for value in (0.0, 0.5, 12.0, 1e6):
        sample = RawSample(task_id=1, timestamp_ms=0, value=value)
        assert normalize(sample).value == value


def test_zero_is_not_missing() -> None:
    assert normalize_value(0.0) == 0.0
    assert normalize_value(0.0) is not None


def test_nan_and_none_are_missing() -> None:
    assert normalize_value(math.nan) is None
    assert normalize_value(None) is None


def test_normalize_samples_keeps_order_and_metadata() -> None:
    samples = [
        RawSample(task_id=1, timestamp_ms=10, value=-1.0),
        RawSample(task_id=2, timestamp_ms=20, value=3.0),
    ]
    out = normalize_samples(samples)
    assert [(s.task_id, s.timestamp_ms, s.value) for s in out] == [(1, 10, None), (2, 20, 3.0)]
