import math

from meetscribe.errors import InvalidDurationError
from meetscribe.planner import plan_segments


def test_plan_segments_splits_610_seconds_into_three_spans():
    spans = plan_segments(610, 300)

    assert [(s.index, s.start_sec, s.duration_sec) for s in spans] == [
        (0, 0, 300),
        (1, 300, 300),
        (2, 600, 10),
    ]


def test_plan_segments_covers_duration_without_gaps_or_overlaps():
    for total, length in [(1.0, 300), (299.9, 300), (300.0, 300), (1234.56, 300), (3600.25, 120), (7.5, 2)]:
        spans = plan_segments(total, length)

        assert len(spans) == math.ceil(total / length)
        assert [s.index for s in spans] == list(range(len(spans)))
        assert spans[0].start_sec == 0
        for previous, current in zip(spans, spans[1:]):
            assert current.start_sec == previous.end_sec
        assert all(0 < s.duration_sec <= length for s in spans)
        assert math.isclose(sum(s.duration_sec for s in spans), total)


def test_plan_segments_uses_five_minute_default():
    spans = plan_segments(900.0)

    assert len(spans) == 3
    assert all(s.duration_sec == 300 for s in spans)


def test_plan_segments_is_deterministic():
    assert plan_segments(1801.5, 300) == plan_segments(1801.5, 300)


def test_plan_segments_rejects_non_positive_duration():
    for bad in (0, -5.0, float("nan"), float("inf")):
        try:
            plan_segments(bad, 300)
        except InvalidDurationError as exc:
            assert "duration must be positive" in str(exc)
        else:
            raise AssertionError(f"Expected InvalidDurationError for {bad!r}")


def test_plan_segments_rejects_non_positive_segment_length():
    try:
        plan_segments(100.0, 0)
    except ValueError as exc:
        assert "Segment length" in str(exc)
    else:
        raise AssertionError("Expected ValueError for zero segment length")
