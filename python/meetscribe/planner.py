from __future__ import annotations

import math

from .errors import InvalidDurationError
from .models import SegmentSpan

DEFAULT_SEGMENT_SEC = 300


def plan_segments(total_duration_sec: float, segment_length_sec: int = DEFAULT_SEGMENT_SEC) -> list[SegmentSpan]:
    """Split ``[0, total_duration_sec)`` into contiguous spans of at most ``segment_length_sec``.

    The last span carries the remainder and may be shorter than the others.
    """
    if not math.isfinite(total_duration_sec) or total_duration_sec <= 0:
        raise InvalidDurationError(f"Audio duration must be positive, got {total_duration_sec!r}")
    if segment_length_sec <= 0:
        raise InvalidDurationError(f"Segment length must be positive, got {segment_length_sec!r}")

    count = math.ceil(total_duration_sec / segment_length_sec)
    spans: list[SegmentSpan] = []
    for idx in range(count):
        start = idx * segment_length_sec
        spans.append(
            SegmentSpan(
                index=idx,
                start_sec=start,
                duration_sec=min(segment_length_sec, total_duration_sec - start),
            )
        )
    return spans
