from __future__ import annotations

import dataclasses
import math
import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence, TypeVar

_MMSS_RE = re.compile(r"^(\d{2}):(\d{2})$")


@dataclass
class SegmentValidationResult:
    is_valid: bool
    original_start: float
    original_end: float
    validated_start: float
    validated_end: float
    errors: list[str] = field(default_factory=list)


def _has_duration(video_duration: float | None) -> bool:
    return video_duration is not None and video_duration > 0


def validate_segment(
    start_sec: float,
    end_sec: float,
    video_duration: float | None = None,
    min_segment_length: float = 1,
) -> SegmentValidationResult:
    """
    Clamp a time range into the video and report every adjustment.

    Never raises; callers decide whether to keep or drop an invalid result.
    """
    start = float(start_sec)
    end = float(end_sec)
    errors: list[str] = []

    if start < 0:
        start = 0.0
        errors.append(f"Start time {start_sec} clamped to 0")

    if _has_duration(video_duration):
        if start > video_duration:
            start = float(video_duration)
            errors.append(f"Start time {start_sec} clamped to video duration {video_duration}")
        if end > video_duration:
            end = float(video_duration)
            errors.append(f"End time {end_sec} clamped to video duration {video_duration}")

    if end <= start:
        end = start + min_segment_length
        errors.append(f"End time adjusted to maintain minimum segment length of {min_segment_length}s")

        if _has_duration(video_duration) and end > video_duration:
            end = float(video_duration)
            start = max(0.0, end - min_segment_length)
            errors.append("Segment adjusted to fit within video duration")

    is_valid = True
    if start >= end:
        is_valid = False
        errors.append("Segment is invalid: start >= end after validation")

    if video_duration is not None and start >= video_duration:
        is_valid = False
        errors.append("Segment is invalid: start >= video duration")

    return SegmentValidationResult(
        is_valid=is_valid,
        original_start=start_sec,
        original_end=end_sec,
        validated_start=start,
        validated_end=end,
        errors=errors,
    )


def validate_segments(
    segments: Iterable[tuple[float, float]],
    video_duration: float | None = None,
) -> list[SegmentValidationResult]:
    return [validate_segment(s, e, video_duration) for s, e in segments]


T = TypeVar("T")


def get_valid_segments(segments: Sequence[T], video_duration: float | None = None) -> list[T]:
    """
    Keep only segments that are valid after clamping.

    Items are dataclasses with `start_sec`/`end_sec`; returned items are copies
    carrying the clamped times.
    """
    results = validate_segments(((s.start_sec, s.end_sec) for s in segments), video_duration)  # type: ignore[attr-defined]
    out: list[T] = []
    for seg, res in zip(segments, results):
        if not res.is_valid:
            continue
        if res.validated_start == seg.start_sec and res.validated_end == seg.end_sec:  # type: ignore[attr-defined]
            out.append(seg)
        else:
            out.append(dataclasses.replace(seg, start_sec=res.validated_start, end_sec=res.validated_end))  # type: ignore[type-var]
    return out


# ----------------------------
# Timestamp helpers
# ----------------------------

def is_timestamp_valid(timestamp: float, video_duration: float | None = None) -> bool:
    if timestamp < 0:
        return False
    if video_duration is not None and timestamp > video_duration:
        return False
    return True


def clamp_timestamp(timestamp: float, video_duration: float | None = None) -> float:
    clamped = max(0.0, float(timestamp))
    if _has_duration(video_duration):
        clamped = min(clamped, float(video_duration))
    return clamped


def parse_timestamp(mmss: str, video_duration: float | None = None) -> int | None:
    """'MM:SS' -> seconds, or None when malformed, seconds >= 60, or past the video end."""
    m = _MMSS_RE.match(mmss or "")
    if not m:
        return None

    minutes = int(m.group(1))
    seconds = int(m.group(2))
    if seconds >= 60:
        return None

    total = minutes * 60 + seconds
    if video_duration is not None and total > video_duration:
        return None
    return total


def format_timestamp(seconds: float) -> str:
    s = max(0, math.floor(seconds))
    return f"{s // 60:02d}:{s % 60:02d}"
