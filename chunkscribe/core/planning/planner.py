"""Segment planning for split and chunking policies."""

from __future__ import annotations

from typing import List

from ...data.models import ByCount, ByDuration, BySize, Manual, Segment, SplitPolicy
from ...errors import InvalidPolicyError


def plan(total_extent: float, policy: SplitPolicy) -> List[Segment]:
    """Return the ordered segments ``policy`` produces over ``[0, total_extent)``.

    ``total_extent`` is a duration in seconds for time-based policies or a byte
    length for :class:`BySize`. The result is deterministic and the final
    segment of every computed policy ends exactly at ``total_extent``.
    Manual ranges are validated and re-indexed by list position but otherwise
    passed through as given, gaps and all.
    """

    if isinstance(policy, Manual):
        return _plan_manual(total_extent, policy)
    if isinstance(policy, ByCount):
        return _plan_by_count(total_extent, policy)
    if isinstance(policy, ByDuration):
        return _plan_by_duration(total_extent, policy)
    if isinstance(policy, BySize):
        return _plan_by_size(total_extent, policy)
    raise InvalidPolicyError(f"Unsupported split policy: {policy!r}")


def _require_extent(total_extent: float) -> None:
    if total_extent <= 0:
        raise InvalidPolicyError(f"Total extent must be positive, got {total_extent}")


def _plan_by_count(total_extent: float, policy: ByCount) -> List[Segment]:
    if policy.count < 2:
        raise InvalidPolicyError(f"Segment count must be at least 2, got {policy.count}")
    _require_extent(total_extent)

    width = total_extent / policy.count
    segments = [
        Segment(index=i, start=i * width, end=min((i + 1) * width, total_extent))
        for i in range(policy.count)
    ]
    last = segments[-1]
    segments[-1] = Segment(index=last.index, start=last.start, end=total_extent)
    return segments


def _plan_by_duration(total_extent: float, policy: ByDuration) -> List[Segment]:
    if policy.seconds <= 0:
        raise InvalidPolicyError(f"Segment duration must be positive, got {policy.seconds}")
    _require_extent(total_extent)

    segments: List[Segment] = []
    index = 0
    while index * policy.seconds < total_extent:
        segments.append(
            Segment(
                index=index,
                start=index * policy.seconds,
                end=min((index + 1) * policy.seconds, total_extent),
            )
        )
        index += 1
    return segments


def _plan_by_size(total_extent: float, policy: BySize) -> List[Segment]:
    if policy.chunk_size_bytes <= 0:
        raise InvalidPolicyError(f"Chunk size must be positive, got {policy.chunk_size_bytes}")
    total = int(total_extent)
    _require_extent(total)

    size = int(policy.chunk_size_bytes)
    return [
        Segment(index=i, start=offset, end=min(offset + size, total))
        for i, offset in enumerate(range(0, total, size))
    ]


def _plan_manual(total_extent: float, policy: Manual) -> List[Segment]:
    if not policy.ranges:
        raise InvalidPolicyError("Manual policy requires at least one range")

    segments: List[Segment] = []
    for position, (start, end) in enumerate(policy.ranges):
        if start < 0 or start >= end:
            raise InvalidPolicyError(
                f"Manual range {position + 1} must satisfy 0 <= start < end, got ({start}, {end})"
            )
        if end > total_extent:
            raise InvalidPolicyError(
                f"Manual range {position + 1} ends at {end}, beyond the media extent {total_extent}"
            )
        segments.append(Segment(index=position, start=start, end=end))
    return segments


__all__ = ["plan"]
