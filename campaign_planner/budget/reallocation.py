"""
Interactive reallocation of a segment's channel budgets

These are the operations behind the media plan sliders and checkboxes. Each
returns an updated copy of the segment and keeps the segment invariant: the
channel budgets never add up to more than the segment budget.
"""

from fractions import Fraction
from typing import Optional, Union

from ..constants import DEFAULT_CHANNEL_PERCENTAGE
from ..exceptions import AllocationError
from ..models import AudienceSegment, MediaSplit
from .allocator import round_half_up


def _find_channel(media_split: list[MediaSplit], channel: str) -> Optional[int]:
    return next((i for i, m in enumerate(media_split) if m.channel == channel), None)


def _copy_split(segment: AudienceSegment) -> list[MediaSplit]:
    return [m.model_copy() for m in segment.media_split]


def unallocated_budget(segment: AudienceSegment) -> int:
    """Segment budget not yet assigned to any channel"""
    return (segment.budget or 0) - segment.allocated


def channel_percentage(segment: AudienceSegment, channel: str) -> int:
    """Share of the segment budget held by a channel, as a whole percentage"""
    segment_budget = segment.budget or 0
    index = _find_channel(segment.media_split, channel)
    if segment_budget <= 0 or index is None:
        return 0
    return round_half_up(Fraction(segment.media_split[index].budget * 100, segment_budget))


def set_channel_percentage(
    segment: AudienceSegment,
    channel: str,
    percentage: Union[int, float],
) -> AudienceSegment:
    """
    Set one channel to a share of the segment budget without touching its siblings.

    The request is clamped to what the other channels leave free, so the split can
    never exceed the segment budget. A channel without an entry gets one appended.

    Args:
        segment: Segment to edit
        channel: Channel name
        percentage: Requested share of the segment budget, 0-100

    Returns:
        Updated segment copy

    Raises:
        AllocationError: If the percentage is outside 0-100
    """
    if not 0 <= percentage <= 100:
        raise AllocationError(f"Channel percentage must be between 0 and 100 (got {percentage})")

    segment_budget = segment.budget or 0
    media_split = _copy_split(segment)
    index = _find_channel(media_split, channel)

    other_total = sum(m.budget for i, m in enumerate(media_split) if i != index)
    max_available = max(segment_budget - other_total, 0)
    target_budget = round_half_up(Fraction(segment_budget) * Fraction(percentage) / 100)
    final_budget = min(target_budget, max_available)

    if index is None:
        media_split.append(MediaSplit(channel=channel, budget=final_budget))
    else:
        media_split[index].budget = final_budget

    return segment.model_copy(update={"media_split": media_split})


def add_channel(
    segment: AudienceSegment,
    channel: str,
    percentage: Union[int, float] = DEFAULT_CHANNEL_PERCENTAGE,
) -> AudienceSegment:
    """Switch a channel on. An absent channel is seeded at `percentage`; an existing one is left alone."""
    if _find_channel(segment.media_split, channel) is not None:
        return segment
    return set_channel_percentage(segment, channel, percentage)


def remove_channel(
    segment: AudienceSegment,
    channel: str,
    redistribute: bool = False,
) -> AudienceSegment:
    """
    Switch a channel off. Its budget becomes unallocated, or is spread over the
    remaining channels when `redistribute` is set.
    """
    index = _find_channel(segment.media_split, channel)
    if index is None:
        return segment

    media_split = _copy_split(segment)
    del media_split[index]
    updated = segment.model_copy(update={"media_split": media_split})
    if redistribute:
        return distribute_remaining(updated)
    return updated


def distribute_remaining(segment: AudienceSegment) -> AudienceSegment:
    """
    Spread the unallocated part of a segment budget over its channels.

    Active channels (budget > 0) share the remainder in proportion to their
    budgets. If no channel is active, every existing entry takes an even share
    so a fully zeroed segment can be seeded again. When rounding hands out more
    than the remainder, units are taken back from the shares rounded up the
    most. Any remaining residue goes to the first channel of the pool, leaving
    the split equal to the segment budget.
    """
    remaining = unallocated_budget(segment)
    if remaining <= 0 or not segment.media_split:
        return segment

    media_split = _copy_split(segment)
    pool = [m for m in media_split if m.budget > 0] or media_split
    pool_total = sum(m.budget for m in pool)

    if pool_total > 0:
        exact = [Fraction(remaining * m.budget, pool_total) for m in pool]
    else:
        exact = [Fraction(remaining, len(pool))] * len(pool)
    shares = [round_half_up(share) for share in exact]

    overshoot = sum(shares) - remaining
    if overshoot > 0:
        rounded_up = sorted(
            (i for i in range(len(shares)) if shares[i] > exact[i]),
            key=lambda i: (-(shares[i] - exact[i]), i),
        )
        for i in rounded_up[:overshoot]:
            shares[i] -= 1

    for member, share in zip(pool, shares):
        member.budget += share
    pool[0].budget += remaining - sum(shares)

    return segment.model_copy(update={"media_split": media_split})
