"""
Money allocator: reconciles provisional budget suggestions with a fixed total

All arithmetic is done on exact rationals so that whole-unit rounding never
drifts. Rounding is half away from zero everywhere in the budget engine; since
budgets are non-negative that is plain half-up.
"""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Literal, Sequence, Union

from ..exceptions import AllocationError
from ..models import AudienceSegment, Campaign, MediaSplit

Number = Union[int, float, Fraction]


@dataclass(frozen=True)
class Allocation:
    """Result of a normalization pass"""
    amounts: list[int]
    normalized: bool  # False when the provisional amounts carried no weight


def round_half_up(value: Number) -> int:
    """Round a non-negative amount to whole units, halves rounding up"""
    return math.floor(Fraction(value) + Fraction(1, 2))


def normalize_amounts(
    total: int,
    amounts: Sequence[Number],
    absorb: Literal["first", "last"] = "last",
) -> Allocation:
    """
    Scale provisional amounts so they sum exactly to `total`.

    Every entry except the absorbing one is scaled and rounded; the absorbing
    entry takes whatever is left, so all rounding residue lands on it.

    Args:
        total: Whole-unit budget to partition
        amounts: Provisional non-negative amounts (any scale)
        absorb: Which end of the list absorbs the rounding residue

    Returns:
        Allocation with integer amounts. `normalized` is False (and all amounts
        are zero) when the provisional amounts sum to zero.

    Raises:
        AllocationError: If the total or any provisional amount is negative
    """
    if total < 0:
        raise AllocationError(f"Total budget must not be negative (got {total})")
    negatives = [a for a in amounts if a < 0]
    if negatives:
        raise AllocationError(f"Provisional amounts must not be negative (got {negatives[0]})")

    weights = [Fraction(a) for a in amounts]
    weight_total = sum(weights, Fraction(0))
    if weight_total == 0:
        return Allocation(amounts=[0] * len(weights), normalized=False)

    ratio = Fraction(total) / weight_total
    absorbing = 0 if absorb == "first" else len(weights) - 1

    exact = [weight * ratio for weight in weights]
    result = [0] * len(weights)
    for i, share in enumerate(exact):
        if i != absorbing:
            result[i] = round_half_up(share)
    residual = total - sum(result)

    # Rounding up many small shares can overshoot the total. Take units back from
    # the entries that were rounded up the most so the absorbing entry stays >= 0.
    if residual < 0:
        rounded_up = sorted(
            (i for i in range(len(result)) if i != absorbing and result[i] > exact[i]),
            key=lambda i: (-(result[i] - exact[i]), i),
        )
        for i in rounded_up[:-residual]:
            result[i] -= 1
        residual = total - sum(result)

    result[absorbing] = residual
    return Allocation(amounts=result, normalized=True)


def normalize_segment_channels(segment: AudienceSegment) -> AudienceSegment:
    """
    Fit a segment's channel split to the segment budget, first channel absorbing the residue.
    A split without weight stays at zero and shows up as unallocated budget.
    """
    if not segment.media_split:
        return segment

    allocation = normalize_amounts(
        segment.budget or 0,
        [m.budget for m in segment.media_split],
        absorb="first",
    )
    media_split = [
        MediaSplit(channel=m.channel, budget=amount)
        for m, amount in zip(segment.media_split, allocation.amounts)
    ]
    return segment.model_copy(update={"media_split": media_split})


def normalize_campaign(campaign: Campaign) -> Campaign:
    """
    Two-level normalization pass.

    Segment budgets are fitted to the paid media budget (last segment absorbs
    the residue), then each segment's channels are fitted to the segment's new
    budget (first channel absorbs the residue).
    """
    segments = campaign.audience_segments
    allocation = normalize_amounts(
        campaign.paid_media_budget,
        [s.budget or 0 for s in segments],
        absorb="last",
    )

    normalized_segments = [
        normalize_segment_channels(segment.model_copy(update={"budget": amount}))
        for segment, amount in zip(segments, allocation.amounts)
    ]
    return campaign.model_copy(update={"audience_segments": normalized_segments})
