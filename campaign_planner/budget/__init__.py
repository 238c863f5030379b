"""
Budget allocation, normalization and reallocation for the media plan
"""

from .allocator import (
    Allocation,
    round_half_up,
    normalize_amounts,
    normalize_segment_channels,
    normalize_campaign,
)
from .reallocation import (
    set_channel_percentage,
    add_channel,
    remove_channel,
    distribute_remaining,
    channel_percentage,
    unallocated_budget,
)
from .merge import (
    apply_audience_research,
    apply_budget_split,
    apply_owned_media,
    apply_creative_groups,
    apply_generated_creative,
)

__all__ = [
    "Allocation",
    "round_half_up",
    "normalize_amounts",
    "normalize_segment_channels",
    "normalize_campaign",
    "set_channel_percentage",
    "add_channel",
    "remove_channel",
    "distribute_remaining",
    "channel_percentage",
    "unallocated_budget",
    "apply_audience_research",
    "apply_budget_split",
    "apply_owned_media",
    "apply_creative_groups",
    "apply_generated_creative",
]
