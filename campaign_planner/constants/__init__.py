"""
Constants module for the campaign planner
"""

from .channels import (
    SUPPORTED_CHANNELS,
    OWNED_MEDIA_CHANNELS,
    ASPECT_RATIOS,
    DEFAULT_CHANNEL_PERCENTAGE,
    DEFAULT_AGE_MIN,
    DEFAULT_AGE_MAX,
    DEFAULT_AGE_RANGE_WIDTH,
    validate_channels,
    get_channels_list,
)

__all__ = [
    "SUPPORTED_CHANNELS",
    "OWNED_MEDIA_CHANNELS",
    "ASPECT_RATIOS",
    "DEFAULT_CHANNEL_PERCENTAGE",
    "DEFAULT_AGE_MIN",
    "DEFAULT_AGE_MAX",
    "DEFAULT_AGE_RANGE_WIDTH",
    "validate_channels",
    "get_channels_list",
]
