"""
Media channels and creative formats supported by the media plan
"""

SUPPORTED_CHANNELS = [
    "Facebook",
    "Instagram",
    "Google Search",
    "Google Display",
    "TikTok",
    "YouTube",
    "LinkedIn",
]

OWNED_MEDIA_CHANNELS = [
    "Email",
    "SMS",
    "In-App Push",
    "Direct Mail",
]

ASPECT_RATIOS = ["1:1", "9:16", "16:9"]

# Share of the segment budget a channel receives when it is switched on without a slider value
DEFAULT_CHANNEL_PERCENTAGE = 10

# Platform standard upper bound for open-ended age ranges like "25+"
DEFAULT_AGE_MIN = 18
DEFAULT_AGE_MAX = 65
DEFAULT_AGE_RANGE_WIDTH = 10


def validate_channels(channels: list[str]) -> tuple[bool, list[str]]:
    """
    Check a list of channel names against the supported paid media channels

    Args:
        channels: Channel names to validate

    Returns:
        Tuple of (all_valid, unknown_channels)
    """
    known = {c.lower() for c in SUPPORTED_CHANNELS}
    unknown = [c for c in channels if c.lower() not in known]
    return len(unknown) == 0, unknown


def get_channels_list() -> str:
    """Return the supported paid channels as a comma-separated string for prompts"""
    return ", ".join(SUPPORTED_CHANNELS)
