"""
Rule-based mapping from an audience's targeting description to ad platform configs
"""

import json
import re
from typing import Any, Optional

from ..constants import DEFAULT_AGE_MAX, DEFAULT_AGE_MIN, DEFAULT_AGE_RANGE_WIDTH
from ..models import AudienceTargeting

PLACEHOLDER_ID = "placeholder_id_needs_lookup"


def parse_age_range(age_range: str) -> tuple[int, int]:
    """
    Parse a free-text age range into (min, max)

    Handles "18-35", "18 to 35" and "18+". A single number without "+" gets a
    ten-year window; anything without numbers falls back to 18-65.
    """
    numbers = re.findall(r"\d+", age_range or "")
    if not numbers:
        return DEFAULT_AGE_MIN, DEFAULT_AGE_MAX

    age_min = int(numbers[0])
    if len(numbers) > 1:
        age_max = int(numbers[1])
    elif "+" in age_range:
        age_max = DEFAULT_AGE_MAX
    else:
        age_max = age_min + DEFAULT_AGE_RANGE_WIDTH
    return age_min, age_max


def _single_gender(targeting: AudienceTargeting) -> Optional[str]:
    """Lower-cased gender when exactly one is targeted, else None"""
    if len(targeting.genders) != 1:
        return None
    return targeting.genders[0].lower()


def _is_female(gender: str) -> bool:
    return "female" in gender or "women" in gender


def _is_female_label(gender: str) -> bool:
    """Google and TikTok read any label containing "fe" as female; "women" is accepted as on Meta"""
    return "fe" in gender or "women" in gender


def map_to_meta(targeting: AudienceTargeting, country: str) -> dict[str, Any]:
    age_min, age_max = parse_age_range(targeting.age_range)

    genders = [1, 2]  # 1=Male, 2=Female in the Meta Marketing API
    gender = _single_gender(targeting)
    if gender is not None:
        if _is_female(gender):
            genders = [2]
        elif "male" in gender or "men" in gender:
            genders = [1]

    return {
        "name": "Targeting Spec",
        "geo_locations": {
            "countries": [country[:2].upper()],
            "location_types": ["home", "recent"],
        },
        "age_min": age_min,
        "age_max": age_max,
        "genders": genders,
        "flexible_spec": [
            {
                "interests": [{"name": i, "id": PLACEHOLDER_ID} for i in targeting.interests],
                "behaviors": [{"name": b, "id": PLACEHOLDER_ID} for b in targeting.behaviors],
            }
        ],
        "publisher_platforms": ["facebook", "instagram"],
        "facebook_positions": ["feed", "story"],
        "instagram_positions": ["stream", "story"],
    }


def map_to_google(targeting: AudienceTargeting, country: str) -> dict[str, Any]:
    gender = _single_gender(targeting)
    if gender is None:
        gender_type = "GENDER_UNDETERMINED"
    else:
        gender_type = "GENDER_FEMALE" if _is_female_label(gender) else "GENDER_MALE"

    return {
        "criterion": {
            "location": {
                "locationName": country,
                "displayType": "Country",
            },
            # Google buckets ages into enums (AGE_RANGE_18_24, ...); left for manual mapping
            "ageRange": {"type": "AGE_RANGE_UNDETERMINED"},
            "gender": {"type": gender_type},
            "userInterests": [
                {"name": i, "taxonomyType": "AFFINITY", "status": "ENABLED"}
                for i in targeting.interests
            ],
            "userList": {
                "name": "Website Visitors (Retargeting)",
                "membershipLifeSpan": 30,
            },
        }
    }


def map_to_linkedin(targeting: AudienceTargeting, country: str) -> dict[str, Any]:
    return {
        "adTargetingSegments": [
            {
                "locations": [{"country": country}],
                "industries": [{"name": j} for j in targeting.job_titles],
                "seniorities": ["Manager", "Director", "VP", "CXO"],
                "interests": list(targeting.interests),
                "companySize": ["11-50", "51-200", "201-500", "501-1000", "1001-5000", "5000+"],
            }
        ]
    }


def map_to_tiktok(targeting: AudienceTargeting, country: str) -> dict[str, Any]:
    gender = _single_gender(targeting)
    if gender is None:
        gender_type = "UNLIMITED"
    else:
        gender_type = "FEMALE" if _is_female_label(gender) else "MALE"

    return {
        "audience": {
            "location_ids": [country],
            "gender": gender_type,
            "age": [targeting.age_range],
            "interest_category_ids": list(targeting.interests),
            "behavior_categories": [{"name": b} for b in targeting.behaviors],
            "operating_systems": ["ANDROID", "IOS"],
        }
    }


def map_to_generic(targeting: AudienceTargeting, country: str) -> dict[str, Any]:
    return {
        "target": targeting.model_dump(),
        "note": "Generic mapping used for unspecified channel.",
    }


def classify_channel(channel: str) -> str:
    """Platform family of a channel name: meta, google, linkedin, tiktok or generic"""
    c = channel.lower()
    if "facebook" in c or "instagram" in c:
        return "meta"
    if any(k in c for k in ("google", "youtube", "search", "display")):
        return "google"
    if "linkedin" in c:
        return "linkedin"
    if "tiktok" in c:
        return "tiktok"
    return "generic"


PLATFORM_MAPPERS = {
    "meta": map_to_meta,
    "google": map_to_google,
    "linkedin": map_to_linkedin,
    "tiktok": map_to_tiktok,
    "generic": map_to_generic,
}


def generate_platform_configs(
    targeting: Optional[AudienceTargeting],
    channels: list[str],
    country: str,
) -> dict[str, dict[str, Any]]:
    """
    Build a platform-shaped targeting config for every channel

    Args:
        targeting: Segment targeting description (None yields no configs)
        channels: Channel names, classified by substring
        country: Campaign country

    Returns:
        Mapping of channel name to its platform config
    """
    if targeting is None:
        return {}

    return {
        channel: PLATFORM_MAPPERS[classify_channel(channel)](targeting, country)
        for channel in channels
    }


def format_platform_configs(configs: dict[str, dict[str, Any]]) -> dict[str, str]:
    """Pretty-printed JSON per channel, ready to copy into an ads manager"""
    return {channel: json.dumps(config, indent=2) for channel, config in configs.items()}
