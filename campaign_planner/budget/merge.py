"""
Reducers that merge generation results onto the latest campaign state

Generation calls are awaited concurrently. Each result is applied with one of
these functions at the moment it arrives, against whatever the campaign looks
like then, so a slow response never overwrites a sibling result that finished
first. Every reducer takes (latest_campaign, result) and returns a new campaign.
"""

from typing import Optional

from ..models import (
    AudienceResearch,
    BudgetSplitSuggestion,
    Campaign,
    Creative,
    CreativeGroup,
    MediaSplit,
    OwnedMediaAnalysis,
)
from .allocator import normalize_campaign


def apply_audience_research(latest: Campaign, research: AudienceResearch) -> Campaign:
    """Replace the segments and the market research around them"""
    segments = [s.model_copy(update={"is_selected": True}) for s in research.segments]
    return latest.model_copy(update={
        "audience_segments": segments,
        "segment_sources": research.sources,
        "competitor_analysis": research.competitor_analysis,
        "proposition": research.proposition,
    })


def apply_budget_split(latest: Campaign, suggestion: BudgetSplitSuggestion) -> Campaign:
    """
    Apply a provisional media plan and run the normalization pass on it.

    Splits are matched to segments by name. Segments the plan does not mention
    get a zero budget and no channels; splits for unknown segments are ignored.
    """
    splits_by_name = {s.segment_name: s for s in suggestion.splits}

    provisional = []
    for segment in latest.audience_segments:
        split = splits_by_name.get(segment.name)
        if split is None:
            provisional.append(segment.model_copy(update={"budget": 0, "media_split": []}))
            continue
        provisional.append(segment.model_copy(update={
            # Provisional amounts may be fractional; normalization turns them into whole units
            "budget": split.allocated_budget,
            "media_split": [
                MediaSplit.model_construct(channel=m.channel, budget=m.budget)
                for m in split.media_split
            ],
        }))

    normalized = normalize_campaign(latest.model_copy(update={"audience_segments": provisional}))
    return normalized.model_copy(update={
        "budget_analysis": suggestion.analysis,
        "budget_sources": suggestion.sources,
    })


def apply_owned_media(latest: Campaign, analysis: OwnedMediaAnalysis) -> Campaign:
    return latest.model_copy(update={"owned_media_analysis": analysis})


def apply_creative_groups(latest: Campaign, groups_by_segment: dict[str, list[CreativeGroup]]) -> Campaign:
    """Replace the creative groups of the named segments, leaving the others alone"""
    segments = [
        s.model_copy(update={"creative_groups": groups_by_segment[s.name]})
        if s.name in groups_by_segment else s
        for s in latest.audience_segments
    ]
    return latest.model_copy(update={"audience_segments": segments})


def apply_generated_creative(
    latest: Campaign,
    segment_name: str,
    group_name: str,
    creative: Optional[Creative],
) -> Campaign:
    """
    Attach a generated creative to a group.

    Segments and groups are looked up by name because indices may have shifted
    while the image was being generated. A result whose group no longer exists
    is dropped.
    """
    segments = []
    for segment in latest.audience_segments:
        if segment.name != segment_name:
            segments.append(segment)
            continue
        groups = [
            g.model_copy(update={"generated_creative": creative}) if g.name == group_name else g
            for g in segment.creative_groups
        ]
        segments.append(segment.model_copy(update={"creative_groups": groups}))
    return latest.model_copy(update={"audience_segments": segments})
