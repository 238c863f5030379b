"""
Workflow nodes for campaign planning

Each node awaits one kind of generation call and returns a partial state update.
Results are never written into the state the node was handed: the campaign
update is a reducer from budget.merge, applied to the latest campaign when the
update lands. Failures are recorded under the node's UI region and leave the
campaign untouched.
"""

import uuid
from functools import partial
from typing import Optional, Union

from .budget.merge import (
    apply_audience_research,
    apply_budget_split,
    apply_creative_groups,
    apply_owned_media,
)
from .exceptions import GatewayError, ReauthorizationRequiredError
from .gateway import ContentGateway
from .models import AudienceSegment, Campaign, Creative, CreativeGroup, PlannerState


def _failure(region: str, error: GatewayError) -> dict:
    update = {"errors": {region: str(error)}}
    if isinstance(error, ReauthorizationRequiredError):
        update["reauthorization_required"] = True
    return update


def campaign_context(campaign: Campaign) -> str:
    return (
        f"Product: {campaign.campaign_name}. Values: {campaign.brand_values or 'N/A'}. "
        f"Target Country: {campaign.country}."
    )


def active_channels_for(campaign: Campaign, segment: AudienceSegment) -> list[str]:
    """Paid channels with budget plus the recommended owned channels, when owned media applies"""
    channels = segment.active_channels
    owned = campaign.owned_media_analysis
    if owned is not None and owned.is_applicable:
        channels += [c for c in owned.recommended_channels if c not in channels]
    return channels


def visible_creative_groups(campaign: Campaign, segment: AudienceSegment) -> list[CreativeGroup]:
    """Creative groups that still reach at least one active channel"""
    active = set(active_channels_for(campaign, segment))
    return [g for g in segment.creative_groups if any(c in active for c in g.channels)]


async def research_audience(state: PlannerState, gateway: ContentGateway) -> dict:
    """Generate audience segments, competitor analysis and proposition"""
    try:
        research = await gateway.get_audience_segments(state["campaign"], state.get("instructions"))
    except GatewayError as e:
        print(f"✗ Audience research failed: {e}")
        return {**_failure("audience", e), "current_step": "audience_failed"}

    return {
        "campaign": partial(apply_audience_research, research=research),
        "errors": {"audience": ""},
        "current_step": "plan_media",
    }


def route_after_audience(state: PlannerState) -> Union[str, list[str]]:
    """
    Routing function after audience research.
    Paid and owned media are planned in parallel once segments exist.
    """
    if state.get("current_step") == "plan_media":
        return ["plan_paid_media", "analyze_owned_media"]
    return "end_for_now"


async def plan_paid_media(state: PlannerState, gateway: ContentGateway) -> dict:
    """Fetch the provisional budget split; the reducer normalizes it against the latest campaign"""
    try:
        suggestion = await gateway.get_budget_split(state["campaign"], state.get("instructions"))
    except GatewayError as e:
        print(f"✗ Paid media planning failed: {e}")
        return _failure("media_plan", e)

    return {
        "campaign": partial(apply_budget_split, suggestion=suggestion),
        "errors": {"media_plan": ""},
    }


async def analyze_owned_media(state: PlannerState, gateway: ContentGateway) -> dict:
    try:
        analysis = await gateway.get_owned_media_analysis(state["campaign"])
    except GatewayError as e:
        return _failure("owned_media", e)

    return {
        "campaign": partial(apply_owned_media, analysis=analysis),
        "errors": {"owned_media": ""},
    }


async def plan_content_strategy(state: PlannerState, gateway: ContentGateway) -> dict:
    """
    Generate creative groups segment by segment.

    Segments are processed one after another to stay under API rate limits.
    Without `target_segments`, segments that already have groups are skipped;
    with it, exactly the named segments are regenerated. The first failure stops
    the loop but keeps the groups generated before it.
    """
    campaign = state["campaign"]
    targets = state.get("target_segments")
    groups_by_segment: dict[str, list[CreativeGroup]] = {}
    update: dict = {"current_step": "generate_creatives"}
    error: Optional[GatewayError] = None

    for segment in campaign.audience_segments:
        if targets is not None and segment.name not in targets:
            continue
        if targets is None and segment.creative_groups:
            continue

        channels = active_channels_for(campaign, segment)
        if not channels:
            print(f"  Skipping '{segment.name}': no active channels")
            continue

        try:
            groups_by_segment[segment.name] = await gateway.generate_creative_strategy(
                segment, channels, campaign_context(campaign), state.get("instructions")
            )
        except GatewayError as e:
            print(f"✗ Content strategy failed for '{segment.name}': {e}")
            error = e
            break

    if error is not None:
        update.update(_failure("content_strategy", error))
    else:
        update["errors"] = {"content_strategy": ""}
    if groups_by_segment:
        update["campaign"] = partial(apply_creative_groups, groups_by_segment=groups_by_segment)
    return update


def route_after_content_strategy(state: PlannerState) -> str:
    return "generate_creatives" if state.get("generate_images") else "end_for_now"


def build_image_instructions(campaign: Campaign, segment: AudienceSegment, instructions: Optional[str] = None) -> str:
    """Audience, country and content constraints appended to every image prompt"""
    portrait = (segment.pen_portrait or segment.description).rstrip(".")
    audience_context = f"Target Audience: {segment.name}. {portrait}."
    country_context = (
        f"Location: {campaign.country}. The image must be culturally and visually "
        f"appropriate for {campaign.country}."
    )
    constraints = (
        "Do not generate text, logos, or screen UI. Show the product only if strictly "
        "necessary; otherwise focus on the people and mood."
    )
    context = f"{audience_context} {country_context} {constraints}"
    return f"{instructions}. {context}" if instructions else context


async def create_group_creative(
    campaign: Campaign,
    segment: AudienceSegment,
    group: CreativeGroup,
    gateway: ContentGateway,
    instructions: Optional[str] = None,
    use_product_image: bool = True,
) -> Creative:
    """Generate the image for a group's selected prompt, placing the product image when there is one"""
    image = await gateway.generate_image(
        group.selected_prompt,
        group.aspect_ratio,
        build_image_instructions(campaign, segment, instructions),
        reference=campaign.product_image if use_product_image else None,
    )
    return Creative(
        id=uuid.uuid4().hex,
        image_prompt=group.selected_prompt,
        notification_text=group.selected_headline,
        image_base64=image.base64,
        mime_type=image.mime_type,
    )


async def generate_creatives(state: PlannerState, gateway: ContentGateway) -> dict:
    """Generate one image per visible creative group that does not have one yet"""
    campaign = state["campaign"]
    segments = []
    failures = 0
    reauthorization_required = False

    for segment in campaign.audience_segments:
        visible = {g.name for g in visible_creative_groups(campaign, segment)}
        groups = []
        for group in segment.creative_groups:
            if group.name in visible and group.generated_creative is None and not reauthorization_required:
                try:
                    creative = await create_group_creative(campaign, segment, group, gateway)
                    group = group.model_copy(update={"generated_creative": creative})
                    print(f"✓ Image generated for '{segment.name}' / '{group.name}'")
                except GatewayError as e:
                    print(f"✗ Image generation failed for '{segment.name}' / '{group.name}': {e}")
                    failures += 1
                    reauthorization_required = isinstance(e, ReauthorizationRequiredError)
            groups.append(group)
        segments.append(segment.model_copy(update={"creative_groups": groups}))

    update = {
        "campaign": campaign.model_copy(update={"audience_segments": segments}),
        "errors": {"creatives": f"Image generation failed for {failures} creative(s)." if failures else ""},
        "current_step": "completed",
    }
    if reauthorization_required:
        update["reauthorization_required"] = True
    return update
