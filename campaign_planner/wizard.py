"""
Interactive four-step campaign wizard

The wizard holds one campaign per session and moves it through
Campaign Details -> Target Audience -> Media Plan -> Content Strategy.
Generation steps reuse the workflow nodes; their updates are merged onto the
campaign as it is when they arrive, so edits made while a request is in flight
are kept. Every generation is tagged with the session's generation counter and
results from an abandoned session are dropped.
"""

import asyncio
from enum import IntEnum
from functools import partial
from typing import Literal, Optional

from .budget import (
    add_channel,
    apply_generated_creative,
    distribute_remaining,
    remove_channel,
    set_channel_percentage,
)
from .exceptions import AllocationError, GatewayError, ReauthorizationRequiredError, WizardStepError
from .gateway import ContentGateway
from .models import (
    AudienceSegment,
    Campaign,
    CampaignDetails,
    CreativeGroup,
    EditingCreative,
    EditingDescription,
    EditingState,
    GeneratedImage,
    NotEditing,
    merge_campaign,
    merge_errors,
)
from .nodes import (
    analyze_owned_media,
    create_group_creative,
    plan_content_strategy,
    plan_paid_media,
    research_audience,
)
from .utils.export import export_zip
from .utils.targeting_mapper import format_platform_configs, generate_platform_configs

SegmentTextField = Literal["description", "rationale", "pen_portrait"]


class WizardStep(IntEnum):
    CAMPAIGN_DETAILS = 1
    TARGET_AUDIENCE = 2
    MEDIA_PLAN = 3
    CONTENT_STRATEGY = 4


def creative_region(segment: AudienceSegment, group: CreativeGroup) -> str:
    return f"creative:{segment.name}:{group.name}"


class CampaignWizard:
    """State machine behind the campaign planning UI"""

    def __init__(self, gateway: Optional[ContentGateway] = None):
        self.gateway = gateway or ContentGateway()
        self.campaign: Optional[Campaign] = None
        self.current_step = WizardStep.CAMPAIGN_DETAILS
        self.details_submitted = False
        self.audience_completed = False
        self.media_plan_completed = False
        self.errors: dict[str, str] = {}
        self.reauthorization_required = False
        self.editing: EditingState = NotEditing()
        self._generation = 0

    # --- Bookkeeping ---

    def _require(self, step: WizardStep):
        ready = {
            WizardStep.CAMPAIGN_DETAILS: True,
            WizardStep.TARGET_AUDIENCE: self.details_submitted,
            WizardStep.MEDIA_PLAN: self.audience_completed,
            WizardStep.CONTENT_STRATEGY: self.media_plan_completed,
        }[step]
        if not ready or self.campaign is None:
            raise WizardStepError(f"Complete the steps before '{step.name.replace('_', ' ').title()}' first.")

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            print("  Discarding result from an abandoned session")
            return False
        return True

    def _merge(self, update: dict, generation: int) -> bool:
        """Apply a node update to the live state; False if the session moved on"""
        if not self._is_current(generation):
            return False
        if "campaign" in update:
            self.campaign = merge_campaign(self.campaign, update["campaign"])
        if "errors" in update:
            self.errors = merge_errors(self.errors, update["errors"])
        if update.get("reauthorization_required"):
            self.reauthorization_required = True
        return True

    def _raise_for(self, region: str, update: dict):
        if region not in update.get("errors", {}) or not update["errors"][region]:
            return
        if update.get("reauthorization_required"):
            raise ReauthorizationRequiredError(update["errors"][region])
        raise GatewayError(update["errors"][region])

    def _record_error(self, region: str, error: GatewayError):
        self.errors = merge_errors(self.errors, {region: str(error)})
        if isinstance(error, ReauthorizationRequiredError):
            self.reauthorization_required = True

    def _state(self, **extra) -> dict:
        return {"campaign": self.campaign, **extra}

    def _segment(self, segment_index: int) -> AudienceSegment:
        segments = self.campaign.audience_segments
        if not 0 <= segment_index < len(segments):
            raise AllocationError(f"No audience segment at index {segment_index}")
        return segments[segment_index]

    def _group(self, segment_index: int, group_index: int) -> CreativeGroup:
        groups = self._segment(segment_index).creative_groups
        if not 0 <= group_index < len(groups):
            raise AllocationError(f"No creative group at index {group_index}")
        return groups[group_index]

    def _replace_segment(self, segment_index: int, segment: AudienceSegment) -> Campaign:
        segments = list(self.campaign.audience_segments)
        segments[segment_index] = segment
        self.campaign = self.campaign.model_copy(update={"audience_segments": segments})
        return self.campaign

    def _replace_group(self, segment_index: int, group_index: int, group: CreativeGroup) -> Campaign:
        segment = self._segment(segment_index)
        groups = list(segment.creative_groups)
        groups[group_index] = group
        return self._replace_segment(segment_index, segment.model_copy(update={"creative_groups": groups}))

    def acknowledge_reauthorization(self):
        """Called once the user selected a new API key"""
        self.reauthorization_required = False

    # --- Step 1: campaign details ---

    def submit_details(self, details: CampaignDetails) -> Campaign:
        """Start a new session; anything still generating for the old one is dropped on arrival"""
        self._generation += 1
        self.campaign = Campaign(**details.model_dump())
        self.details_submitted = True
        self.audience_completed = False
        self.media_plan_completed = False
        self.errors = {}
        self.editing = NotEditing()
        self.current_step = WizardStep.TARGET_AUDIENCE
        print(f"✓ Campaign details submitted: {self.campaign.campaign_name}")
        return self.campaign

    # --- Step 2: target audience ---

    async def generate_audience(self, instructions: Optional[str] = None) -> Campaign:
        """(Re)generate audience segments. Downstream steps have to be completed again."""
        self._require(WizardStep.TARGET_AUDIENCE)
        generation = self._generation

        update = await research_audience(self._state(instructions=instructions or ""), self.gateway)
        if not self._merge(update, generation):
            return self.campaign
        self._raise_for("audience", update)

        self.audience_completed = False
        self.media_plan_completed = False
        self.current_step = WizardStep.TARGET_AUDIENCE
        return self.campaign

    def toggle_segment(self, segment_index: int) -> Campaign:
        self._require(WizardStep.TARGET_AUDIENCE)
        segment = self._segment(segment_index)
        return self._replace_segment(segment_index, segment.model_copy(update={"is_selected": not segment.is_selected}))

    def update_segment_text(self, segment_index: int, field: SegmentTextField, value: str) -> Campaign:
        self._require(WizardStep.TARGET_AUDIENCE)
        if field not in ("description", "rationale", "pen_portrait"):
            raise ValueError(f"Segment field '{field}' cannot be edited")
        segment = self._segment(segment_index)
        return self._replace_segment(segment_index, segment.model_copy(update={field: value}))

    def complete_audience(self) -> Campaign:
        """Keep the selected segments and move on to the media plan"""
        self._require(WizardStep.TARGET_AUDIENCE)
        selected = [s for s in self.campaign.audience_segments if s.is_selected]
        if not selected:
            raise WizardStepError("Select at least one audience segment.")

        self.campaign = self.campaign.model_copy(update={"audience_segments": selected})
        self.audience_completed = True
        self.media_plan_completed = False
        self.current_step = WizardStep.MEDIA_PLAN
        print(f"✓ Audience completed with {len(selected)} segment(s)")
        return self.campaign

    # --- Step 3: media plan ---

    async def _run_node(self, node, state: dict, generation: int) -> dict:
        update = await node(state, self.gateway)
        self._merge(update, generation)
        return update

    async def generate_media_plan(self, instructions: Optional[str] = None) -> Campaign:
        """
        Plan paid and owned media concurrently.

        Each result is merged as soon as it arrives, so whichever finishes
        second builds on the first instead of replacing it.
        """
        self._require(WizardStep.MEDIA_PLAN)
        generation = self._generation
        state = self._state(instructions=instructions or "")

        paid_update, _ = await asyncio.gather(
            self._run_node(plan_paid_media, state, generation),
            self._run_node(analyze_owned_media, state, generation),
        )
        if not self._is_current(generation):
            return self.campaign

        self.media_plan_completed = False
        self._raise_for("media_plan", paid_update)
        return self.campaign

    def set_channel_percentage(self, segment_index: int, channel: str, percentage: float) -> Campaign:
        self._require(WizardStep.MEDIA_PLAN)
        return self._replace_segment(
            segment_index, set_channel_percentage(self._segment(segment_index), channel, percentage)
        )

    def add_channel(self, segment_index: int, channel: str, percentage: Optional[float] = None) -> Campaign:
        self._require(WizardStep.MEDIA_PLAN)
        segment = self._segment(segment_index)
        updated = add_channel(segment, channel) if percentage is None else add_channel(segment, channel, percentage)
        return self._replace_segment(segment_index, updated)

    def remove_channel(self, segment_index: int, channel: str, redistribute: bool = False) -> Campaign:
        self._require(WizardStep.MEDIA_PLAN)
        return self._replace_segment(
            segment_index, remove_channel(self._segment(segment_index), channel, redistribute)
        )

    def distribute_remaining(self, segment_index: int) -> Campaign:
        self._require(WizardStep.MEDIA_PLAN)
        return self._replace_segment(segment_index, distribute_remaining(self._segment(segment_index)))

    def channel_configs(self, segment_index: int) -> dict[str, str]:
        """Formatted platform targeting JSON for each active channel of a segment"""
        self._require(WizardStep.MEDIA_PLAN)
        segment = self._segment(segment_index)
        configs = generate_platform_configs(segment.targeting, segment.active_channels, self.campaign.country)
        return format_platform_configs(configs)

    def complete_media_plan(self) -> Campaign:
        self._require(WizardStep.MEDIA_PLAN)
        if not self.campaign.budget_is_set:
            raise WizardStepError("Generate the media plan before continuing.")

        self.media_plan_completed = True
        self.current_step = WizardStep.CONTENT_STRATEGY
        print("✓ Media plan completed")
        return self.campaign

    # --- Step 4: content strategy ---

    async def generate_content_strategy(
        self,
        instructions: Optional[str] = None,
        segment_index: Optional[int] = None,
    ) -> Campaign:
        """
        Generate creative groups for every segment still missing them, or
        regenerate them for one segment when `segment_index` is given.
        """
        self._require(WizardStep.CONTENT_STRATEGY)
        generation = self._generation
        state = self._state(instructions=instructions or "")
        if segment_index is not None:
            state["target_segments"] = [self._segment(segment_index).name]

        update = await plan_content_strategy(state, self.gateway)
        update.pop("current_step", None)
        if not self._merge(update, generation):
            return self.campaign
        self._raise_for("content_strategy", update)
        return self.campaign

    def select_creative_options(
        self,
        segment_index: int,
        group_index: int,
        prompt_index: Optional[int] = None,
        headline_index: Optional[int] = None,
    ) -> Campaign:
        self._require(WizardStep.CONTENT_STRATEGY)
        group = self._group(segment_index, group_index)
        selection = {}
        if prompt_index is not None:
            if not 0 <= prompt_index < len(group.image_prompts):
                raise AllocationError(f"No image prompt at index {prompt_index}")
            selection["selected_prompt_index"] = prompt_index
        if headline_index is not None:
            if not 0 <= headline_index < len(group.headlines):
                raise AllocationError(f"No headline at index {headline_index}")
            selection["selected_headline_index"] = headline_index
        return self._replace_group(segment_index, group_index, group.model_copy(update=selection))

    async def generate_creative(
        self,
        segment_index: int,
        group_index: int,
        instructions: Optional[str] = None,
        use_product_image: bool = True,
    ) -> Campaign:
        """Generate the image for a group's selected prompt and headline"""
        self._require(WizardStep.CONTENT_STRATEGY)
        generation = self._generation
        segment = self._segment(segment_index)
        group = self._group(segment_index, group_index)
        region = creative_region(segment, group)

        try:
            creative = await create_group_creative(
                self.campaign, segment, group, self.gateway, instructions, use_product_image
            )
        except GatewayError as e:
            if self._is_current(generation):
                print(f"✗ Creative generation failed for '{group.name}': {e}")
                self._record_error(region, e)
            raise

        self._merge({
            "campaign": partial(
                apply_generated_creative, segment_name=segment.name, group_name=group.name, creative=creative
            ),
            "errors": {region: ""},
        }, generation)
        return self.campaign

    async def edit_creative_image(self, segment_index: int, group_index: int, instructions: str) -> Campaign:
        """Ask the image model to edit an already generated creative"""
        self._require(WizardStep.CONTENT_STRATEGY)
        generation = self._generation
        segment = self._segment(segment_index)
        group = self._group(segment_index, group_index)
        creative = group.generated_creative
        if creative is None:
            raise WizardStepError("Generate the creative before editing it.")
        region = creative_region(segment, group)

        try:
            image = await self.gateway.edit_image(
                GeneratedImage(base64=creative.image_base64, mime_type=creative.mime_type),
                instructions,
                group.aspect_ratio,
            )
        except GatewayError as e:
            if self._is_current(generation):
                self._record_error(region, e)
            raise

        edited = creative.model_copy(update={"image_base64": image.base64, "mime_type": image.mime_type})
        self._merge({
            "campaign": partial(
                apply_generated_creative, segment_name=segment.name, group_name=group.name, creative=edited
            ),
            "errors": {region: ""},
        }, generation)
        return self.campaign

    async def rewrite_creative_text(self, segment_index: int, group_index: int, instructions: str) -> Campaign:
        """Rewrite the notification text of a generated creative"""
        self._require(WizardStep.CONTENT_STRATEGY)
        generation = self._generation
        segment = self._segment(segment_index)
        group = self._group(segment_index, group_index)
        creative = group.generated_creative
        if creative is None:
            raise WizardStepError("Generate the creative before editing its text.")
        region = creative_region(segment, group)

        try:
            text = await self.gateway.edit_notification_text(
                creative.notification_text, instructions, self.campaign.landing_page_url
            )
        except GatewayError as e:
            if self._is_current(generation):
                self._record_error(region, e)
            raise

        edited = creative.model_copy(update={"notification_text": text})
        self._merge({
            "campaign": partial(
                apply_generated_creative, segment_name=segment.name, group_name=group.name, creative=edited
            ),
            "errors": {region: ""},
        }, generation)
        return self.campaign

    async def generate_headline(
        self,
        segment_index: int,
        group_index: int,
        instructions: Optional[str] = None,
    ) -> Campaign:
        """Write one more headline for a group from its selected image prompt and select it"""
        self._require(WizardStep.CONTENT_STRATEGY)
        generation = self._generation
        segment = self._segment(segment_index)
        group = self._group(segment_index, group_index)
        region = creative_region(segment, group)

        try:
            headline = await self.gateway.generate_notification_text(
                group.selected_prompt,
                self.campaign.landing_page_url,
                self.campaign.brand_values,
                instructions,
            )
        except GatewayError as e:
            if self._is_current(generation):
                self._record_error(region, e)
            raise

        if not self._is_current(generation):
            return self.campaign
        # Indices may have shifted while the request was running
        for s_index, s in enumerate(self.campaign.audience_segments):
            for g_index, g in enumerate(s.creative_groups):
                if s.name == segment.name and g.name == group.name:
                    headlines = [*g.headlines, headline]
                    self._replace_group(s_index, g_index, g.model_copy(update={
                        "headlines": headlines,
                        "selected_headline_index": len(headlines) - 1,
                    }))
        return self.campaign

    # --- Editing state ---

    def begin_edit_description(self, segment_index: int, field: SegmentTextField = "description") -> EditingState:
        self._require(WizardStep.TARGET_AUDIENCE)
        self._segment(segment_index)
        self.editing = EditingDescription(segment_index=segment_index, field=field)
        return self.editing

    def begin_edit_creative(self, segment_index: int, group_index: int) -> EditingState:
        self._require(WizardStep.CONTENT_STRATEGY)
        if self._group(segment_index, group_index).generated_creative is None:
            raise WizardStepError("Generate the creative before editing it.")
        self.editing = EditingCreative(segment_index=segment_index, group_index=group_index)
        return self.editing

    def save_description(self, value: str) -> Campaign:
        if not isinstance(self.editing, EditingDescription):
            raise WizardStepError("No segment text is being edited.")
        editing = self.editing
        self.editing = NotEditing()
        return self.update_segment_text(editing.segment_index, editing.field, value)

    def cancel_edit(self) -> EditingState:
        self.editing = NotEditing()
        return self.editing

    # --- Export ---

    def export(self) -> bytes:
        """Zip archive with the markdown plan and every generated image"""
        self._require(WizardStep.TARGET_AUDIENCE)
        return export_zip(self.campaign)

    def snapshot(self) -> dict:
        """JSON-ready view of the session"""
        editing = self.editing
        return {
            "current_step": int(self.current_step),
            "details_submitted": self.details_submitted,
            "audience_completed": self.audience_completed,
            "media_plan_completed": self.media_plan_completed,
            "errors": dict(self.errors),
            "reauthorization_required": self.reauthorization_required,
            "editing": {"kind": type(editing).__name__, **vars(editing)},
            "campaign": self.campaign.model_dump(mode="json") if self.campaign is not None else None,
        }
