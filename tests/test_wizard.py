"""
Tests for the interactive campaign wizard.
"""

import asyncio
import io
import json
import zipfile

import pytest

from campaign_planner.exceptions import AllocationError, GatewayError, ReauthorizationRequiredError, WizardStepError
from campaign_planner.models import EditingCreative, EditingDescription, NotEditing
from campaign_planner.wizard import CampaignWizard, WizardStep

from conftest import (
    AUDIENCE_MARKER,
    BUDGET_MARKER,
    OWNED_MEDIA_MARKER,
    STRATEGY_MARKER,
    ScriptedChatModel,
    StubImageClient,
    planner_routes,
)


@pytest.fixture
def make_wizard(make_gateway):
    def _make(routes=None, delays=None, image_client=None):
        llm = ScriptedChatModel(routes=routes or planner_routes(), delays=delays)
        return CampaignWizard(make_gateway(llm, image_client))
    return _make


async def wizard_at(step, make_wizard, details, **kwargs) -> CampaignWizard:
    """Wizard advanced to the start of `step`"""
    wizard = make_wizard(**kwargs)
    wizard.submit_details(details)
    if step >= WizardStep.MEDIA_PLAN:
        await wizard.generate_audience()
        wizard.complete_audience()
    if step >= WizardStep.CONTENT_STRATEGY:
        await wizard.generate_media_plan()
        wizard.complete_media_plan()
    return wizard


class TestStepGating:

    def test_starts_at_campaign_details(self, make_wizard):
        wizard = make_wizard()
        assert wizard.current_step == WizardStep.CAMPAIGN_DETAILS
        assert wizard.campaign is None

    async def test_audience_requires_details(self, make_wizard):
        with pytest.raises(WizardStepError):
            await make_wizard().generate_audience()

    async def test_media_plan_requires_completed_audience(self, make_wizard, details):
        wizard = make_wizard()
        wizard.submit_details(details)
        await wizard.generate_audience()
        with pytest.raises(WizardStepError):
            await wizard.generate_media_plan()

    async def test_content_strategy_requires_completed_media_plan(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details)
        with pytest.raises(WizardStepError):
            await wizard.generate_content_strategy()

    async def test_media_plan_cannot_complete_without_budget(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details)
        with pytest.raises(WizardStepError):
            wizard.complete_media_plan()

    async def test_full_walkthrough(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details)
        await wizard.generate_content_strategy()

        assert wizard.current_step == WizardStep.CONTENT_STRATEGY
        assert all(s.creative_groups for s in wizard.campaign.audience_segments)
        assert wizard.errors == {}


class TestAudienceStep:

    async def test_complete_drops_unselected_segments(self, make_wizard, details):
        wizard = make_wizard()
        wizard.submit_details(details)
        await wizard.generate_audience()

        wizard.toggle_segment(0)
        wizard.complete_audience()

        assert [s.name for s in wizard.campaign.audience_segments] == ["Weekend Joggers"]
        assert wizard.current_step == WizardStep.MEDIA_PLAN

    async def test_complete_needs_a_selected_segment(self, make_wizard, details):
        wizard = make_wizard()
        wizard.submit_details(details)
        await wizard.generate_audience()
        wizard.toggle_segment(0)
        wizard.toggle_segment(1)

        with pytest.raises(WizardStepError):
            wizard.complete_audience()

    async def test_regenerating_resets_downstream_steps(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details)
        await wizard.generate_audience("More students")

        assert wizard.current_step == WizardStep.TARGET_AUDIENCE
        assert not wizard.audience_completed
        assert not wizard.media_plan_completed

    async def test_failure_is_recorded_and_raised(self, make_wizard, details):
        wizard = make_wizard(routes=planner_routes(**{AUDIENCE_MARKER: "nope"}))
        wizard.submit_details(details)

        with pytest.raises(GatewayError):
            await wizard.generate_audience()
        assert wizard.errors == {"audience": "Failed to generate target audience."}
        assert wizard.campaign.audience_segments == []

    async def test_success_clears_a_previous_error(self, make_wizard, details):
        wizard = make_wizard(routes=planner_routes(**{AUDIENCE_MARKER: ["nope", planner_routes()[AUDIENCE_MARKER]]}))
        wizard.submit_details(details)
        with pytest.raises(GatewayError):
            await wizard.generate_audience()

        await wizard.generate_audience()
        assert "audience" not in wizard.errors

    async def test_reauthorization_sets_flag(self, make_wizard, details):
        wizard = make_wizard(routes=planner_routes(**{AUDIENCE_MARKER: Exception("Requested entity was not found.")}))
        wizard.submit_details(details)

        with pytest.raises(ReauthorizationRequiredError):
            await wizard.generate_audience()
        assert wizard.reauthorization_required
        wizard.acknowledge_reauthorization()
        assert not wizard.reauthorization_required

    async def test_edit_description(self, make_wizard, details):
        wizard = make_wizard()
        wizard.submit_details(details)
        await wizard.generate_audience()

        assert wizard.begin_edit_description(1, "pen_portrait") == EditingDescription(segment_index=1, field="pen_portrait")
        wizard.save_description("Alex, 46")

        assert wizard.campaign.audience_segments[1].pen_portrait == "Alex, 46"
        assert wizard.editing == NotEditing()

    async def test_cancel_edit(self, make_wizard, details):
        wizard = make_wizard()
        wizard.submit_details(details)
        await wizard.generate_audience()
        wizard.begin_edit_description(0)

        wizard.cancel_edit()
        with pytest.raises(WizardStepError):
            wizard.save_description("ignored")


class TestMediaPlanStep:

    async def test_plan_is_normalized(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details)
        await wizard.generate_media_plan()

        campaign = wizard.campaign
        assert sum(s.budget for s in campaign.audience_segments) == details.paid_media_budget
        for segment in campaign.audience_segments:
            assert segment.allocated == segment.budget
        assert campaign.owned_media_analysis.is_applicable

    @pytest.mark.parametrize("slow", [BUDGET_MARKER, OWNED_MEDIA_MARKER])
    async def test_concurrent_results_both_land(self, make_wizard, details, slow):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details, delays={slow: 0.05})
        await wizard.generate_media_plan()

        assert wizard.campaign.budget_is_set
        assert wizard.campaign.owned_media_analysis is not None

    async def test_edits_made_while_generating_are_kept(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details, delays={BUDGET_MARKER: 0.05})

        task = asyncio.create_task(wizard.generate_media_plan())
        await asyncio.sleep(0.01)
        wizard.update_segment_text(0, "description", "Edited while planning")
        await task

        segment = wizard.campaign.audience_segments[0]
        assert segment.description == "Edited while planning"
        assert segment.budget is not None

    async def test_paid_failure_keeps_owned_media(self, make_wizard, details):
        wizard = await wizard_at(
            WizardStep.MEDIA_PLAN, make_wizard, details, routes=planner_routes(**{BUDGET_MARKER: "nope"})
        )
        with pytest.raises(GatewayError):
            await wizard.generate_media_plan()

        assert wizard.errors == {"media_plan": "Failed to generate media plan."}
        assert wizard.campaign.owned_media_analysis is not None
        assert not wizard.campaign.budget_is_set

    async def test_allocation_edits(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details)
        await wizard.generate_media_plan()

        # Urban Runners: 6667 over Facebook 3333 / Instagram 3334 / TikTok 0
        wizard.set_channel_percentage(0, "TikTok", 100)
        assert wizard.campaign.audience_segments[0].media_split[2].budget == 0

        wizard.remove_channel(0, "Instagram")
        wizard.set_channel_percentage(0, "TikTok", 20)
        segment = wizard.campaign.audience_segments[0]
        assert [m.budget for m in segment.media_split] == [3333, 1333]

        wizard.distribute_remaining(0)
        assert wizard.campaign.audience_segments[0].allocated == 6667

        wizard.add_channel(0, "LinkedIn")
        assert wizard.campaign.audience_segments[0].media_split[-1].budget == 0

    async def test_bad_segment_index(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details)
        with pytest.raises(AllocationError):
            wizard.set_channel_percentage(7, "Facebook", 10)

    async def test_channel_configs(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.MEDIA_PLAN, make_wizard, details)
        await wizard.generate_media_plan()

        configs = wizard.channel_configs(1)
        assert set(configs) == {"Google Search", "YouTube"}
        assert '"GENDER_FEMALE"' in configs["Google Search"]


class TestSessionAbandonment:

    async def test_results_for_an_old_session_are_discarded(self, make_wizard, details):
        wizard = make_wizard(delays={AUDIENCE_MARKER: 0.05})
        wizard.submit_details(details)

        task = asyncio.create_task(wizard.generate_audience())
        await asyncio.sleep(0.01)
        restarted = details.model_copy(update={"campaign_name": "Second Try"})
        wizard.submit_details(restarted)
        await task

        assert wizard.campaign.campaign_name == "Second Try"
        assert wizard.campaign.audience_segments == []

    async def test_failures_for_an_old_session_are_not_recorded(self, make_wizard, details):
        wizard = make_wizard(routes=planner_routes(**{AUDIENCE_MARKER: "nope"}), delays={AUDIENCE_MARKER: 0.05})
        wizard.submit_details(details)

        task = asyncio.create_task(wizard.generate_audience())
        await asyncio.sleep(0.01)
        wizard.submit_details(details)
        await task

        assert wizard.errors == {}


class TestContentStrategyStep:

    async def test_regenerate_one_segment(self, make_wizard, details):
        second = {
            "groups": [{"name": "Regenerated", "channels": ["Google Search"], "image_prompts": ["p"], "headlines": ["h"]}]
        }
        routes = planner_routes()
        routes[STRATEGY_MARKER] = [routes[STRATEGY_MARKER], routes[STRATEGY_MARKER], json.dumps(second)]
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details, routes=routes)
        await wizard.generate_content_strategy()

        await wizard.generate_content_strategy("Search only", segment_index=1)

        urban, weekend = wizard.campaign.audience_segments
        assert [g.name for g in urban.creative_groups] == ["Social Stories", "Feed Ads"]
        assert [g.name for g in weekend.creative_groups] == ["Regenerated"]

    async def test_creative_generation(self, make_wizard, details):
        image_client = StubImageClient()
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details, image_client=image_client)
        await wizard.generate_content_strategy()

        wizard.select_creative_options(0, 0, prompt_index=1, headline_index=2)
        await wizard.generate_creative(0, 0, "Golden hour")

        creative = wizard.campaign.audience_segments[0].creative_groups[0].generated_creative
        assert creative.image_prompt == "Runner crossing a bridge"
        assert creative.notification_text == "Fast by design"
        assert image_client.calls[0]["aspect_ratio"] == "9:16"
        assert image_client.calls[0]["prompt"].startswith("Runner crossing a bridge")
        assert "Golden hour. Target Audience: Urban Runners." in image_client.calls[0]["prompt"]

    async def test_creative_timeout_is_recorded(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details)
        await wizard.generate_content_strategy()
        wizard.gateway.image_timeout = 0.05
        wizard.gateway._image_client = StubImageClient(delay=1)

        with pytest.raises(GatewayError, match="timed out"):
            await wizard.generate_creative(0, 1)
        assert "creative:Urban Runners:Feed Ads" in wizard.errors
        assert wizard.campaign.audience_segments[0].creative_groups[1].generated_creative is None

    async def test_bad_selection_index(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details)
        await wizard.generate_content_strategy()
        with pytest.raises(AllocationError):
            wizard.select_creative_options(0, 1, prompt_index=5)

    async def test_edit_creative(self, make_wizard, details):
        routes = planner_routes(**{"Rewrite the marketing copy": "Run lighter tonight"})
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details, routes=routes)
        await wizard.generate_content_strategy()

        with pytest.raises(WizardStepError):
            wizard.begin_edit_creative(0, 0)

        await wizard.generate_creative(0, 0)
        assert wizard.begin_edit_creative(0, 0) == EditingCreative(segment_index=0, group_index=0)

        await wizard.rewrite_creative_text(0, 0, "Make it about evenings")
        await wizard.edit_creative_image(0, 0, "Make it night")

        creative = wizard.campaign.audience_segments[0].creative_groups[0].generated_creative
        assert creative.notification_text == "Run lighter tonight"
        assert creative.image_prompt == "Runner at dawn"

    async def test_generate_headline(self, make_wizard, details):
        routes = planner_routes(**{"concise marketing copy": "Made for mornings"})
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details, routes=routes)
        await wizard.generate_content_strategy()

        await wizard.generate_headline(0, 0)

        group = wizard.campaign.audience_segments[0].creative_groups[0]
        assert group.headlines[-1] == "Made for mornings"
        assert group.selected_headline == "Made for mornings"


class TestExport:

    async def test_export_archive(self, make_wizard, details):
        wizard = await wizard_at(WizardStep.CONTENT_STRATEGY, make_wizard, details)
        await wizard.generate_content_strategy()
        await wizard.generate_creative(0, 0)

        with zipfile.ZipFile(io.BytesIO(wizard.export())) as archive:
            names = archive.namelist()
            assert "campaign_plan.md" in names
            assert "urban-runners/Social-Stories.png" in names

    def test_export_requires_details(self, make_wizard):
        with pytest.raises(WizardStepError):
            make_wizard().export()

    async def test_snapshot(self, make_wizard, details):
        wizard = make_wizard()
        wizard.submit_details(details)
        snapshot = wizard.snapshot()

        assert snapshot["current_step"] == 2
        assert snapshot["editing"] == {"kind": "NotEditing"}
        assert snapshot["campaign"]["start_date"] == "2025-06-01"
