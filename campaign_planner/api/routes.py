"""REST API routes for the campaign wizard."""

from contextlib import contextmanager
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from pydantic import BaseModel, Field

from ..exceptions import AllocationError, GatewayError, ReauthorizationRequiredError, WizardStepError
from ..models import CampaignDetails
from ..wizard import CampaignWizard
from .session_manager import SessionManager, get_session_manager

router = APIRouter(prefix="/sessions")


class InstructionsRequest(BaseModel):
    instructions: Optional[str] = None


class ContentStrategyRequest(InstructionsRequest):
    segment_index: Optional[int] = None


class PercentageRequest(BaseModel):
    percentage: float = Field(ge=0, le=100)


class AddChannelRequest(BaseModel):
    percentage: Optional[float] = Field(default=None, ge=0, le=100)


class SegmentTextRequest(BaseModel):
    field: Literal["description", "rationale", "pen_portrait"]
    value: str


class SelectionRequest(BaseModel):
    prompt_index: Optional[int] = None
    headline_index: Optional[int] = None


class CreativeRequest(InstructionsRequest):
    use_product_image: bool = True


class EditRequest(BaseModel):
    instructions: str


@contextmanager
def wizard_errors():
    """Translate wizard and gateway exceptions into HTTP errors"""
    try:
        yield
    except WizardStepError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except AllocationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ReauthorizationRequiredError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))


def get_wizard(
    client_id: str = Path(..., description="Client session id"),
    manager: SessionManager = Depends(get_session_manager),
) -> CampaignWizard:
    """
    Look up a client's wizard.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    wizard = manager.get(client_id)
    if wizard is None:
        raise HTTPException(status_code=404, detail=f"Session {client_id} not found")
    return wizard


@router.post("/{client_id}/details")
async def submit_details(
    details: CampaignDetails,
    client_id: str = Path(..., description="Client session id"),
    manager: SessionManager = Depends(get_session_manager),
):
    """Start (or restart) a client's campaign from the details form."""
    wizard = manager.create(client_id)
    wizard.submit_details(details)
    return wizard.snapshot()


@router.post("/{client_id}/audience")
async def generate_audience(request: InstructionsRequest, wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        await wizard.generate_audience(request.instructions)
    return wizard.snapshot()


@router.post("/{client_id}/audience/complete")
async def complete_audience(wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        wizard.complete_audience()
    return wizard.snapshot()


@router.post("/{client_id}/segments/{segment_index}/toggle")
async def toggle_segment(segment_index: int, wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        wizard.toggle_segment(segment_index)
    return wizard.snapshot()


@router.put("/{client_id}/segments/{segment_index}/text")
async def update_segment_text(
    segment_index: int,
    request: SegmentTextRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        wizard.update_segment_text(segment_index, request.field, request.value)
    return wizard.snapshot()


@router.post("/{client_id}/media-plan")
async def generate_media_plan(request: InstructionsRequest, wizard: CampaignWizard = Depends(get_wizard)):
    """
    Generate the paid media split and the owned media analysis.

    Returns:
        Session snapshot with a normalized budget for every segment
    """
    with wizard_errors():
        await wizard.generate_media_plan(request.instructions)
    return wizard.snapshot()


@router.post("/{client_id}/media-plan/complete")
async def complete_media_plan(wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        wizard.complete_media_plan()
    return wizard.snapshot()


@router.put("/{client_id}/segments/{segment_index}/channels/{channel}")
async def set_channel_percentage(
    segment_index: int,
    channel: str,
    request: PercentageRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    """Move a channel slider; the value is clamped to the budget the other channels leave free."""
    with wizard_errors():
        wizard.set_channel_percentage(segment_index, channel, request.percentage)
    return wizard.snapshot()


@router.post("/{client_id}/segments/{segment_index}/channels/{channel}")
async def add_channel(
    segment_index: int,
    channel: str,
    request: AddChannelRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        wizard.add_channel(segment_index, channel, request.percentage)
    return wizard.snapshot()


@router.delete("/{client_id}/segments/{segment_index}/channels/{channel}")
async def remove_channel(
    segment_index: int,
    channel: str,
    redistribute: bool = Query(default=False, description="Spread the freed budget over the other channels"),
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        wizard.remove_channel(segment_index, channel, redistribute)
    return wizard.snapshot()


@router.post("/{client_id}/segments/{segment_index}/distribute")
async def distribute_remaining(segment_index: int, wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        wizard.distribute_remaining(segment_index)
    return wizard.snapshot()


@router.get("/{client_id}/segments/{segment_index}/channel-configs")
async def channel_configs(segment_index: int, wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        return {"configs": wizard.channel_configs(segment_index)}


@router.post("/{client_id}/content-strategy")
async def generate_content_strategy(request: ContentStrategyRequest, wizard: CampaignWizard = Depends(get_wizard)):
    with wizard_errors():
        await wizard.generate_content_strategy(request.instructions, request.segment_index)
    return wizard.snapshot()


@router.put("/{client_id}/segments/{segment_index}/groups/{group_index}/selection")
async def select_creative_options(
    segment_index: int,
    group_index: int,
    request: SelectionRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        wizard.select_creative_options(segment_index, group_index, request.prompt_index, request.headline_index)
    return wizard.snapshot()


@router.post("/{client_id}/segments/{segment_index}/groups/{group_index}/creative")
async def generate_creative(
    segment_index: int,
    group_index: int,
    request: CreativeRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        await wizard.generate_creative(segment_index, group_index, request.instructions, request.use_product_image)
    return wizard.snapshot()


@router.post("/{client_id}/segments/{segment_index}/groups/{group_index}/creative/image")
async def edit_creative_image(
    segment_index: int,
    group_index: int,
    request: EditRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        await wizard.edit_creative_image(segment_index, group_index, request.instructions)
    return wizard.snapshot()


@router.post("/{client_id}/segments/{segment_index}/groups/{group_index}/creative/text")
async def rewrite_creative_text(
    segment_index: int,
    group_index: int,
    request: EditRequest,
    wizard: CampaignWizard = Depends(get_wizard),
):
    with wizard_errors():
        await wizard.rewrite_creative_text(segment_index, group_index, request.instructions)
    return wizard.snapshot()


@router.get("/{client_id}/state")
async def get_state(wizard: CampaignWizard = Depends(get_wizard)):
    return wizard.snapshot()


@router.get("/{client_id}/export")
async def export_campaign(wizard: CampaignWizard = Depends(get_wizard)):
    """Download the plan as campaign-plan.zip."""
    with wizard_errors():
        archive = wizard.export()
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="campaign-plan.zip"'},
    )


@router.delete("/{client_id}")
async def close_session(
    client_id: str = Path(..., description="Client session id"),
    manager: SessionManager = Depends(get_session_manager),
):
    if not manager.close(client_id):
        raise HTTPException(status_code=404, detail=f"Session {client_id} not found")
    return {"status": "closed"}
