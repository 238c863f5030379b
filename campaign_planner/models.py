"""
Data models and state definitions for the campaign planning workflow
"""

from dataclasses import dataclass
from datetime import date
from typing import Annotated, Callable, Literal, Optional, TypedDict, Union

from pydantic import BaseModel, Field, model_validator


AspectRatio = Literal["1:1", "9:16", "16:9"]


class SupportingDocument(BaseModel):
    """A file attached to a generation request, carried as base64"""
    name: str
    mime_type: str
    data: str = Field(description="base64 encoded file content")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class GroundingSource(BaseModel):
    title: str
    uri: str


class MediaSplit(BaseModel):
    """Budget of one paid media channel inside a segment"""
    channel: str
    budget: int = Field(ge=0)


class AudienceTargeting(BaseModel):
    """Structured targeting parameters used for rule-based mapping to ad platforms"""
    age_range: str = Field(default="18-65", description="Strictly 'Min-Max' (e.g. '18-35') or 'Min+' (e.g. '25+')")
    genders: list[str] = Field(default_factory=list, description="e.g. 'Male', 'Female', 'All'")
    locations: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    behaviors: list[str] = Field(default_factory=list)
    job_titles: list[str] = Field(default_factory=list)
    income_level: str = ""
    education_level: str = ""
    parental_status: str = ""


class Creative(BaseModel):
    """A generated ad image together with the copy it was generated for"""
    id: str
    image_prompt: str
    notification_text: str
    image_base64: str = ""
    mime_type: str = "image/png"


class CreativeGroup(BaseModel):
    """Channels sharing a creative format, e.g. 'Social Stories' for TikTok and Instagram"""
    name: str
    aspect_ratio: AspectRatio = "1:1"
    channels: list[str] = Field(default_factory=list)
    image_prompts: list[str] = Field(min_length=1)
    headlines: list[str] = Field(min_length=1)
    push_notes: list[str] = Field(default_factory=list)
    selected_prompt_index: int = 0
    selected_headline_index: int = 0
    generated_creative: Optional[Creative] = None

    @property
    def selected_prompt(self) -> str:
        return self.image_prompts[self.selected_prompt_index]

    @property
    def selected_headline(self) -> str:
        return self.headlines[self.selected_headline_index]


class AudienceSegment(BaseModel):
    """An audience sub-group with its own budget and channel split"""
    name: str
    description: str
    pen_portrait: str = ""
    rationale: str = ""
    key_motivations: list[str] = Field(default_factory=list)
    image_search_keywords: list[str] = Field(default_factory=list)
    targeting: Optional[AudienceTargeting] = None
    is_selected: bool = True
    budget: Optional[int] = Field(default=None, ge=0, description="None until a media plan exists")
    media_split: list[MediaSplit] = Field(default_factory=list)
    creative_groups: list[CreativeGroup] = Field(default_factory=list)

    @property
    def allocated(self) -> int:
        return sum(m.budget for m in self.media_split)

    @property
    def active_channels(self) -> list[str]:
        return [m.channel for m in self.media_split if m.budget > 0]


class CompetitorProduct(BaseModel):
    product_name: str
    brand: str
    key_features: list[str] = Field(default_factory=list)
    target_audience: str = ""
    pros_vs_cons: str = ""


class CompetitorAnalysis(BaseModel):
    summary: str
    comparison_table: list[CompetitorProduct] = Field(default_factory=list)


class OwnedMediaAnalysis(BaseModel):
    is_applicable: bool
    justification: str
    analysis_recommendations: str = ""
    recommended_channels: list[str] = Field(default_factory=list)


class CampaignDetails(BaseModel):
    """Everything collected in the first wizard step"""
    campaign_name: str
    country: str
    start_date: date
    end_date: date
    landing_page_url: str = ""
    paid_media_budget: int = Field(ge=0)
    product_details_url: str = ""
    product_details_document: Optional[SupportingDocument] = None
    product_image: Optional[SupportingDocument] = None
    supporting_documents: list[SupportingDocument] = Field(default_factory=list)
    important_customers: str = ""
    customer_segment: str = ""
    what_to_tell: str = ""
    customer_action: str = ""
    product_benefits: str = ""
    customer_job: str = ""
    brand_values: str = ""

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days


class Campaign(CampaignDetails):
    """Campaign details plus everything the wizard generated for them"""
    audience_segments: list[AudienceSegment] = Field(default_factory=list)
    segment_sources: list[GroundingSource] = Field(default_factory=list)
    competitor_analysis: Optional[CompetitorAnalysis] = None
    proposition: str = ""
    budget_analysis: str = ""
    budget_sources: list[GroundingSource] = Field(default_factory=list)
    owned_media_analysis: Optional[OwnedMediaAnalysis] = None

    @property
    def budget_is_set(self) -> bool:
        return bool(self.audience_segments) and all(s.budget is not None for s in self.audience_segments)


# --- Structured outputs returned by the content gateway ---

class AudienceResearch(BaseModel):
    """Structured output for audience segmentation"""
    segments: list[AudienceSegment] = Field(min_length=1)
    competitor_analysis: Optional[CompetitorAnalysis] = None
    proposition: str = ""
    sources: list[GroundingSource] = Field(default_factory=list)


class ChannelBudgetSuggestion(BaseModel):
    channel: str
    budget: float = Field(ge=0)


class SegmentBudgetSuggestion(BaseModel):
    segment_name: str = Field(description="Must match an input segment name exactly")
    allocated_budget: float = Field(ge=0)
    media_split: list[ChannelBudgetSuggestion] = Field(default_factory=list)


class BudgetSplitSuggestion(BaseModel):
    """Provisional media plan. Amounts are not guaranteed to add up to anything."""
    analysis: str = Field(description="Markdown explanation of the strategy")
    splits: list[SegmentBudgetSuggestion]
    sources: list[GroundingSource] = Field(default_factory=list)


class CreativeStrategy(BaseModel):
    groups: list[CreativeGroup] = Field(min_length=1)


class GeneratedImage(BaseModel):
    base64: str
    mime_type: str = "image/png"


# --- Editing state ---

@dataclass(frozen=True)
class NotEditing:
    pass


@dataclass(frozen=True)
class EditingDescription:
    segment_index: int
    field: Literal["description", "rationale", "pen_portrait"]


@dataclass(frozen=True)
class EditingCreative:
    segment_index: int
    group_index: int


EditingState = Union[NotEditing, EditingDescription, EditingCreative]


# --- Workflow state ---

CampaignUpdate = Callable[[Campaign], Campaign]


def merge_campaign(latest: Campaign, update: Union[Campaign, CampaignUpdate]) -> Campaign:
    """
    State reducer for the campaign key.

    Nodes hand back either a full campaign (replaces the state) or a function that
    is applied to whatever the campaign looks like at the moment the update lands.
    """
    if isinstance(update, Campaign):
        return update
    return update(latest)


def merge_errors(latest: dict[str, str], update: dict[str, str]) -> dict[str, str]:
    """Errors are keyed by UI region; an empty string clears a region"""
    merged = {**(latest or {}), **update}
    return {region: message for region, message in merged.items() if message}


class PlannerState(TypedDict, total=False):
    """State for the campaign planning workflow"""
    campaign: Annotated[Campaign, merge_campaign]
    instructions: str
    target_segments: list[str]  # restrict content strategy to these segment names
    generate_images: bool
    errors: Annotated[dict[str, str], merge_errors]
    reauthorization_required: Annotated[bool, lambda a, b: bool(a) or bool(b)]
    current_step: str
