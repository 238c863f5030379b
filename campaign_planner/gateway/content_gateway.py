"""
Content gateway: the single point where the planner talks to generative models

Every call goes through the same path: build messages, invoke with retry on
rate-limit / server-busy responses, parse the JSON answer into domain models.
Failures come out as GatewayError with a message fit for the user.
"""

import asyncio
import os
from typing import Awaitable, Callable, Optional, TypeVar

from dotenv import load_dotenv
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from ..constants import ASPECT_RATIOS, OWNED_MEDIA_CHANNELS, get_channels_list, validate_channels
from ..exceptions import GatewayError, ImageGenerationTimeoutError, ReauthorizationRequiredError
from ..models import (
    AudienceResearch,
    AudienceSegment,
    BudgetSplitSuggestion,
    Campaign,
    CreativeGroup,
    CreativeStrategy,
    GeneratedImage,
    OwnedMediaAnalysis,
    SupportingDocument,
)
from ..prompts import (
    AUDIENCE_SEGMENTS_TEMPLATE,
    BUDGET_SPLIT_TEMPLATE,
    CREATIVE_STRATEGY_TEMPLATE,
    EDIT_TEXT_TEMPLATE,
    NOTIFICATION_TEXT_TEMPLATE,
    OWNED_MEDIA_TEMPLATE,
)
from ..utils.document_utils import to_content_block
from ..utils.llm_utils import get_image_client, get_llm
from ..utils.retry import RetryConfig, RetryExhaustedError, retry_with_backoff

load_dotenv()

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

IMAGE_GENERATION_TIMEOUT_SECONDS = float(os.getenv("IMAGE_GENERATION_TIMEOUT_SECONDS", "90"))

# Returned when the API key is not entitled to the requested model
REAUTHORIZATION_MARKER = "requested entity was not found"


def message_text(message: BaseMessage) -> str:
    """Plain text of a model response, joining text blocks of multi-part content"""
    content = message.content
    if isinstance(content, str):
        return content
    return "".join(
        block if isinstance(block, str) else block.get("text", "")
        for block in content
        if isinstance(block, str) or block.get("type") == "text"
    )


def describe_product_sources(campaign: Campaign) -> str:
    parts = []
    if campaign.product_details_url:
        parts.append(f"URL: {campaign.product_details_url}.")
    if campaign.product_details_document:
        parts.append(f"Document: {campaign.product_details_document.name}.")
    if campaign.landing_page_url:
        parts.append(f"Landing Page: {campaign.landing_page_url}.")
    return " ".join(parts) or "No product sources provided."


def describe_creative_brief(campaign: Campaign) -> str:
    brief = [
        ("Who is the most important group of customers you want to say this to?", campaign.important_customers),
        ("Which segment does this group of customers belong to?", campaign.customer_segment),
        ("What do you want to tell them?", campaign.what_to_tell),
        ("What do you want your customers to do / think / feel?", campaign.customer_action),
        ("What are your product benefits or promotion mechanics?", campaign.product_benefits),
        ("What is the customer job to be done?", campaign.customer_job),
        ("Your campaign demonstrates the following brand values:", campaign.brand_values),
    ]
    lines = [f"- {question} {answer}" for question, answer in brief if answer]
    if not lines:
        return ""
    return "\nYour segmentation must be guided by this creative brief:\n" + "\n".join(lines)


def format_instructions(instructions: Optional[str], label: str = "Additional instructions from the user") -> str:
    return f'\n{label}: "{instructions}"' if instructions else ""


class ContentGateway:
    """Issues structured generation requests and parses the answers into domain objects"""

    def __init__(
        self,
        llm=None,
        image_client=None,
        retry_config: Optional[RetryConfig] = None,
        image_timeout: Optional[float] = None,
    ):
        # Clients are created on first use so the gateway can be built without credentials
        self._llm = llm
        self._image_client = image_client
        self.retry_config = retry_config or RetryConfig.from_env()
        self.image_timeout = image_timeout or IMAGE_GENERATION_TIMEOUT_SECONDS

    @property
    def llm(self):
        if self._llm is None:
            self._llm = get_llm()
        return self._llm

    @property
    def image_client(self):
        if self._image_client is None:
            self._image_client = get_image_client()
        return self._image_client

    async def _call(self, func: Callable[[], Awaitable[T]], failure_message: str) -> T:
        """Run a request with retry and translate failures into gateway errors"""
        try:
            return await retry_with_backoff(func, self.retry_config)
        except RetryExhaustedError as e:
            print(f"✗ {failure_message} Rate limited: {e.__cause__}")
            raise GatewayError(f"{failure_message} The service is busy, please try again in a moment.") from e
        except GatewayError:
            raise
        except Exception as e:
            if REAUTHORIZATION_MARKER in str(e).lower():
                print(f"✗ API key rejected: {e}")
                raise ReauthorizationRequiredError(
                    "The API key does not have access to this model. Please select a different key."
                ) from e
            print(f"✗ {failure_message} {type(e).__name__}: {e}")
            raise GatewayError(failure_message) from e

    def _build_messages(
        self,
        template: ChatPromptTemplate,
        variables: dict,
        attachments: Optional[list[SupportingDocument]] = None,
    ) -> list[BaseMessage]:
        messages = template.format_messages(**variables)
        if attachments:
            messages.append(HumanMessage(content=[
                {"type": "text", "text": "Use the attached files as context."},
                *[to_content_block(doc) for doc in attachments],
            ]))
        return messages

    async def _generate_json(self, messages: list[BaseMessage], model_cls: type[M], failure_message: str) -> M:
        parser = JsonOutputParser()

        async def _request() -> M:
            response = await self.llm.ainvoke(messages)
            data = parser.parse(message_text(response))
            if model_cls is CreativeStrategy and isinstance(data, list):
                data = {"groups": data}
            return model_cls.model_validate(data)

        return await self._call(_request, failure_message)

    async def _generate_text(self, messages: list[BaseMessage], failure_message: str) -> str:
        async def _request() -> str:
            response = await self.llm.ainvoke(messages)
            return message_text(response).strip()

        return await self._call(_request, failure_message)

    async def get_audience_segments(self, campaign: Campaign, instructions: Optional[str] = None) -> AudienceResearch:
        """
        Research the market and propose audience segments

        Args:
            campaign: Campaign details (product sources, creative brief, attachments)
            instructions: Extra guidance from the user when regenerating

        Returns:
            AudienceResearch with every segment selected
        """
        print("\n[Identifying audience segments...]")

        attachments = [
            doc for doc in (campaign.product_image, campaign.product_details_document) if doc is not None
        ] + list(campaign.supporting_documents)

        messages = self._build_messages(AUDIENCE_SEGMENTS_TEMPLATE, {
            "country": campaign.country,
            "campaign_name": campaign.campaign_name,
            "paid_media_budget": campaign.paid_media_budget,
            "duration_days": campaign.duration_days,
            "product_sources": describe_product_sources(campaign),
            "creative_brief": describe_creative_brief(campaign),
            "additional_instructions": format_instructions(instructions),
        }, attachments)

        research = await self._generate_json(messages, AudienceResearch, "Failed to generate target audience.")
        research = research.model_copy(update={
            "segments": [s.model_copy(update={"is_selected": True}) for s in research.segments]
        })

        print(f"✓ Found {len(research.segments)} audience segment(s)")
        return research

    async def get_budget_split(self, campaign: Campaign, instructions: Optional[str] = None) -> BudgetSplitSuggestion:
        """
        Ask for a provisional media plan. The amounts are not normalized here.
        """
        print("\n[Planning paid media budget...]")

        segment_summaries = "\n".join(
            f"- {s.name}: {s.description} (Rationale: {s.rationale})" for s in campaign.audience_segments
        )
        messages = self._build_messages(BUDGET_SPLIT_TEMPLATE, {
            "campaign_name": campaign.campaign_name,
            "country": campaign.country,
            "total_budget": campaign.paid_media_budget,
            "objective": campaign.customer_action or "Acquisition",
            "product_benefits": campaign.product_benefits or "N/A",
            "landing_page": f"Landing Page: {campaign.landing_page_url}." if campaign.landing_page_url else "",
            "segment_summaries": segment_summaries,
            "channels": get_channels_list(),
            "additional_instructions": format_instructions(instructions),
        })

        suggestion = await self._generate_json(messages, BudgetSplitSuggestion, "Failed to generate media plan.")

        channels = [m.channel for split in suggestion.splits for m in split.media_split]
        all_valid, unknown = validate_channels(channels)
        if not all_valid:
            print(f"  Media plan uses unlisted channel(s): {', '.join(sorted(set(unknown)))}")

        print(f"✓ Budget suggested for {len(suggestion.splits)} segment(s)")
        return suggestion

    async def get_owned_media_analysis(self, campaign: Campaign) -> OwnedMediaAnalysis:
        """
        Decide whether owned channels fit the campaign.

        A failed analysis is not fatal for the media plan: it comes back as a
        "not applicable" result. Only credential problems are raised.
        """
        print("\n[Analyzing owned media...]")

        messages = self._build_messages(OWNED_MEDIA_TEMPLATE, {
            "campaign_name": campaign.campaign_name,
            "owned_channels": ", ".join(OWNED_MEDIA_CHANNELS),
            "segment_names": ", ".join(s.name for s in campaign.audience_segments),
            "important_customers": campaign.important_customers or "N/A",
            "customer_segment": campaign.customer_segment or "N/A",
        })

        try:
            analysis = await self._generate_json(messages, OwnedMediaAnalysis, "Failed to analyze owned media.")
        except ReauthorizationRequiredError:
            raise
        except GatewayError:
            return OwnedMediaAnalysis(
                is_applicable=False,
                justification="Analysis failed.",
                analysis_recommendations="Could not generate recommendations.",
            )

        print(f"✓ Owned media {'recommended' if analysis.is_applicable else 'not recommended'}")
        return analysis

    async def generate_creative_strategy(
        self,
        segment: AudienceSegment,
        channels: list[str],
        campaign_context: str,
        instructions: Optional[str] = None,
    ) -> list[CreativeGroup]:
        """Group a segment's channels into creative formats with prompts and copy"""
        print(f"\n[Creating content strategy for '{segment.name}'...]")

        messages = self._build_messages(CREATIVE_STRATEGY_TEMPLATE, {
            "segment_name": segment.name,
            "segment_description": segment.description,
            "pen_portrait": segment.pen_portrait,
            "key_motivations": ", ".join(segment.key_motivations),
            "campaign_context": campaign_context,
            "channels": ", ".join(channels),
            "aspect_ratios": " or ".join(f'"{r}"' for r in ASPECT_RATIOS),
            "additional_instructions": format_instructions(instructions),
        })

        strategy = await self._generate_json(messages, CreativeStrategy, "Failed to generate creative strategy.")
        groups = [
            g.model_copy(update={"selected_prompt_index": 0, "selected_headline_index": 0})
            for g in strategy.groups
        ]

        print(f"✓ {len(groups)} creative group(s)")
        return groups

    async def generate_notification_text(
        self,
        prompt: str,
        landing_page_url: str = "",
        brand_values: str = "",
        instructions: Optional[str] = None,
    ) -> str:
        context = []
        if landing_page_url:
            context.append(f"Link: {landing_page_url}.")
        if brand_values:
            context.append(f"Values: {brand_values}")
        if instructions:
            context.append(f'Instruction: "{instructions}"')

        messages = self._build_messages(NOTIFICATION_TEXT_TEMPLATE, {
            "prompt": prompt,
            "context": "\n".join(context),
        })
        return await self._generate_text(messages, "Failed to generate text.")

    async def edit_notification_text(self, text: str, instructions: str, landing_page_url: str = "") -> str:
        messages = self._build_messages(EDIT_TEXT_TEMPLATE, {
            "text": text,
            "instructions": instructions,
            "context": f"Context Link: {landing_page_url}." if landing_page_url else "",
        })
        return await self._generate_text(messages, "Failed to edit text.")

    async def _generate_image_with_timeout(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: Optional[SupportingDocument],
        failure_message: str,
    ) -> GeneratedImage:
        async def _request() -> GeneratedImage:
            return await self.image_client.generate(prompt, aspect_ratio, reference)

        try:
            return await asyncio.wait_for(self._call(_request, failure_message), timeout=self.image_timeout)
        except asyncio.TimeoutError as e:
            print(f"✗ Image generation timed out after {self.image_timeout:.0f}s")
            raise ImageGenerationTimeoutError(
                f"Image generation timed out after {self.image_timeout:.0f} seconds. Please try again."
            ) from e

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        instructions: Optional[str] = None,
        reference: Optional[SupportingDocument] = None,
    ) -> GeneratedImage:
        """
        Generate an ad image, optionally placing the product from a reference image

        Raises:
            ImageGenerationTimeoutError: If no image arrives within the timeout
            GatewayError: On any other failure
        """
        if reference is not None:
            full_prompt = (
                f'Using the provided product image, create a new photorealistic image: "{prompt}". '
                "Maintain realistic scale. High quality, professional lighting."
            )
            failure_message = "Failed to generate product placement image."
        else:
            full_prompt = (
                f"{prompt}. High resolution, photorealistic, professional advertising photography, "
                "highly detailed, cinematic lighting."
            )
            failure_message = "Failed to generate image."
        full_prompt += format_instructions(instructions, "Additional instructions")

        return await self._generate_image_with_timeout(full_prompt, aspect_ratio, reference, failure_message)

    async def edit_image(self, image: GeneratedImage, instructions: str, aspect_ratio: str = "1:1") -> GeneratedImage:
        original = SupportingDocument(name="original", mime_type=image.mime_type, data=image.base64)
        prompt = f"Edit this image: {instructions}. Return the edited image. High quality."
        return await self._generate_image_with_timeout(prompt, aspect_ratio, original, "Failed to edit image.")
