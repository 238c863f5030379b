"""
Shared fixtures: sample campaigns, fake chat models and a stub image client.
"""

import asyncio
import base64
import json
from datetime import date

import pytest
from langchain_core.language_models import FakeListChatModel
from langchain_core.messages import AIMessage

from campaign_planner.gateway import ContentGateway
from campaign_planner.models import (
    AudienceSegment,
    AudienceTargeting,
    Campaign,
    CampaignDetails,
    GeneratedImage,
    MediaSplit,
)
from campaign_planner.utils.retry import RetryConfig


AUDIENCE_RESPONSE = {
    "competitor_analysis": {
        "summary": "Our Brand is lighter than the competition.",
        "comparison_table": [
            {"product_name": "Runner X", "brand": "Our Brand", "key_features": ["Light"], "target_audience": "Runners", "pros_vs_cons": "Cheaper"},
        ],
    },
    "proposition": "The lightest recycled running shoe.",
    "segments": [
        {
            "name": "Urban Runners",
            "pen_portrait": "Sam, 29, runs to work every day.",
            "description": "Young professionals who commute on foot.",
            "rationale": "High purchase intent.",
            "key_motivations": ["Speed", "Style"],
            "image_search_keywords": ["city run"],
            "is_selected": False,
            "targeting": {"age_range": "25-34", "genders": ["All"], "interests": ["Running"]},
        },
        {
            "name": "Weekend Joggers",
            "pen_portrait": "Alex, 45, jogs in the park on Saturdays.",
            "description": "Casual runners focused on health.",
            "rationale": "Large audience.",
            "key_motivations": ["Health"],
            "image_search_keywords": ["park jog"],
            "targeting": {"age_range": "35+", "genders": ["Female"]},
        },
    ],
    "sources": [{"title": "Running survey", "uri": "https://example.com/survey"}],
}

BUDGET_RESPONSE = {
    "analysis": "## Strategy\nSocial first.",
    "splits": [
        {
            "segment_name": "Urban Runners",
            "allocated_budget": 6000,
            "media_split": [
                {"channel": "Facebook", "budget": 3000},
                {"channel": "Instagram", "budget": 3000},
                {"channel": "TikTok", "budget": 0},
            ],
        },
        {
            "segment_name": "Weekend Joggers",
            "allocated_budget": 3000,
            "media_split": [
                {"channel": "Google Search", "budget": 2000},
                {"channel": "YouTube", "budget": 1000},
            ],
        },
    ],
    "sources": [{"title": "Media trends", "uri": "https://example.com/trends"}],
}

OWNED_MEDIA_RESPONSE = {
    "is_applicable": True,
    "justification": "Existing customers open our emails.",
    "analysis_recommendations": "- Send a launch email",
    "recommended_channels": ["Email"],
}

CREATIVE_STRATEGY_RESPONSE = {
    "groups": [
        {
            "name": "Social Stories",
            "aspect_ratio": "9:16",
            "channels": ["Instagram", "TikTok"],
            "image_prompts": ["Runner at dawn", "Runner crossing a bridge", "Runner stretching"],
            "headlines": ["Run lighter", "Own the commute", "Fast by design"],
            "push_notes": ["Your new shoes are here"],
        },
        {
            "name": "Feed Ads",
            "aspect_ratio": "1:1",
            "channels": ["Facebook", "Email"],
            "image_prompts": ["Group run in the city"],
            "headlines": ["Join the run"],
        },
    ]
}


AUDIENCE_MARKER = "distinct target audience segments"
BUDGET_MARKER = "Media Planner"
OWNED_MEDIA_MARKER = "Owned Media specialist"
STRATEGY_MARKER = "Creative Director"


def as_json(data, fenced: bool = False) -> str:
    text = json.dumps(data)
    return f"```json\n{text}\n```" if fenced else text


def planner_routes(**overrides) -> dict:
    """Routes answering every planning prompt with the sample responses"""
    routes = {
        AUDIENCE_MARKER: as_json(AUDIENCE_RESPONSE),
        BUDGET_MARKER: as_json(BUDGET_RESPONSE),
        OWNED_MEDIA_MARKER: as_json(OWNED_MEDIA_RESPONSE),
        STRATEGY_MARKER: as_json(CREATIVE_STRATEGY_RESPONSE),
    }
    routes.update(overrides)
    return routes


class ScriptedChatModel:
    """
    Chat model double answering from a script.

    Each entry is a string (returned as the message content) or an exception
    (raised). With `routes`, the answer is picked by a marker found in the
    system prompt instead (a list is consumed one entry per call), and
    `delays` can hold a response back.
    """

    def __init__(self, outputs=None, routes=None, delays=None):
        self.outputs = list(outputs or [])
        self.routes = routes or {}
        self.delays = delays or {}
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        prompt = messages[0].content if messages else ""
        for marker, output in self.routes.items():
            if marker in prompt:
                if isinstance(output, list):
                    output = output.pop(0)
                await asyncio.sleep(self.delays.get(marker, 0))
                break
        else:
            output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return AIMessage(content=output)


class StubImageClient:
    """Image client double that records prompts and returns a tiny image"""

    def __init__(self, outcomes=None, delay: float = 0):
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.calls = []

    async def generate(self, prompt, aspect_ratio="1:1", reference=None):
        self.calls.append({"prompt": prompt, "aspect_ratio": aspect_ratio, "reference": reference})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
        return GeneratedImage(base64=base64.b64encode(b"fake-image").decode("ascii"), mime_type="image/png")


@pytest.fixture
def fast_retry():
    return RetryConfig(max_attempts=3, initial_delay=0, jitter=False)


@pytest.fixture
def make_gateway(fast_retry):
    """Factory: gateway over a fake LLM (list of responses or a chat model) and a stub image client"""
    def _make(llm=None, image_client=None, image_timeout=None):
        if isinstance(llm, list):
            llm = FakeListChatModel(responses=llm)
        return ContentGateway(
            llm=llm or ScriptedChatModel(),
            image_client=image_client or StubImageClient(),
            retry_config=fast_retry,
            image_timeout=image_timeout,
        )
    return _make


@pytest.fixture
def details():
    return CampaignDetails(
        campaign_name="Runner X Launch",
        country="United Kingdom",
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        landing_page_url="https://example.com/runner-x",
        paid_media_budget=10000,
        brand_values="Sustainability",
    )


@pytest.fixture
def planned_campaign(details):
    """Campaign with a normalized media plan for two segments"""
    return Campaign(
        **details.model_dump(),
        audience_segments=[
            AudienceSegment(
                name="Urban Runners",
                description="Young professionals who commute on foot.",
                pen_portrait="Sam, 29, runs to work every day.",
                targeting=AudienceTargeting(age_range="25-34", genders=["Female"], locations=["London"]),
                budget=6000,
                media_split=[
                    MediaSplit(channel="Facebook", budget=3000),
                    MediaSplit(channel="Instagram", budget=3000),
                    MediaSplit(channel="TikTok", budget=0),
                ],
            ),
            AudienceSegment(
                name="Weekend Joggers",
                description="Casual runners focused on health.",
                budget=4000,
                media_split=[
                    MediaSplit(channel="Google Search", budget=2500),
                    MediaSplit(channel="YouTube", budget=1500),
                ],
            ),
        ],
    )
