"""
Model client construction from environment configuration
"""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _required_env(name: str, purpose: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"{name} environment variable is required {purpose}")
    return value


def get_llm(temperature: Optional[float] = None):
    """
    Chat model used for every text and JSON generation request.

    Args:
        temperature: Sampling temperature (defaults to LLM_TEMPERATURE or 0.7)

    Returns:
        ChatOpenAI when USE_OPEN_AI_MODEL=true, ChatGroq otherwise

    Environment Variables:
        USE_OPEN_AI_MODEL: "true" selects OpenAI, anything else Groq
        OPEN_AI_KEY / OPEN_AI_MODEL: OpenAI credentials and model (default "gpt-4o")
        GROQ_API_KEY / GROQ_MODEL: Groq credentials and model (default "openai/gpt-oss-120b")
        LLM_TEMPERATURE: Default sampling temperature
    """
    if temperature is None:
        temperature = float(os.getenv("LLM_TEMPERATURE", "0.7"))

    # max_retries=0: rate limits have to reach the gateway's retry policy
    if os.getenv("USE_OPEN_AI_MODEL", "false").lower() == "true":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            temperature=temperature,
            model_name=os.getenv("OPEN_AI_MODEL", "gpt-4o"),
            openai_api_key=_required_env("OPEN_AI_KEY", "when USE_OPEN_AI_MODEL=true"),
            max_retries=0,
        )

    from langchain_groq import ChatGroq

    return ChatGroq(
        temperature=temperature,
        model_name=os.getenv("GROQ_MODEL", "openai/gpt-oss-120b"),
        groq_api_key=_required_env("GROQ_API_KEY", "when USE_OPEN_AI_MODEL=false"),
        max_retries=0,
    )


def get_image_client():
    """
    Image generation client.

    Environment Variables:
        OPENROUTER_API_KEY: OpenRouter API key (required)
        OPENROUTER_API_BASE: API base URL (default: https://openrouter.ai/api/v1)
        IMAGE_MODEL: Image-capable model (default: google/gemini-2.5-flash-image)
    """
    from ..gateway.image_client import OpenRouterImageClient

    return OpenRouterImageClient(
        api_key=_required_env("OPENROUTER_API_KEY", "for image generation"),
        api_base=os.getenv("OPENROUTER_API_BASE", "https://openrouter.ai/api/v1"),
        model=os.getenv("IMAGE_MODEL", "google/gemini-2.5-flash-image"),
    )
