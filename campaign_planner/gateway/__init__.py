"""
Gateway to the text and image generation models
"""

from .content_gateway import ContentGateway, IMAGE_GENERATION_TIMEOUT_SECONDS
from .image_client import OpenRouterImageClient

__all__ = ["ContentGateway", "OpenRouterImageClient", "IMAGE_GENERATION_TIMEOUT_SECONDS"]
