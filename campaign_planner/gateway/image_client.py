"""
Image generation client for OpenRouter image-capable models (Gemini image models by default)
"""

from typing import Optional

import httpx

from ..models import GeneratedImage, SupportingDocument


def parse_data_url(url: str) -> GeneratedImage:
    """Split a `data:<mime>;base64,<data>` URL into a GeneratedImage"""
    header, _, data = url.partition(",")
    if not header.startswith("data:") or not data:
        raise ValueError("Image URL is not a base64 data URL")
    mime_type = header[len("data:"):].split(";")[0] or "image/png"
    return GeneratedImage(base64=data, mime_type=mime_type)


def extract_image(result: dict) -> GeneratedImage:
    """
    Pull the first inline image out of a chat-completions response.

    Gemini models return images in `choices[].message.images[].image_url.url`.
    """
    for choice in result.get("choices", []):
        message = choice.get("message") or {}
        for image in message.get("images") or []:
            url = (image.get("image_url") or {}).get("url", "")
            if url.startswith("data:image/"):
                return parse_data_url(url)
    raise ValueError("No image data received from API.")


class OpenRouterImageClient:
    """Generates and edits images through the OpenRouter chat completions endpoint"""

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://openrouter.ai/api/v1",
        model: str = "google/gemini-2.5-flash-image",
        timeout: float = 120.0,
    ):
        self.api_key = api_key
        self.endpoint = f"{api_base.rstrip('/')}/chat/completions"
        self.model = model
        self.timeout = timeout

    def _build_payload(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: Optional[SupportingDocument] = None,
    ) -> dict:
        content = []
        if reference is not None:
            content.append({"type": "image_url", "image_url": {"url": reference.to_data_uri()}})
        content.append({"type": "text", "text": prompt})

        return {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
            "modalities": ["image", "text"],
            "image_config": {"aspect_ratio": aspect_ratio},
        }

    async def generate(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        reference: Optional[SupportingDocument] = None,
    ) -> GeneratedImage:
        """
        Generate an image, optionally starting from a reference image.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses (classified by the gateway)
            ValueError: If the response carries no image
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = self._build_payload(prompt, aspect_ratio, reference)

        async with httpx.AsyncClient() as client:
            response = await client.post(self.endpoint, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return extract_image(response.json())
