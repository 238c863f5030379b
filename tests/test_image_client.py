"""
Tests for the image client response parsing and the attachment helpers.
"""

import httpx
import pytest

from campaign_planner.gateway.image_client import OpenRouterImageClient, extract_image, parse_data_url
from campaign_planner.models import SupportingDocument
from campaign_planner.utils.document_utils import encode_file, to_content_block


def test_parse_data_url():
    image = parse_data_url("data:image/jpeg;base64,aGVsbG8=")
    assert image.mime_type == "image/jpeg"
    assert image.base64 == "aGVsbG8="


def test_parse_rejects_plain_urls():
    with pytest.raises(ValueError):
        parse_data_url("https://example.com/image.png")


def test_extract_first_inline_image():
    result = {
        "choices": [
            {"message": {"content": "Here you go", "images": None}},
            {"message": {"images": [{"image_url": {"url": "data:image/png;base64,Zmlyc3Q="}}]}},
        ]
    }
    assert extract_image(result).base64 == "Zmlyc3Q="


def test_missing_image_raises():
    with pytest.raises(ValueError, match="No image data"):
        extract_image({"choices": [{"message": {"content": "Sorry, I can't draw that"}}]})


def test_payload_puts_reference_before_prompt():
    client = OpenRouterImageClient(api_key="key", api_base="https://example.com/api/")
    reference = SupportingDocument(name="shoe.png", mime_type="image/png", data="aGVsbG8=")

    payload = client._build_payload("A runner", "9:16", reference)

    assert client.endpoint == "https://example.com/api/chat/completions"
    assert payload["image_config"] == {"aspect_ratio": "9:16"}
    content = payload["messages"][0]["content"]
    assert content[0]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="
    assert content[1] == {"type": "text", "text": "A runner"}


async def test_http_errors_propagate(monkeypatch):
    def handler(request):
        return httpx.Response(429, json={"error": "rate limited"})

    transport = httpx.MockTransport(handler)
    original = httpx.AsyncClient

    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: original(*args, transport=transport, **kwargs))

    with pytest.raises(httpx.HTTPStatusError):
        await OpenRouterImageClient(api_key="key").generate("A runner")


def test_encode_file_guesses_mime_type(tmp_path):
    path = tmp_path / "brief.pdf"
    path.write_bytes(b"%PDF")

    document = encode_file(path)

    assert document.name == "brief.pdf"
    assert document.mime_type == "application/pdf"
    assert document.data == "JVBERg=="


def test_content_blocks():
    image = SupportingDocument(name="a.png", mime_type="image/png", data="eA==")
    pdf = SupportingDocument(name="a.pdf", mime_type="application/pdf", data="eA==")

    assert to_content_block(image)["type"] == "image_url"
    assert to_content_block(pdf) == {
        "type": "file",
        "source_type": "base64",
        "mime_type": "application/pdf",
        "data": "eA==",
        "filename": "a.pdf",
    }
