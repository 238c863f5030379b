"""
Utility functions for turning files into attachments for generation requests
"""

import base64
import mimetypes
from pathlib import Path
from typing import Union

from ..models import SupportingDocument


def encode_file(path: Union[str, Path], mime_type: str = "") -> SupportingDocument:
    """
    Read a file and encode it as a base64 attachment

    Args:
        path: File to read
        mime_type: Explicit MIME type (guessed from the extension when empty)

    Returns:
        SupportingDocument carrying the file name, MIME type and base64 data
    """
    path = Path(path)
    if not mime_type:
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

    return SupportingDocument(
        name=path.name,
        mime_type=mime_type,
        data=base64.b64encode(path.read_bytes()).decode("ascii"),
    )


def to_content_block(document: SupportingDocument) -> dict:
    """LangChain message content block for an attachment"""
    if document.mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": document.to_data_uri()}}
    return {
        "type": "file",
        "source_type": "base64",
        "mime_type": document.mime_type,
        "data": document.data,
        "filename": document.name,
    }
