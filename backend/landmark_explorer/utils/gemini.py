"""Gemini SDK helpers shared by the capability client.

Responses from google-genai are loosely shaped (every level may be None), so
the extractors below tolerate missing levels and return plain Python values.
"""

from __future__ import annotations

import base64
from typing import Any

import structlog
from google import genai
from google.genai import types

logger = structlog.get_logger()


def get_client(credential: str) -> genai.Client:
    """Create a Gemini client for the user's API key."""
    return genai.Client(api_key=credential)


def image_part(data: bytes, mime_type: str) -> types.Part:
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def _first_parts(response: types.GenerateContentResponse) -> list[types.Part]:
    if not response.candidates:
        return []
    content = response.candidates[0].content
    if content is None or content.parts is None:
        return []
    return list(content.parts)


def extract_text(response: types.GenerateContentResponse) -> str:
    """Join all text parts of the first candidate."""
    texts = [part.text for part in _first_parts(response) if part.text is not None]
    return "".join(texts)


def extract_inline_data(
    response: types.GenerateContentResponse,
    mime_prefix: str = "",
) -> tuple[bytes, str] | None:
    """Return (data, mime_type) of the first inline blob, optionally filtered by type."""
    for part in _first_parts(response):
        blob = part.inline_data
        if blob is None or not blob.data:
            continue
        mime_type = blob.mime_type or ""
        if mime_prefix and mime_type and not mime_type.startswith(mime_prefix):
            continue
        return _as_bytes(blob.data), mime_type
    return None


def _as_bytes(data: bytes | str) -> bytes:
    # The SDK hands back bytes; older releases and REST fixtures use base64 text.
    if isinstance(data, str):
        return base64.b64decode(data)
    return data


def extract_grounding_chunks(response: types.GenerateContentResponse) -> list[dict[str, Any]]:
    """Return raw {uri, title} dicts from the first candidate's grounding metadata."""
    if not response.candidates:
        return []
    metadata = response.candidates[0].grounding_metadata
    if metadata is None or not metadata.grounding_chunks:
        return []
    chunks = []
    for chunk in metadata.grounding_chunks:
        web = chunk.web
        if web is None:
            continue
        chunks.append({"uri": web.uri, "title": web.title})
    logger.debug("grounding_chunks_extracted", count=len(chunks))
    return chunks
