"""AI capability client: a typed facade over the Gemini API.

One coroutine per capability. Each call is a single request/response with no
local caching; the blocking SDK call runs in a worker thread under a timeout.
Every failure leaves this module as a CapabilityError with a normalized kind,
so nothing above this layer ever handles raw SDK exceptions.
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any, Protocol

import structlog
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from landmark_explorer.capabilities import prompts
from landmark_explorer.config import settings
from landmark_explorer.errors import CapabilityError, CapabilityErrorKind, ValidationError
from landmark_explorer.messages import t
from landmark_explorer.models.contracts import (
    AudienceLevel,
    GroundingSource,
    ImagePayload,
    LandmarkInfo,
    Narration,
)
from landmark_explorer.utils.gemini import (
    extract_grounding_chunks,
    extract_inline_data,
    extract_text,
    get_client,
    image_part,
)
from landmark_explorer.utils.text import sanitize_text

logger = structlog.get_logger()

EMOJI_PLACEHOLDER = "📍"

_INVALID_CREDENTIAL_MARKERS = (
    "API_KEY_INVALID",
    "API key not valid",
    "API key expired",
    "PERMISSION_DENIED",
    "UNAUTHENTICATED",
)
_QUOTA_MARKERS = ("RESOURCE_EXHAUSTED", "quota", "Quota")


class CapabilityClient(Protocol):
    """What the tour machine and widgets need from the generative backend."""

    async def identify(self, credential: str, image_data: bytes, mime_type: str) -> LandmarkInfo: ...

    async def narrate(
        self, credential: str, landmark_name: str, audience_level: AudienceLevel | str
    ) -> Narration: ...

    async def speak(self, credential: str, text: str) -> str: ...

    async def answer(
        self,
        credential: str,
        landmark_name: str,
        known_history: str,
        question: str,
        audience_level: AudienceLevel | str,
    ) -> str: ...

    async def illustrate(
        self, credential: str, image_data: bytes, mime_type: str, style_prompt: str
    ) -> ImagePayload: ...

    async def fun_fact(
        self, credential: str, landmark_name: str, audience_level: AudienceLevel | str
    ) -> str: ...

    async def emoji_tags(self, credential: str, landmark_names: list[str]) -> list[str]: ...


class _IdentifyResult(BaseModel):
    """Response schema for identify; all landmark fields optional so we can classify gaps."""

    is_landmark: bool
    name: str | None = None
    city: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None


def classify_exception(exc: BaseException) -> CapabilityError:
    """Map an SDK / transport exception onto the capability error taxonomy."""
    if isinstance(exc, CapabilityError):
        return exc
    if isinstance(exc, TimeoutError):
        return CapabilityError(CapabilityErrorKind.TRANSIENT, "Gemini API timed out")

    text = f"{type(exc).__name__}: {exc}"
    code: int | None = None
    if isinstance(exc, genai_errors.APIError):
        code = exc.code
        text = f"{text} {exc.status or ''} {exc.message or ''}"

    if code in (401, 403) or any(marker in text for marker in _INVALID_CREDENTIAL_MARKERS):
        return CapabilityError(CapabilityErrorKind.INVALID_CREDENTIAL, text[:300])
    if code == 429 or any(marker in text for marker in _QUOTA_MARKERS):
        return CapabilityError(CapabilityErrorKind.QUOTA_EXHAUSTED, text[:300])
    return CapabilityError(CapabilityErrorKind.TRANSIENT, text[:300])


def parse_landmark(raw_json: str) -> LandmarkInfo:
    """Validate the identify response; incomplete or negative answers are NOT_A_LANDMARK."""
    try:
        result = _IdentifyResult.model_validate_json(raw_json)
    except PydanticValidationError as exc:
        try:
            json.loads(raw_json)
        except ValueError:
            raise CapabilityError(
                CapabilityErrorKind.TRANSIENT, "identify returned malformed JSON"
            ) from exc
        raise CapabilityError(
            CapabilityErrorKind.NOT_A_LANDMARK, "identify response missing fields"
        ) from exc

    if not result.is_landmark:
        raise CapabilityError(CapabilityErrorKind.NOT_A_LANDMARK, "no landmark in photo")
    try:
        return LandmarkInfo(
            name=(result.name or "").strip(),
            city=(result.city or "").strip(),
            country=(result.country or "").strip(),
            latitude=result.latitude,  # type: ignore[arg-type]
            longitude=result.longitude,  # type: ignore[arg-type]
        )
    except PydanticValidationError as exc:
        raise CapabilityError(
            CapabilityErrorKind.NOT_A_LANDMARK, f"incomplete landmark data: {exc.error_count()} errors"
        ) from exc


def filter_sources(chunks: list[dict[str, Any]]) -> list[GroundingSource]:
    """Keep only citations with both uri and title, first occurrence of each uri."""
    sources: list[GroundingSource] = []
    seen: set[str] = set()
    for chunk in chunks:
        uri = (chunk.get("uri") or "").strip()
        title = (chunk.get("title") or "").strip()
        if not uri or not title or uri in seen:
            continue
        seen.add(uri)
        sources.append(GroundingSource(uri=uri, title=title))
    return sources


def normalize_emojis(raw: Any, count: int) -> list[str]:
    """One non-empty glyph per landmark; anything missing becomes the placeholder."""
    values = raw if isinstance(raw, list) else []
    emojis = []
    for i in range(count):
        value = values[i] if i < len(values) else None
        glyph = value.strip() if isinstance(value, str) else ""
        emojis.append(glyph or EMOJI_PLACEHOLDER)
    return emojis


def _require_credential(credential: str) -> None:
    if not credential or not credential.strip():
        raise ValidationError(t("validation.credential_required"))


class GeminiCapabilityClient:
    """Production CapabilityClient backed by google-genai."""

    def __init__(
        self,
        *,
        text_model: str | None = None,
        tts_model: str | None = None,
        image_model: str | None = None,
        voice: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.text_model = text_model or settings.gemini_text_model
        self.tts_model = tts_model or settings.gemini_tts_model
        self.image_model = image_model or settings.gemini_image_model
        self.voice = voice or settings.tts_voice
        self.timeout = timeout or settings.capability_timeout_seconds

    async def _generate(
        self,
        operation: str,
        credential: str,
        *,
        model: str,
        contents: Any,
        config: types.GenerateContentConfig | None = None,
    ) -> types.GenerateContentResponse:
        _require_credential(credential)
        client = get_client(credential)
        logger.info("capability_call_start", operation=operation, model=model)
        try:
            async with asyncio.timeout(self.timeout):
                response = await asyncio.to_thread(
                    client.models.generate_content,
                    model=model,
                    contents=contents,
                    config=config,
                )
        except Exception as exc:
            error = classify_exception(exc)
            logger.warning(
                "capability_call_failed",
                operation=operation,
                kind=error.kind.value,
                error_type=type(exc).__name__,
            )
            raise error from exc
        logger.info("capability_call_done", operation=operation)
        return response

    async def identify(self, credential: str, image_data: bytes, mime_type: str) -> LandmarkInfo:
        response = await self._generate(
            "identify",
            credential,
            model=self.text_model,
            contents=[image_part(image_data, mime_type), prompts.IDENTIFY_PROMPT],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=_IdentifyResult,
            ),
        )
        landmark = parse_landmark(extract_text(response))
        logger.info("landmark_identified", name=landmark.name, country=landmark.country)
        return landmark

    async def narrate(
        self, credential: str, landmark_name: str, audience_level: AudienceLevel | str
    ) -> Narration:
        response = await self._generate(
            "narrate",
            credential,
            model=self.text_model,
            contents=prompts.narrate_prompt(landmark_name, audience_level),
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        )
        text = sanitize_text(extract_text(response))
        if not text:
            raise CapabilityError(CapabilityErrorKind.TRANSIENT, "narrate returned no text")
        return Narration(text=text, sources=filter_sources(extract_grounding_chunks(response)))

    async def speak(self, credential: str, text: str) -> str:
        response = await self._generate(
            "speak",
            credential,
            model=self.tts_model,
            contents=prompts.speak_prompt(text),
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice),
                    ),
                ),
            ),
        )
        blob = extract_inline_data(response, mime_prefix="audio/")
        if blob is None:
            raise CapabilityError(
                CapabilityErrorKind.NO_AUDIO_PRODUCED, t("error.no_audio_produced")
            )
        data, mime_type = blob
        logger.info("speech_generated", size_bytes=len(data), mime_type=mime_type)
        return base64.b64encode(data).decode("ascii")

    async def answer(
        self,
        credential: str,
        landmark_name: str,
        known_history: str,
        question: str,
        audience_level: AudienceLevel | str,
    ) -> str:
        response = await self._generate(
            "answer",
            credential,
            model=self.text_model,
            contents=prompts.answer_prompt(landmark_name, known_history, question, audience_level),
        )
        text = sanitize_text(extract_text(response))
        if not text:
            raise CapabilityError(CapabilityErrorKind.TRANSIENT, "answer returned no text")
        return text

    async def illustrate(
        self, credential: str, image_data: bytes, mime_type: str, style_prompt: str
    ) -> ImagePayload:
        response = await self._generate(
            "illustrate",
            credential,
            model=self.image_model,
            contents=[image_part(image_data, mime_type), prompts.illustrate_prompt(style_prompt)],
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )
        blob = extract_inline_data(response, mime_prefix="image/")
        if blob is None:
            text = extract_text(response)
            logger.warning("gemini_no_image_response", gemini_text=text[:300])
            raise CapabilityError(
                CapabilityErrorKind.NO_IMAGE_PRODUCED, t("error.no_image_produced")
            )
        data, out_mime = blob
        return ImagePayload(
            data=base64.b64encode(data).decode("ascii"), mime_type=out_mime or "image/png"
        )

    async def fun_fact(
        self, credential: str, landmark_name: str, audience_level: AudienceLevel | str
    ) -> str:
        response = await self._generate(
            "fun_fact",
            credential,
            model=self.text_model,
            contents=prompts.fun_fact_prompt(landmark_name, audience_level),
        )
        text = sanitize_text(extract_text(response))
        if not text:
            raise CapabilityError(CapabilityErrorKind.TRANSIENT, "fun_fact returned no text")
        return text

    async def emoji_tags(self, credential: str, landmark_names: list[str]) -> list[str]:
        if not landmark_names:
            return []
        response = await self._generate(
            "emoji_tags",
            credential,
            model=self.text_model,
            contents=prompts.emoji_prompt(landmark_names),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=list[str],
            ),
        )
        try:
            raw = json.loads(extract_text(response))
        except ValueError as exc:
            raise CapabilityError(
                CapabilityErrorKind.TRANSIENT, "emoji_tags returned malformed JSON"
            ) from exc
        return normalize_emojis(raw, len(landmark_names))


def build_capability_client() -> CapabilityClient:
    """Real Gemini client, or canned responses when USE_MOCK_CAPABILITIES is set."""
    if settings.use_mock_capabilities:
        from landmark_explorer.capabilities.mock_stubs import MockCapabilityClient

        return MockCapabilityClient()
    return GeminiCapabilityClient()
