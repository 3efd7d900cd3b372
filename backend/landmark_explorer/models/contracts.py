"""Landmark Explorer contract models.

Shared by the capability client, the tour state machine and the API layer.
Additive changes only; the API response shapes are consumed by the web client.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# === Enumerations ===


class PipelineStage(IntEnum):
    """Pipeline stages, ordered by position so ``stage <= other`` compares progress."""

    IDLE = 0
    IDENTIFYING = 1
    FETCHING_HISTORY = 2
    GENERATING_SPEECH = 3
    DONE = 4
    ERROR = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def is_busy(self) -> bool:
        return self in BUSY_STAGES


BUSY_STAGES = frozenset(
    {
        PipelineStage.IDENTIFYING,
        PipelineStage.FETCHING_HISTORY,
        PipelineStage.GENERATING_SPEECH,
    }
)


class AudienceLevel(StrEnum):
    CHILD = "child"
    TEEN = "teen"
    ADULT = "adult"
    EXPERT = "expert"


class ArtStyle(StrEnum):
    VAN_GOGH = "van_gogh"
    WATERCOLOR = "watercolor"
    CYBERPUNK = "cyberpunk"
    SKETCH = "sketch"


CertificateFormat = Literal["png", "jpeg"]


# === Tour Data ===


class LandmarkInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    city: str = Field(min_length=1)
    country: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class GroundingSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    uri: str = Field(min_length=1)
    title: str = Field(min_length=1)


class Narration(BaseModel):
    text: str
    sources: list[GroundingSource] = []


class ImagePayload(BaseModel):
    data: str = Field(repr=False)  # base64
    mime_type: str = "image/png"


class TourStop(BaseModel):
    """One completed stop. Only built after identify, narrate and speak all succeed."""

    model_config = ConfigDict(frozen=True)

    landmark: LandmarkInfo
    image_ref: str
    image_data: bytes = Field(repr=False)
    image_mime_type: str
    history: str
    sources: list[GroundingSource] = []
    audio: str = Field(repr=False)  # base64 raw PCM
    audience_level: AudienceLevel = AudienceLevel.ADULT


class ChatMessage(BaseModel):
    role: Literal["user", "model"]
    content: str


class StageError(BaseModel):
    failed_stage: PipelineStage
    kind: str
    message: str
    retryable: bool
    help_links: list[str] = []


# === Tour State (returned by query) ===


class TourStopView(BaseModel):
    """Stop as exposed to the client: media referenced, not inlined."""

    landmark: LandmarkInfo
    image_url: str
    history: str
    sources: list[GroundingSource] = []
    has_audio: bool
    audience_level: AudienceLevel


class TourState(BaseModel):
    stage: str
    attempt_id: int
    busy_message: str | None = None
    image_url: str | None = None
    landmark: LandmarkInfo | None = None
    current_stop: TourStopView | None = None
    error: StageError | None = None
    ledger: list[LandmarkInfo] = []
    tour_ended: bool = False
    has_credential: bool = False


# === API Request/Response Models ===


class CredentialRequest(BaseModel):
    api_key: str = Field(min_length=1)


class CredentialStatus(BaseModel):
    has_credential: bool


class SubmitPhotoResponse(BaseModel):
    attempt_id: int
    image_url: str


class ChatRequest(BaseModel):
    question: str


class ChatResponse(BaseModel):
    messages: list[ChatMessage] = []
    error: str | None = None
    can_retry: bool = False


class FunFactResponse(BaseModel):
    fact: str | None = None
    error: str | None = None


class ArtworkRequest(BaseModel):
    style: ArtStyle


class ArtworkResponse(BaseModel):
    style: ArtStyle | None = None
    image_base64: str | None = None
    mime_type: str = "image/png"
    error: str | None = None


class MapEmbedResponse(BaseModel):
    name: str
    latitude: float
    longitude: float
    embed_url: str


class CertificateRequest(BaseModel):
    explorer_name: str
    format: CertificateFormat = "png"


class AudioStatus(BaseModel):
    playing: bool
    duration_seconds: float


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool
    detail: str | None = None
