"""Shared fixtures: scripted capabilities, an isolated session and an HTTP client."""

import base64
import io
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from landmark_explorer.main import create_app
from landmark_explorer.models.contracts import (
    AudienceLevel,
    GroundingSource,
    ImagePayload,
    LandmarkInfo,
    Narration,
    TourStop,
)
from landmark_explorer.tour.credentials import CredentialStore
from landmark_explorer.tour.session import TourSession
from landmark_explorer.workflows.tour_stop import TourStepMachine

TEST_KEY = "test-gemini-key-1234"

EIFFEL = LandmarkInfo(
    name="Eiffel Tower", city="Paris", country="France", latitude=48.8584, longitude=2.2945
)
COLOSSEUM = LandmarkInfo(
    name="Colosseum", city="Rome", country="Italy", latitude=41.8902, longitude=12.4922
)

HISTORY = "Built for the 1889 World's Fair, the tower was once the tallest structure on Earth."
SOURCES = [GroundingSource(uri="https://example.com/eiffel", title="Eiffel history")]


def make_png(color: str = "red", size: tuple[int, int] = (8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_audio(frames: int = 2400) -> str:
    """Base64 16-bit mono PCM (0.1 s at 24 kHz)."""
    pcm = (np.linspace(-0.5, 0.5, frames) * 32767).astype("<i2").tobytes()
    return base64.b64encode(pcm).decode("ascii")


def make_stop(landmark: LandmarkInfo, image_ref: str = "ref") -> TourStop:
    return TourStop(
        landmark=landmark,
        image_ref=image_ref,
        image_data=make_png(),
        image_mime_type="image/png",
        history=f"History of {landmark.name}.",
        sources=SOURCES,
        audio=make_audio(),
        audience_level=AudienceLevel.ADULT,
    )


@pytest.fixture
def capabilities():
    """CapabilityClient double; every operation succeeds unless a test overrides it."""
    caps = MagicMock()
    caps.identify = AsyncMock(return_value=EIFFEL)
    caps.narrate = AsyncMock(return_value=Narration(text=HISTORY, sources=SOURCES))
    caps.speak = AsyncMock(return_value=make_audio())
    caps.answer = AsyncMock(return_value="It took about two years to build.")
    caps.illustrate = AsyncMock(
        return_value=ImagePayload(data=base64.b64encode(make_png("blue")).decode("ascii"))
    )
    caps.fun_fact = AsyncMock(return_value="The tower grows in summer heat.")
    caps.emoji_tags = AsyncMock(side_effect=lambda _cred, names: ["🗼"] * len(names))
    return caps


@pytest.fixture
def credentials(tmp_path):
    store = CredentialStore(tmp_path / "local_storage.json")
    store.set(TEST_KEY)
    return store


@pytest.fixture
def session(capabilities, credentials):
    return TourSession(capabilities, credentials=credentials)


@pytest.fixture
def machine(session):
    return TourStepMachine(session)


@pytest.fixture
def app(session):
    return create_app(session)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
