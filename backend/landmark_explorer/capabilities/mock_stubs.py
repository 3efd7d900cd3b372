"""Canned capability responses for local UI work without a Gemini key.

Enabled with USE_MOCK_CAPABILITIES=true. Output is deterministic: the same
photo always resolves to the same landmark, and narration audio is a short
generated tone in the same raw PCM format the TTS model returns.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import io

import numpy as np
from PIL import Image, ImageOps

from landmark_explorer.capabilities.prompts import audience_instruction
from landmark_explorer.config import settings
from landmark_explorer.models.contracts import (
    AudienceLevel,
    GroundingSource,
    ImagePayload,
    LandmarkInfo,
    Narration,
)

_MOCK_LANDMARKS = [
    LandmarkInfo(name="Eiffel Tower", city="Paris", country="France", latitude=48.8584, longitude=2.2945),
    LandmarkInfo(name="Colosseum", city="Rome", country="Italy", latitude=41.8902, longitude=12.4922),
    LandmarkInfo(name="Gyeongbokgung", city="Seoul", country="South Korea", latitude=37.5796, longitude=126.977),
    LandmarkInfo(name="Statue of Liberty", city="New York", country="United States", latitude=40.6892, longitude=-74.0445),
]

_MOCK_EMOJIS = {"Eiffel Tower": "🗼", "Colosseum": "🏛️", "Gyeongbokgung": "🏯", "Statue of Liberty": "🗽"}

# Simulated latency so busy indicators are visible in the UI.
MOCK_DELAY: float = 0.5


def _tone_pcm(seconds: float = 1.0, frequency: float = 440.0) -> bytes:
    rate = settings.audio_sample_rate
    t = np.arange(int(rate * seconds), dtype=np.float32) / rate
    wave = 0.2 * np.sin(2 * np.pi * frequency * t)
    return (wave * 32767).astype("<i2").tobytes()


class MockCapabilityClient:
    async def identify(self, credential: str, image_data: bytes, mime_type: str) -> LandmarkInfo:
        await asyncio.sleep(MOCK_DELAY)
        index = hashlib.sha256(image_data).digest()[0] % len(_MOCK_LANDMARKS)
        return _MOCK_LANDMARKS[index]

    async def narrate(
        self, credential: str, landmark_name: str, audience_level: AudienceLevel | str
    ) -> Narration:
        await asyncio.sleep(MOCK_DELAY)
        return Narration(
            text=(
                f"{landmark_name} is one of the most visited landmarks in the world. "
                f"(Mock narration. {audience_instruction(audience_level)})"
            ),
            sources=[GroundingSource(uri="https://example.com/history", title="Example history")],
        )

    async def speak(self, credential: str, text: str) -> str:
        await asyncio.sleep(MOCK_DELAY)
        return base64.b64encode(_tone_pcm()).decode("ascii")

    async def answer(
        self,
        credential: str,
        landmark_name: str,
        known_history: str,
        question: str,
        audience_level: AudienceLevel | str,
    ) -> str:
        await asyncio.sleep(MOCK_DELAY)
        return f"Good question about {landmark_name}! (Mock answer to: {question})"

    async def illustrate(
        self, credential: str, image_data: bytes, mime_type: str, style_prompt: str
    ) -> ImagePayload:
        await asyncio.sleep(MOCK_DELAY)
        image = Image.open(io.BytesIO(image_data)).convert("RGB")
        styled = ImageOps.posterize(image, 3)
        buf = io.BytesIO()
        styled.save(buf, format="PNG")
        return ImagePayload(data=base64.b64encode(buf.getvalue()).decode("ascii"))

    async def fun_fact(
        self, credential: str, landmark_name: str, audience_level: AudienceLevel | str
    ) -> str:
        await asyncio.sleep(MOCK_DELAY)
        return f"{landmark_name} has a secret room most visitors never see. (Mock fact)"

    async def emoji_tags(self, credential: str, landmark_names: list[str]) -> list[str]:
        await asyncio.sleep(MOCK_DELAY)
        return [_MOCK_EMOJIS.get(name, "📍") for name in landmark_names]
