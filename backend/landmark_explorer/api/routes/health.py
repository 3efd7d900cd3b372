"""Health check endpoint.

Always returns 200; it reports configuration, not Gemini reachability, since
probing Gemini would need the user's key.
"""

from __future__ import annotations

from fastapi import APIRouter

from landmark_explorer.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "mock_capabilities": settings.use_mock_capabilities,
        "models": {
            "text": settings.gemini_text_model,
            "tts": settings.gemini_tts_model,
            "image": settings.gemini_image_model,
        },
    }
