from __future__ import annotations

import structlog

from landmark_explorer.capabilities.prompts import art_style_prompt
from landmark_explorer.errors import CapabilityError, TourStateError
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.models.contracts import ArtStyle, ArtworkResponse, ImagePayload

logger = structlog.get_logger()


class ArtworkGenerator:
    """Restyles the stop's original photo in one of the fixed art styles."""

    def __init__(self, ctx: WidgetContext, image_data: bytes, mime_type: str) -> None:
        self._ctx = ctx
        self._image_data = image_data
        self._mime_type = mime_type
        self.result: ImagePayload | None = None
        self.active_style: ArtStyle | None = None
        self.last_style: ArtStyle | None = None
        self.error: str | None = None
        self.loading = False

    async def generate(self, style: ArtStyle | str) -> ArtworkResponse:
        style = ArtStyle(style)
        credential = self._ctx.credential()
        self.result = None
        self.error = None
        self.loading = True
        self.active_style = style
        self.last_style = style
        try:
            self.result = await self._ctx.capabilities.illustrate(
                credential, self._image_data, self._mime_type, art_style_prompt(style)
            )
        except CapabilityError as exc:
            logger.warning("artwork_failed", style=style.value, kind=exc.kind.value)
            self.error = self._ctx.describe_failure(exc, "widget.artwork_failed")
        finally:
            self.loading = False
        return self.snapshot()

    async def retry(self) -> ArtworkResponse:
        if self.last_style is None:
            raise TourStateError("No artwork style has been tried yet")
        return await self.generate(self.last_style)

    def snapshot(self) -> ArtworkResponse:
        return ArtworkResponse(
            style=self.active_style,
            image_base64=self.result.data if self.result else None,
            mime_type=self.result.mime_type if self.result else "image/png",
            error=self.error,
        )
