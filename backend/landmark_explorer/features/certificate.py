"""Printable completion certificate for the finished tour."""

from __future__ import annotations

import io
from datetime import date

import structlog
from PIL import Image, ImageDraw, ImageFont

from landmark_explorer.capabilities.client import EMOJI_PLACEHOLDER
from landmark_explorer.errors import CapabilityError, ValidationError
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.messages import t
from landmark_explorer.models.contracts import CertificateFormat, LandmarkInfo

logger = structlog.get_logger()

WIDTH = 800
HEIGHT = 600
MAX_LISTED = 5
LINE_HEIGHT = 30

BACKGROUND = "#fef2f2"
BORDER = "#991b1b"
TITLE_COLOR = "#7f1d1d"
SUBTITLE_COLOR = "#b91c1c"
DIVIDER_COLOR = "#fca5a5"
TEXT_COLOR = "#374151"
LIST_FILL = (255, 228, 230, 77)

_SAVE_FORMATS = {"png": "PNG", "jpeg": "JPEG"}

_FONT_PATHS = {
    False: [
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
        "/System/Library/Fonts/AppleSDGothicNeo.ttc",
    ],
    True: [
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Bold.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
        "/System/Library/Fonts/AppleSDGothicNeo.ttc",
    ],
}


def _load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a system font, falling back to Pillow's bundled one."""
    for path in _FONT_PATHS[bold]:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def certificate_file_name(explorer_name: str, fmt: CertificateFormat) -> str:
    return f"landmark-certificate-{explorer_name.strip()}.{fmt}"


class Certificate:
    def __init__(self, ctx: WidgetContext, landmarks: list[LandmarkInfo]) -> None:
        self._ctx = ctx
        self.landmarks = list(landmarks)
        self.emojis: list[str] = [EMOJI_PLACEHOLDER] * len(self.landmarks)

    async def fetch_emojis(self) -> list[str]:
        """One emoji per landmark; any failure leaves the placeholder glyph."""
        if not self.landmarks:
            self.emojis = []
            return self.emojis
        names = [landmark.name for landmark in self.landmarks]
        try:
            self.emojis = await self._ctx.capabilities.emoji_tags(self._ctx.credential(), names)
        except (CapabilityError, ValidationError) as exc:
            logger.warning("emoji_fetch_failed", error=str(exc), landmarks=len(names))
            self.emojis = [EMOJI_PLACEHOLDER] * len(names)
        return self.emojis

    def lines(self) -> list[str]:
        listed = []
        for i, landmark in enumerate(self.landmarks[:MAX_LISTED]):
            emoji = self.emojis[i] if i < len(self.emojis) and self.emojis[i] else EMOJI_PLACEHOLDER
            listed.append(f"{emoji} {landmark.name} ({landmark.city})")
        if len(self.landmarks) > MAX_LISTED:
            listed.append(t("certificate.more", count=len(self.landmarks) - MAX_LISTED))
        return listed

    def render(
        self, explorer_name: str, fmt: CertificateFormat = "png", today: date | None = None
    ) -> bytes:
        explorer_name = (explorer_name or "").strip()
        if not explorer_name:
            raise ValidationError(t("validation.explorer_name_required"))
        if fmt not in _SAVE_FORMATS:
            raise ValidationError(f"Unsupported certificate format: {fmt}")
        today = today or date.today()

        image = Image.new("RGBA", (WIDTH, HEIGHT), BACKGROUND)
        overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
        list_height = min(len(self.landmarks) * LINE_HEIGHT + 20, 180)
        ImageDraw.Draw(overlay).rectangle(
            [(100, 300), (WIDTH - 100, 300 + list_height)], fill=LIST_FILL
        )
        image = Image.alpha_composite(image, overlay)

        draw = ImageDraw.Draw(image)
        draw.rectangle([(20, 20), (WIDTH - 20, HEIGHT - 20)], outline=BORDER, width=8)

        center = WIDTH // 2
        draw.text((center, 80), t("certificate.title"), fill=TITLE_COLOR,
                  font=_load_font(36, bold=True), anchor="ms")
        draw.text((center, 110), t("certificate.subtitle"), fill=SUBTITLE_COLOR,
                  font=_load_font(20), anchor="ms")
        draw.rectangle([(center - 48, 130), (center + 48, 134)], fill=DIVIDER_COLOR)
        draw.text((center, 180), t("certificate.explorer", name=explorer_name),
                  fill=TEXT_COLOR, font=_load_font(24, bold=True), anchor="ms")

        body_font = _load_font(16)
        for y, key in ((220, "certificate.body_1"), (245, "certificate.body_2"),
                       (270, "certificate.body_3")):
            draw.text((center, y), t(key), fill=TEXT_COLOR, font=body_font, anchor="ms")
        for i, line in enumerate(self.lines()):
            draw.text((center, 325 + i * LINE_HEIGHT), line, fill=TEXT_COLOR,
                      font=body_font, anchor="ms")

        date_text = t("certificate.date", year=today.year, month=today.month, day=today.day)
        draw.text((center, HEIGHT - 80), date_text, fill=TEXT_COLOR,
                  font=_load_font(18), anchor="ms")
        draw.text((center, HEIGHT - 50), t("certificate.signature"), fill=TITLE_COLOR,
                  font=_load_font(24, bold=True), anchor="ms")

        buf = io.BytesIO()
        image.convert("RGB").save(buf, format=_SAVE_FORMATS[fmt], quality=95)
        logger.info("certificate_rendered", format=fmt, landmarks=len(self.landmarks))
        return buf.getvalue()
