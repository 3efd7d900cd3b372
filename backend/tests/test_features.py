"""Tests for the secondary widgets, certificate rendering and text helpers."""

import io
from datetime import date

import pytest
from conftest import COLOSSEUM, EIFFEL, make_png
from PIL import Image

from landmark_explorer.capabilities.client import EMOJI_PLACEHOLDER
from landmark_explorer.capabilities.prompts import (
    NEUTRAL_AUDIENCE_INSTRUCTION,
    art_style_prompt,
    audience_instruction,
    narrate_prompt,
)
from landmark_explorer.errors import (
    CapabilityError,
    CapabilityErrorKind,
    TourStateError,
    ValidationError,
)
from landmark_explorer.features.artwork import ArtworkGenerator
from landmark_explorer.features.certificate import Certificate, certificate_file_name
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.features.fun_fact import FunFactWidget
from landmark_explorer.features.qa_chat import QAChat
from landmark_explorer.models.contracts import ArtStyle, AudienceLevel
from landmark_explorer.utils.map_embed import map_embed, map_embed_url
from landmark_explorer.utils.text import sanitize_text


@pytest.fixture
def ctx(capabilities, credentials):
    return WidgetContext(
        capabilities=capabilities,
        get_credential=credentials.get,
        on_invalid_credential=credentials.clear,
    )


class TestFunFact:
    @pytest.mark.asyncio
    async def test_fetch(self, ctx):
        widget = FunFactWidget(ctx, "Eiffel Tower", AudienceLevel.CHILD)
        result = await widget.fetch()
        assert result.fact == "The tower grows in summer heat."
        assert result.error is None
        assert widget.loading is False

    @pytest.mark.asyncio
    async def test_failure_then_retry(self, ctx, capabilities):
        capabilities.fun_fact.side_effect = [
            CapabilityError(CapabilityErrorKind.TRANSIENT),
            "Painted every seven years.",
        ]
        widget = FunFactWidget(ctx, "Eiffel Tower", "adult")

        failed = await widget.fetch()
        assert failed.fact is None
        assert failed.error

        retried = await widget.retry()
        assert retried.fact == "Painted every seven years."
        assert retried.error is None

    @pytest.mark.asyncio
    async def test_invalid_credential_clears_storage(self, ctx, capabilities, credentials):
        capabilities.fun_fact.side_effect = CapabilityError(CapabilityErrorKind.INVALID_CREDENTIAL)
        widget = FunFactWidget(ctx, "Eiffel Tower", "adult")

        result = await widget.fetch()

        assert result.error
        assert credentials.get() is None

    @pytest.mark.asyncio
    async def test_requires_credential(self, ctx, credentials, capabilities):
        credentials.clear()
        with pytest.raises(ValidationError):
            await FunFactWidget(ctx, "Eiffel Tower", "adult").fetch()
        capabilities.fun_fact.assert_not_awaited()


class TestQAChat:
    @pytest.mark.asyncio
    async def test_ask_appends_both_turns(self, ctx, capabilities):
        chat = QAChat(ctx, "Eiffel Tower", "History.", "teen")

        result = await chat.ask("  How long did it take?  ")

        assert [(m.role, m.content) for m in result.messages] == [
            ("user", "How long did it take?"),
            ("model", "It took about two years to build."),
        ]
        capabilities.answer.assert_awaited_once()
        assert capabilities.answer.await_args.args[1:] == (
            "Eiffel Tower",
            "History.",
            "How long did it take?",
            "teen",
        )

    @pytest.mark.asyncio
    async def test_blank_question_rejected(self, ctx, capabilities):
        chat = QAChat(ctx, "Eiffel Tower", "History.", "teen")
        with pytest.raises(ValidationError):
            await chat.ask("   ")
        capabilities.answer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_withdraws_question_and_allows_resend(self, ctx, capabilities):
        chat = QAChat(ctx, "Eiffel Tower", "History.", "teen")
        await chat.ask("First?")
        capabilities.answer.side_effect = [
            CapabilityError(CapabilityErrorKind.TRANSIENT),
            "Second answer.",
        ]

        failed = await chat.ask("Second?")
        assert len(failed.messages) == 2
        assert failed.error
        assert failed.can_retry is True

        resent = await chat.retry_last()
        assert [m.content for m in resent.messages][-2:] == ["Second?", "Second answer."]
        assert resent.error is None
        assert resent.can_retry is False

    @pytest.mark.asyncio
    async def test_retry_without_failure(self, ctx):
        with pytest.raises(TourStateError):
            await QAChat(ctx, "Eiffel Tower", "History.", "teen").retry_last()

    @pytest.mark.asyncio
    async def test_messages_are_a_copy(self, ctx):
        chat = QAChat(ctx, "Eiffel Tower", "History.", "teen")
        await chat.ask("Hi?")
        chat.messages.clear()
        assert len(chat.messages) == 2


class TestArtwork:
    @pytest.mark.asyncio
    async def test_generate_uses_style_prompt(self, ctx, capabilities):
        photo = make_png()
        artwork = ArtworkGenerator(ctx, photo, "image/png")

        result = await artwork.generate("watercolor")

        assert result.style is ArtStyle.WATERCOLOR
        assert result.image_base64
        capabilities.illustrate.assert_awaited_once()
        args = capabilities.illustrate.await_args.args
        assert args[1:] == (photo, "image/png", art_style_prompt(ArtStyle.WATERCOLOR))

    @pytest.mark.asyncio
    async def test_unknown_style(self, ctx):
        with pytest.raises(ValueError):
            await ArtworkGenerator(ctx, make_png(), "image/png").generate("pointillism")

    @pytest.mark.asyncio
    async def test_retry_uses_last_style(self, ctx, capabilities):
        capabilities.illustrate.side_effect = [
            CapabilityError(CapabilityErrorKind.NO_IMAGE_PRODUCED),
            capabilities.illustrate.return_value,
        ]
        artwork = ArtworkGenerator(ctx, make_png(), "image/png")

        failed = await artwork.generate(ArtStyle.CYBERPUNK)
        assert failed.image_base64 is None
        assert failed.error

        retried = await artwork.retry()
        assert retried.style is ArtStyle.CYBERPUNK
        assert retried.image_base64

    @pytest.mark.asyncio
    async def test_retry_before_generate(self, ctx):
        with pytest.raises(TourStateError):
            await ArtworkGenerator(ctx, make_png(), "image/png").retry()


class TestCertificate:
    @pytest.mark.asyncio
    async def test_emojis_fetched(self, ctx):
        certificate = Certificate(ctx, [EIFFEL, COLOSSEUM])
        assert await certificate.fetch_emojis() == ["🗼", "🗼"]

    @pytest.mark.asyncio
    async def test_emoji_failure_falls_back(self, ctx, capabilities):
        capabilities.emoji_tags.side_effect = CapabilityError(CapabilityErrorKind.TRANSIENT)
        certificate = Certificate(ctx, [EIFFEL, COLOSSEUM])
        assert await certificate.fetch_emojis() == [EMOJI_PLACEHOLDER, EMOJI_PLACEHOLDER]

    @pytest.mark.asyncio
    async def test_no_landmarks_skips_emoji_call(self, ctx, capabilities):
        assert await Certificate(ctx, []).fetch_emojis() == []
        capabilities.emoji_tags.assert_not_awaited()

    def test_lines_limit_to_five(self, ctx):
        landmarks = [EIFFEL.model_copy(update={"name": f"Stop {i}"}) for i in range(7)]
        lines = Certificate(ctx, landmarks).lines()

        assert len(lines) == 6
        assert lines[0] == f"{EMOJI_PLACEHOLDER} Stop 0 (Paris)"
        assert lines[-1] == "... and 2 more"

    @pytest.mark.parametrize("fmt,pil_format", [("png", "PNG"), ("jpeg", "JPEG")])
    def test_render(self, ctx, fmt, pil_format):
        data = Certificate(ctx, [EIFFEL, COLOSSEUM]).render("Alex", fmt, today=date(2025, 5, 1))

        with Image.open(io.BytesIO(data)) as image:
            assert image.format == pil_format
            assert image.size == (800, 600)

    def test_render_requires_name(self, ctx):
        with pytest.raises(ValidationError):
            Certificate(ctx, [EIFFEL]).render("  ")

    def test_file_name(self):
        assert certificate_file_name("Alex", "jpeg") == "landmark-certificate-Alex.jpeg"


class TestMapEmbed:
    def test_url(self):
        assert map_embed_url(48.8584, 2.2945) == (
            "https://maps.google.com/maps?q=48.8584,2.2945&t=&z=14&ie=UTF8&iwloc=&output=embed"
        )

    def test_from_landmark(self):
        embed = map_embed(COLOSSEUM)
        assert embed.name == "Colosseum"
        assert "q=41.8902,12.4922" in embed.embed_url


class TestPrompts:
    @pytest.mark.parametrize("level", [None, "", "toddler"])
    def test_unknown_audience_is_neutral(self, level):
        assert audience_instruction(level) == NEUTRAL_AUDIENCE_INSTRUCTION

    def test_each_level_has_its_own_phrasing(self):
        phrasings = {audience_instruction(level) for level in AudienceLevel}
        assert len(phrasings) == len(AudienceLevel)
        assert NEUTRAL_AUDIENCE_INSTRUCTION not in phrasings

    def test_narrate_prompt_mentions_landmark_and_audience(self):
        prompt = narrate_prompt("Eiffel Tower", "expert")
        assert "Eiffel Tower" in prompt
        assert audience_instruction("expert") in prompt

    def test_every_style_has_prompt(self):
        assert all(art_style_prompt(style) for style in ArtStyle)


class TestSanitizeText:
    @pytest.mark.parametrize(
        "raw,clean",
        [
            ("**bold** and *italic*", "bold and italic"),
            ("`code`", "code"),
            ("__under__ and ~~strike~~", "under and strike"),
            ("snake_case stays", "snake_case stays"),
            ("***", ""),
            ("  padded  ", "padded"),
        ],
    )
    def test_strips_emphasis(self, raw, clean):
        assert sanitize_text(raw) == clean

    @pytest.mark.parametrize("raw", ["_**_x_**_", "*_*_*", "~*~ a ~*~", "plain"])
    def test_idempotent(self, raw):
        once = sanitize_text(raw)
        assert sanitize_text(once) == once
