from __future__ import annotations

import asyncio

from landmark_explorer.audio.player import AudioPlayer
from landmark_explorer.config import settings
from landmark_explorer.errors import TourStateError
from landmark_explorer.features.artwork import ArtworkGenerator
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.features.fun_fact import FunFactWidget
from landmark_explorer.features.qa_chat import QAChat
from landmark_explorer.models.contracts import TourStop


class ResultView:
    """Widgets attached to the stop currently on screen.

    A new view is built every time the displayed stop changes, so chat
    transcripts, facts and artwork never leak from one stop to another.
    """

    def __init__(self, stop: TourStop, ctx: WidgetContext) -> None:
        self.stop = stop
        self.fun_fact = FunFactWidget(ctx, stop.landmark.name, stop.audience_level)
        self.chat = QAChat(ctx, stop.landmark.name, stop.history, stop.audience_level)
        self.artwork = ArtworkGenerator(ctx, stop.image_data, stop.image_mime_type)
        self._player: AudioPlayer | None = None
        self._player_lock = asyncio.Lock()
        self._closed = False

    async def audio_player(self) -> AudioPlayer:
        """Decode the narration on first use; ResourceError propagates to the caller.

        Concurrent callers share one player. A player loaded after the view
        was closed is discarded.
        """
        async with self._player_lock:
            if self._player is None:
                player = await AudioPlayer.load(
                    self.stop.audio, settings.audio_sample_rate, settings.audio_channels
                )
                if self._closed:
                    raise TourStateError("The stop is no longer on display")
                self._player = player
            return self._player

    def close(self) -> None:
        self._closed = True
        if self._player is not None:
            self._player.stop()
