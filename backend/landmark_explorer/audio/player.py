"""Start/stop narration playback.

Playback is delegated to a PlaybackSink. The server has no speakers, so the
default ClockSink only keeps time on the event loop (the browser plays the WAV
itself); tests and desktop builds can plug in other sinks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

import structlog

from landmark_explorer.audio.pcm import PcmBuffer, decode_payload

logger = structlog.get_logger()


class PlaybackHandle(Protocol):
    def stop(self) -> None: ...


class PlaybackSink(Protocol):
    def start(self, buffer: PcmBuffer, on_ended: Callable[[], None]) -> PlaybackHandle: ...


class _ClockHandle:
    def __init__(self, timer: asyncio.TimerHandle) -> None:
        self._timer = timer

    def stop(self) -> None:
        self._timer.cancel()


class ClockSink:
    """Fires ``on_ended`` after the buffer's duration on the running loop."""

    def start(self, buffer: PcmBuffer, on_ended: Callable[[], None]) -> PlaybackHandle:
        loop = asyncio.get_running_loop()
        return _ClockHandle(loop.call_later(buffer.duration_seconds, on_ended))


class AudioPlayer:
    """One decoded narration and at most one live playback of it."""

    def __init__(self, buffer: PcmBuffer, sink: PlaybackSink | None = None) -> None:
        self.buffer = buffer
        self._sink = sink or ClockSink()
        self._handle: PlaybackHandle | None = None
        self._generation = 0

    @classmethod
    async def load(
        cls,
        payload: str,
        sample_rate: int,
        channel_count: int,
        sink: PlaybackSink | None = None,
    ) -> AudioPlayer:
        """Decode off the event loop; raises ResourceError subclasses on bad audio."""
        buffer = await asyncio.to_thread(decode_payload, payload, sample_rate, channel_count)
        return cls(buffer, sink)

    @property
    def is_playing(self) -> bool:
        return self._handle is not None

    def play(self) -> None:
        if self._handle is not None:
            self.stop()
        self._generation += 1
        generation = self._generation
        self._handle = self._sink.start(self.buffer, lambda: self._on_ended(generation))
        logger.debug("audio_playback_started", duration=round(self.buffer.duration_seconds, 2))

    def stop(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.stop()
            logger.debug("audio_playback_stopped")

    def _on_ended(self, generation: int) -> None:
        # A late callback from a playback that was already replaced is ignored.
        if generation == self._generation:
            self._handle = None
