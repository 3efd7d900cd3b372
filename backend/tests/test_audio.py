"""Tests for narration audio decoding and playback control."""

import asyncio
import base64
import io
import wave

import numpy as np
import pytest
from conftest import EIFFEL, make_audio, make_stop

from landmark_explorer.audio.pcm import decode, decode_audio_data, decode_payload
from landmark_explorer.audio.player import AudioPlayer
from landmark_explorer.errors import (
    MalformedPayload,
    ResourceError,
    TourStateError,
    UnsupportedAudioFormat,
)


class _RecordingSink:
    """PlaybackSink that never ends on its own; tests end playback explicitly."""

    def __init__(self):
        self.started = 0
        self.stopped = 0
        self.on_ended = []

    def start(self, buffer, on_ended):
        self.started += 1
        self.on_ended.append(on_ended)
        sink = self

        class _Handle:
            def stop(self):
                sink.stopped += 1

        return _Handle()


class TestDecode:
    def test_valid_base64(self):
        assert decode(base64.b64encode(b"\x01\x02").decode()) == b"\x01\x02"

    def test_line_wrapped_base64(self):
        encoded = base64.b64encode(b"\x00" * 64).decode()
        wrapped = "\n".join(encoded[i : i + 20] for i in range(0, len(encoded), 20))
        assert decode(wrapped) == b"\x00" * 64

    @pytest.mark.parametrize("payload", ["", "   ", "not base64!!", "QUJD=", "QUJ", "QUJDRA="])
    def test_malformed_payload(self, payload):
        with pytest.raises(MalformedPayload):
            decode(payload)

    def test_malformed_payload_is_resource_error(self):
        with pytest.raises(ResourceError):
            decode("@@@")


class TestDecodeAudioData:
    def test_normalizes_int16(self):
        raw = np.array([0, 16384, -32768, 32767], dtype="<i2").tobytes()
        buffer = decode_audio_data(raw, 24000, 1)

        assert buffer.samples.dtype == np.float32
        assert buffer.samples.shape == (4, 1)
        assert buffer.samples[:, 0].tolist() == pytest.approx([0.0, 0.5, -1.0, 32767 / 32768])
        assert np.all(buffer.samples >= -1.0) and np.all(buffer.samples < 1.0)

    def test_interleaved_stereo(self):
        raw = np.array([100, -100, 200, -200], dtype="<i2").tobytes()
        buffer = decode_audio_data(raw, 24000, 2)

        assert buffer.samples.shape == (2, 2)
        assert buffer.samples[1, 1] == pytest.approx(-200 / 32768)

    def test_duration(self):
        buffer = decode_audio_data(b"\x00\x00" * 24000, 24000, 1)
        assert buffer.duration_seconds == pytest.approx(1.0)

    def test_partial_frame_rejected(self):
        with pytest.raises(UnsupportedAudioFormat):
            decode_audio_data(b"\x00\x00\x00", 24000, 1)

    def test_partial_stereo_frame_rejected(self):
        with pytest.raises(UnsupportedAudioFormat):
            decode_audio_data(b"\x00" * 6, 24000, 2)

    @pytest.mark.parametrize("rate,channels,width", [(0, 1, 2), (24000, 0, 2), (24000, 1, 3)])
    def test_invalid_parameters(self, rate, channels, width):
        with pytest.raises(UnsupportedAudioFormat):
            decode_audio_data(b"\x00" * 12, rate, channels, width)

    def test_decoding_is_deterministic(self):
        payload = make_audio(480)
        first = decode_payload(payload, 24000, 1)
        second = decode_payload(payload, 24000, 1)

        assert first.samples.tobytes() == second.samples.tobytes()
        assert first.raw == second.raw

    def test_wav_export(self):
        buffer = decode_payload(make_audio(2400), 24000, 1)

        with wave.open(io.BytesIO(buffer.to_wav_bytes()), "rb") as wav:
            assert wav.getframerate() == 24000
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getnframes() == 2400


class TestAudioPlayer:
    @pytest.mark.asyncio
    async def test_load_and_play(self):
        sink = _RecordingSink()
        player = await AudioPlayer.load(make_audio(), 24000, 1, sink)

        player.play()

        assert player.is_playing
        assert sink.started == 1

    @pytest.mark.asyncio
    async def test_load_bad_payload(self):
        with pytest.raises(MalformedPayload):
            await AudioPlayer.load("%%%", 24000, 1, _RecordingSink())

    @pytest.mark.asyncio
    async def test_play_stops_previous_playback(self):
        sink = _RecordingSink()
        player = await AudioPlayer.load(make_audio(), 24000, 1, sink)

        player.play()
        player.play()

        assert sink.started == 2
        assert sink.stopped == 1
        assert player.is_playing

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        sink = _RecordingSink()
        player = await AudioPlayer.load(make_audio(), 24000, 1, sink)

        player.play()
        player.stop()
        assert not player.is_playing
        assert sink.stopped == 1
        player.stop()
        assert sink.stopped == 1

    @pytest.mark.asyncio
    async def test_late_end_of_replaced_playback_is_ignored(self):
        sink = _RecordingSink()
        player = await AudioPlayer.load(make_audio(), 24000, 1, sink)

        player.play()
        player.play()
        sink.on_ended[0]()

        assert player.is_playing
        sink.on_ended[1]()
        assert not player.is_playing

    @pytest.mark.asyncio
    async def test_clock_sink_ends_playback(self):
        player = await AudioPlayer.load(make_audio(240), 24000, 1)

        player.play()
        assert player.is_playing
        await asyncio.sleep(0.05)

        assert not player.is_playing


class TestNarrationPlayerPerStop:
    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_player(self, session):
        view = session.show(make_stop(EIFFEL))

        first, second = await asyncio.gather(view.audio_player(), view.audio_player())
        first.play()
        second.play()

        assert first is second
        session.close_view()
        assert not first.is_playing

    @pytest.mark.asyncio
    async def test_view_closed_while_loading(self, session):
        view = session.show(make_stop(EIFFEL))

        loading = asyncio.create_task(view.audio_player())
        await asyncio.sleep(0)
        session.close_view()

        with pytest.raises(TourStateError):
            await loading
