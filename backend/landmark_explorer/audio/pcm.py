"""Narration audio decoding.

The TTS model returns headerless little-endian PCM, base64-encoded. These
helpers turn that payload into normalized float samples for playback and into
a WAV container the browser's <audio> element can play directly.
"""

from __future__ import annotations

import base64
import binascii
import io
import wave
from dataclasses import dataclass, field

import numpy as np

from landmark_explorer.errors import MalformedPayload, UnsupportedAudioFormat

# sample width in bytes -> (numpy dtype, offset, full-scale divisor)
_SAMPLE_FORMATS: dict[int, tuple[str, float, float]] = {
    1: ("u1", 128.0, 128.0),  # 8-bit PCM is unsigned
    2: ("<i2", 0.0, 32768.0),
    4: ("<i4", 0.0, 2147483648.0),
}


@dataclass(frozen=True)
class PcmBuffer:
    """Decoded audio: float32 samples shaped (frames, channels) in [-1.0, 1.0)."""

    samples: np.ndarray = field(repr=False)
    sample_rate: int
    channel_count: int
    sample_width: int
    raw: bytes = field(repr=False)

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate

    def to_wav_bytes(self) -> bytes:
        """Wrap the original PCM bytes in a RIFF/WAV header."""
        with io.BytesIO() as buffer:
            with wave.open(buffer, "wb") as wave_file:
                wave_file.setnchannels(self.channel_count)
                wave_file.setsampwidth(self.sample_width)
                wave_file.setframerate(self.sample_rate)
                wave_file.writeframes(self.raw)
            return buffer.getvalue()


def decode(payload: str) -> bytes:
    """Strict base64 -> bytes. Whitespace (line wrapping) is tolerated."""
    if not isinstance(payload, str) or not payload.strip():
        raise MalformedPayload("Audio payload is empty")
    compact = "".join(payload.split())
    if len(compact) % 4:
        raise MalformedPayload("Audio payload is not valid base64: length is not a multiple of 4")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayload(f"Audio payload is not valid base64: {exc}") from exc


def decode_audio_data(
    raw: bytes,
    sample_rate: int,
    channel_count: int,
    sample_width: int = 2,
) -> PcmBuffer:
    """Interpret raw little-endian PCM as normalized float32 frames.

    Multi-channel input is interleaved, frame by frame.
    """
    if sample_width not in _SAMPLE_FORMATS:
        raise UnsupportedAudioFormat(f"Unsupported sample width: {sample_width} bytes")
    if sample_rate <= 0 or channel_count <= 0:
        raise UnsupportedAudioFormat(
            f"Invalid audio parameters: sample_rate={sample_rate}, channels={channel_count}"
        )
    frame_size = sample_width * channel_count
    if len(raw) % frame_size != 0:
        raise UnsupportedAudioFormat(
            f"PCM length {len(raw)} is not a multiple of the frame size {frame_size}"
        )

    dtype, offset, scale = _SAMPLE_FORMATS[sample_width]
    ints = np.frombuffer(raw, dtype=np.dtype(dtype))
    samples = ((ints.astype(np.float32) - offset) / scale).reshape(-1, channel_count)
    return PcmBuffer(
        samples=samples,
        sample_rate=sample_rate,
        channel_count=channel_count,
        sample_width=sample_width,
        raw=bytes(raw),
    )


def decode_payload(payload: str, sample_rate: int, channel_count: int) -> PcmBuffer:
    """decode() followed by decode_audio_data() for 16-bit PCM."""
    return decode_audio_data(decode(payload), sample_rate, channel_count)
