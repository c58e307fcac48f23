"""Decoding and playback of synthesized speech.

The speech endpoint answers with base64-wrapped raw PCM: mono, signed 16-bit
little-endian samples at 24 kHz with no container header. Browsers need a WAV
wrapper to play it through an ``<audio>`` element, and local playback needs
the samples as ``float32`` in ``[-1, 1)``.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import threading
import wave
from typing import Any, Literal, Optional

import numpy as np


LOGGER = logging.getLogger(__name__)

SPEECH_SAMPLE_RATE = 24_000
SAMPLE_WIDTH_BYTES = 2

PlaybackState = Literal["suspended", "running", "closed"]


class AudioDecodeError(ValueError):
    """Raised when a speech payload cannot be decoded."""


class PlaybackUnavailableError(RuntimeError):
    """Raised when no local audio output device can be used."""


def decode_base64_audio(payload: str) -> bytes:
    """Return the raw bytes wrapped in the base64 string *payload*."""

    try:
        return base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as error:
        raise AudioDecodeError(f"Invalid base64 audio payload: {error}") from error


def _whole_samples(pcm: bytes) -> bytes:
    remainder = len(pcm) % SAMPLE_WIDTH_BYTES
    if remainder:
        LOGGER.debug("Dropping %s trailing byte(s) of an incomplete PCM sample", remainder)
        return pcm[: len(pcm) - remainder]
    return pcm


def pcm16_to_float32(pcm: bytes) -> np.ndarray:
    """Convert little-endian 16-bit PCM into ``float32`` samples in ``[-1, 1)``."""

    samples = np.frombuffer(_whole_samples(pcm), dtype="<i2").astype(np.float32)
    samples /= 32_768.0
    return samples


def pcm16_to_wav_bytes(pcm: bytes, sample_rate: int = SPEECH_SAMPLE_RATE) -> bytes:
    """Wrap raw mono PCM in a RIFF/WAV container."""

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(SAMPLE_WIDTH_BYTES)
        handle.setframerate(sample_rate)
        handle.writeframes(_whole_samples(pcm))
    return buffer.getvalue()


def describe_audio_debug_stats(samples: np.ndarray, sample_rate: int) -> str:
    """Return a one-line summary of *samples* for debug logging."""

    audio = np.asarray(samples, dtype=np.float32).reshape(-1)
    frames = int(audio.size)
    duration = float(frames) / float(sample_rate) if sample_rate > 0 else 0.0
    finite = audio[np.isfinite(audio)]
    if finite.size:
        peak = float(np.max(np.abs(finite)))
        rms = float(np.sqrt(np.mean(np.square(finite))))
    else:
        peak = rms = 0.0
    return (
        f"sample_rate={sample_rate}Hz, frames={frames}, duration={duration:.3f}s, "
        f"abs_peak={peak:.4f}, rms={rms:.4f}"
    )


class PlaybackContext:
    """Local audio output that starts suspended until explicitly resumed.

    The output device is only opened on :meth:`resume`, which keeps imports of
    the audio backend out of code paths that never play anything.
    """

    def __init__(self, sample_rate: int = SPEECH_SAMPLE_RATE) -> None:
        self.sample_rate = sample_rate
        self._state: PlaybackState = "suspended"
        self._backend: Any = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    def resume(self) -> None:
        if self._state == "closed":
            raise PlaybackUnavailableError("Playback context has been closed")
        if self._backend is None:
            try:
                import sounddevice
            except (ImportError, OSError) as exc:
                raise PlaybackUnavailableError(
                    "sounddevice is not installed or no PortAudio library was found"
                ) from exc
            self._backend = sounddevice
        self._state = "running"
        LOGGER.debug("Playback context resumed at %s Hz", self.sample_rate)

    def play(self, samples: np.ndarray, *, blocking: bool = False) -> None:
        if self._state != "running":
            raise PlaybackUnavailableError(f"Playback context is {self._state}")
        self._backend.play(samples, samplerate=self.sample_rate, blocking=blocking)

    def close(self) -> None:
        if self._backend is not None and self._state == "running":
            self._backend.stop()
        self._state = "closed"


_CONTEXT_LOCK = threading.Lock()
_AUDIO_CONTEXT: Optional[PlaybackContext] = None


def get_audio_context() -> PlaybackContext:
    """Return the process-wide playback context, creating it on first use."""

    global _AUDIO_CONTEXT
    with _CONTEXT_LOCK:
        if _AUDIO_CONTEXT is None or _AUDIO_CONTEXT.state == "closed":
            _AUDIO_CONTEXT = PlaybackContext(sample_rate=SPEECH_SAMPLE_RATE)
        return _AUDIO_CONTEXT


def play_audio_data(
    base64_audio: str,
    *,
    context: Optional[PlaybackContext] = None,
    blocking: bool = False,
) -> bool:
    """Decode *base64_audio* and start playing it immediately.

    Returns ``False`` and logs the error when anything goes wrong.
    """

    try:
        ctx = context or get_audio_context()
        if ctx.state == "suspended":
            ctx.resume()

        raw_bytes = decode_base64_audio(base64_audio)
        samples = pcm16_to_float32(raw_bytes)
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug("Playing speech: %s", describe_audio_debug_stats(samples, ctx.sample_rate))
        ctx.play(samples, blocking=blocking)
    except Exception:  # noqa: BLE001 - playback is best effort
        LOGGER.exception("Failed to play audio")
        return False
    return True


__all__ = [
    "AudioDecodeError",
    "PlaybackContext",
    "PlaybackUnavailableError",
    "SPEECH_SAMPLE_RATE",
    "decode_base64_audio",
    "describe_audio_debug_stats",
    "get_audio_context",
    "pcm16_to_float32",
    "pcm16_to_wav_bytes",
    "play_audio_data",
]
