import base64
import io
import logging
import wave

import numpy as np
import pytest

from lingopop.processing import audio as audio_module
from lingopop.processing import (
    AudioDecodeError,
    PlaybackContext,
    PlaybackUnavailableError,
    decode_base64_audio,
    get_audio_context,
    pcm16_to_float32,
    pcm16_to_wav_bytes,
    play_audio_data,
)

from conftest import SPEECH_BASE64, SPEECH_SAMPLES


class RecordingBackend:
    def __init__(self) -> None:
        self.played = []
        self.stopped = False

    def play(self, samples, *, samplerate, blocking):
        self.played.append((samples, samplerate, blocking))

    def stop(self):
        self.stopped = True


def _running_context() -> tuple[PlaybackContext, RecordingBackend]:
    backend = RecordingBackend()
    context = PlaybackContext()
    context._backend = backend
    return context, backend


def test_pcm16_is_scaled_to_unit_range() -> None:
    samples = pcm16_to_float32(SPEECH_SAMPLES.tobytes())

    assert samples.dtype == np.float32
    assert samples.tolist() == pytest.approx([0.0, 0.5, -1.0, 32_767 / 32_768])


def test_trailing_odd_byte_is_dropped() -> None:
    samples = pcm16_to_float32(SPEECH_SAMPLES.tobytes() + b"\x7f")

    assert samples.size == SPEECH_SAMPLES.size


def test_wav_wrapper_describes_mono_24khz_pcm() -> None:
    wav = pcm16_to_wav_bytes(SPEECH_SAMPLES.tobytes())

    with wave.open(io.BytesIO(wav), "rb") as handle:
        assert handle.getnchannels() == 1
        assert handle.getsampwidth() == 2
        assert handle.getframerate() == 24_000
        assert handle.getnframes() == SPEECH_SAMPLES.size
        assert handle.readframes(handle.getnframes()) == SPEECH_SAMPLES.tobytes()


def test_invalid_base64_raises() -> None:
    with pytest.raises(AudioDecodeError):
        decode_base64_audio("not base64!!")


def test_context_starts_suspended() -> None:
    context = PlaybackContext()

    assert context.state == "suspended"
    with pytest.raises(PlaybackUnavailableError):
        context.play(np.zeros(1, dtype=np.float32))


def test_play_audio_data_resumes_and_plays() -> None:
    context, backend = _running_context()

    assert play_audio_data(SPEECH_BASE64, context=context, blocking=True) is True

    assert context.state == "running"
    samples, samplerate, blocking = backend.played[0]
    assert samplerate == 24_000
    assert blocking is True
    assert samples.tolist() == pytest.approx([0.0, 0.5, -1.0, 32_767 / 32_768])


def test_play_audio_data_logs_and_returns_false_on_bad_payload(caplog) -> None:
    context, backend = _running_context()

    with caplog.at_level(logging.ERROR, logger=audio_module.LOGGER.name):
        assert play_audio_data("%%%", context=context) is False

    assert backend.played == []
    assert "Failed to play audio" in caplog.text


def test_closed_context_is_replaced(monkeypatch) -> None:
    monkeypatch.setattr(audio_module, "_AUDIO_CONTEXT", None)

    first = get_audio_context()
    assert get_audio_context() is first

    first.close()
    second = get_audio_context()

    assert second is not first
    assert second.state == "suspended"


def test_close_stops_running_backend() -> None:
    context, backend = _running_context()
    context.resume()

    context.close()

    assert backend.stopped is True
    assert context.state == "closed"
    with pytest.raises(PlaybackUnavailableError):
        context.resume()


def test_empty_payload_plays_nothing() -> None:
    context, backend = _running_context()

    assert play_audio_data(base64.b64encode(b"").decode(), context=context) is True
    assert backend.played[0][0].size == 0


def test_line_wrapped_base64_is_accepted() -> None:
    payload = bytes(range(60))
    wrapped = base64.encodebytes(payload).decode("ascii")
    assert "\n" in wrapped

    assert decode_base64_audio(wrapped) == payload
    assert decode_base64_audio(" \t" + SPEECH_BASE64 + "\r\n") == SPEECH_SAMPLES.tobytes()
