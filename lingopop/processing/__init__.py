"""Audio processing backends."""

from .audio import (
    SPEECH_SAMPLE_RATE,
    AudioDecodeError,
    PlaybackContext,
    PlaybackUnavailableError,
    decode_base64_audio,
    describe_audio_debug_stats,
    get_audio_context,
    pcm16_to_float32,
    pcm16_to_wav_bytes,
    play_audio_data,
)

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
