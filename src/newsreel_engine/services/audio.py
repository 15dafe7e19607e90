"""Narration audio helpers.

TTS models return raw little-endian PCM. Durations are always derived from
the sample byte count; a duration field reported by the API is never used.
"""

import io
import random
import wave
from dataclasses import dataclass

from newsreel_engine.errors import PreconditionError

SAMPLE_RATE = 24000
CHANNELS = 1
BIT_DEPTH = 16

TTS_VOICES: tuple[str, ...] = (
    "Zephyr",
    "Puck",
    "Charon",
    "Kore",
    "Fenrir",
    "Leda",
    "Enceladus",
    "Aoede",
    "Autonoe",
    "Laomedeia",
    "Iapetus",
    "Erinome",
    "Alnilam",
    "Algieba",
    "Despina",
    "Umbriel",
    "Callirrhoe",
    "Achernar",
    "Sulafat",
    "Vindemiatrix",
    "Achird",
    "Orus",
    "Algenib",
    "Rasalgethi",
    "Gacrux",
    "Pulcherrima",
    "Zubenelgenubi",
    "Sadachbia",
    "Sadaltager",
)


@dataclass(frozen=True)
class TtsModelSpec:
    """Capabilities and quota of a TTS model."""

    model_id: str
    concurrency: int  # parallel requests the quota tolerates


TTS_MODELS: dict[str, TtsModelSpec] = {
    "gemini-2.5-flash-preview-tts": TtsModelSpec("gemini-2.5-flash-preview-tts", concurrency=25),
    "gemini-2.5-pro-preview-tts": TtsModelSpec("gemini-2.5-pro-preview-tts", concurrency=10),
}


def get_tts_model(model_id: str) -> TtsModelSpec:
    try:
        return TTS_MODELS[model_id]
    except KeyError:
        raise PreconditionError(f"Unknown TTS model: {model_id}") from None


def pick_voice(pinned: str | None = None, rng: random.Random | None = None) -> str:
    """Return the pinned voice, or a random one when none is pinned."""
    if pinned:
        return pinned
    return (rng or random).choice(TTS_VOICES)


def pcm_duration_ms(
    pcm_byte_count: int,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
    bit_depth: int = BIT_DEPTH,
) -> int:
    """Playback length of raw PCM in milliseconds, rounded to the nearest ms."""
    bytes_per_second = sample_rate * channels * (bit_depth // 8)
    if bytes_per_second <= 0:
        raise ValueError("Sample rate, channels and bit depth must be positive")
    return round(pcm_byte_count * 1000 / bytes_per_second)


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
    bit_depth: int = BIT_DEPTH,
) -> bytes:
    """Wrap raw PCM samples in a RIFF/WAVE container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(bit_depth // 8)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def silent_pcm(duration_ms: int, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS) -> bytes:
    """Zeroed 16-bit PCM of the given length."""
    frames = sample_rate * duration_ms // 1000
    return b"\x00\x00" * frames * channels
