"""PCM16 decoding utilities for text-to-speech output."""

import io
import wave

import numpy as np

TTS_SAMPLE_RATE = 24000


def pcm16_to_float32(data: bytes, channels: int = 1) -> np.ndarray:
    """Decode interleaved little-endian PCM16 into float32 samples.

    Args:
        data: Raw PCM16 bytes. A trailing odd byte is ignored.
        channels: Number of interleaved channels.

    Returns:
        Float32 array of shape (frames, channels) in range [-1.0, 1.0).
    """
    usable = len(data) - (len(data) % (2 * channels))
    pcm16 = np.frombuffer(data[:usable], dtype="<i2")
    return (pcm16.astype(np.float32) / 32768.0).reshape(-1, channels)


def float32_to_wav(audio: np.ndarray, sample_rate: int = TTS_SAMPLE_RATE) -> bytes:
    """Encode float32 samples as a 16-bit WAV file for browser playback."""
    if audio.ndim == 1:
        audio = audio.reshape(-1, 1)
    pcm16 = (np.clip(audio, -1.0, 1.0) * 32767).astype("<i2")
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(audio.shape[1])
        wav.setsampwidth(2)  # 16-bit
        wav.setframerate(sample_rate)
        wav.writeframes(pcm16.tobytes())
    return buffer.getvalue()

