"""
Audio Converter.

Converts 16-bit little-endian PCM between the telephony rate (8kHz) and the
voice agent rate (16kHz). Upsampling is linear interpolation against the next
sample, downsampling averages sample pairs. No anti-alias filtering.
"""

import base64
import binascii

import numpy as np

from ..errors import DecodeError

PCM16_MIN = -32768
PCM16_MAX = 32767

# little-endian int16
PCM16_DTYPE = np.dtype("<i2")


def _to_samples(pcm_data: bytes) -> np.ndarray:
    """Interpret bytes as int16 samples widened to int32 for arithmetic."""
    if len(pcm_data) % 2:
        raise DecodeError(
            f"PCM buffer length must be even, got {len(pcm_data)} bytes"
        )
    return np.frombuffer(pcm_data, dtype=PCM16_DTYPE).astype(np.int32)


def _half_round(totals: np.ndarray) -> np.ndarray:
    """Compute totals / 2 rounded half away from zero, clamped to int16."""
    halves = np.where(totals >= 0, (totals + 1) // 2, -((-totals + 1) // 2))
    return np.clip(halves, PCM16_MIN, PCM16_MAX).astype(PCM16_DTYPE)


class AudioConverter:
    """Convert PCM16 between 8kHz and 16kHz."""

    @staticmethod
    def upsample_8k_to_16k(pcm_data: bytes) -> bytes:
        """
        Double the sample rate.

        Each sample is followed by the rounded mean of itself and the next
        sample. The last sample is repeated since it has no successor.

        Args:
            pcm_data: 16-bit PCM audio at 8kHz

        Returns:
            16-bit PCM audio at 16kHz (twice the length)

        Raises:
            DecodeError: if the buffer is not a whole number of samples
        """
        samples = _to_samples(pcm_data)
        if samples.size == 0:
            return b""

        following = np.append(samples[1:], samples[-1])

        out = np.empty(samples.size * 2, dtype=PCM16_DTYPE)
        out[0::2] = samples
        out[1::2] = _half_round(samples + following)
        return out.tobytes()

    @staticmethod
    def downsample_16k_to_8k(pcm_data: bytes) -> bytes:
        """
        Halve the sample rate by averaging sample pairs.

        A trailing unpaired sample is averaged with itself, i.e. passed through.

        Args:
            pcm_data: 16-bit PCM audio at 16kHz

        Returns:
            16-bit PCM audio at 8kHz (ceil(n / 2) samples)

        Raises:
            DecodeError: if the buffer is not a whole number of samples
        """
        samples = _to_samples(pcm_data)
        if samples.size == 0:
            return b""

        if samples.size % 2:
            samples = np.append(samples, samples[-1])

        pairs = samples.reshape(-1, 2)
        return _half_round(pairs[:, 0] + pairs[:, 1]).tobytes()

    @classmethod
    def resample(cls, pcm_data: bytes, src_rate: int, dst_rate: int) -> bytes:
        """
        Resample PCM audio between the supported rates.

        Args:
            pcm_data: 16-bit PCM audio data
            src_rate: Source sample rate (8000 or 16000)
            dst_rate: Destination sample rate (8000 or 16000)

        Returns:
            Resampled 16-bit PCM audio
        """
        if src_rate == dst_rate:
            _to_samples(pcm_data)
            return pcm_data
        if (src_rate, dst_rate) == (8000, 16000):
            return cls.upsample_8k_to_16k(pcm_data)
        if (src_rate, dst_rate) == (16000, 8000):
            return cls.downsample_16k_to_8k(pcm_data)
        raise ValueError(f"Unsupported resample: {src_rate}Hz -> {dst_rate}Hz")


def decode_base64_pcm(payload: str) -> bytes:
    """
    Decode a base64 audio payload.

    Raises:
        DecodeError: on invalid base64
    """
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 audio payload: {e}") from e


def encode_base64_pcm(pcm_data: bytes) -> str:
    """Encode PCM bytes as an ASCII base64 string."""
    return base64.b64encode(pcm_data).decode("ascii")
