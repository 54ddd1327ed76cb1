"""Audio processing module."""
from .converter import AudioConverter, decode_base64_pcm, encode_base64_pcm
from .chunker import FRAME_ALIGNMENT, aligned_chunk_size, chunk_payload


def upsample(pcm_data: bytes) -> bytes:
    """Convert 8kHz PCM16 to 16kHz."""
    return AudioConverter.upsample_8k_to_16k(pcm_data)


def downsample(pcm_data: bytes) -> bytes:
    """Convert 16kHz PCM16 to 8kHz."""
    return AudioConverter.downsample_16k_to_8k(pcm_data)


__all__ = [
    "AudioConverter",
    "FRAME_ALIGNMENT",
    "aligned_chunk_size",
    "chunk_payload",
    "decode_base64_pcm",
    "encode_base64_pcm",
    "upsample",
    "downsample",
]
