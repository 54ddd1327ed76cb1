"""
Frame chunker for outbound telephony audio.

The gateway plays audio in 20ms frames: 160 samples of 16-bit PCM at 8kHz,
i.e. 320 bytes. Media events must carry a whole number of frames except for
the final remainder of a burst.
"""

from typing import List

FRAME_ALIGNMENT = 320


def aligned_chunk_size(chunk_size: int, alignment: int = FRAME_ALIGNMENT) -> int:
    """
    Round a chunk size down to a multiple of the frame alignment.

    Sizes below one frame are raised to a single frame.

    Raises:
        ValueError: if chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return max(alignment, (chunk_size // alignment) * alignment)


def chunk_payload(
    payload: bytes,
    chunk_size: int,
    alignment: int = FRAME_ALIGNMENT,
) -> List[bytes]:
    """
    Split a payload into frame-aligned chunks.

    Args:
        payload: Raw PCM bytes
        chunk_size: Requested maximum chunk size in bytes
        alignment: Frame size the chunk size is rounded down to

    Returns:
        Ordered chunks; all but the last have the aligned size.
    """
    size = aligned_chunk_size(chunk_size, alignment)
    return [payload[i:i + size] for i in range(0, len(payload), size)]
