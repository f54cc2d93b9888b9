from __future__ import annotations

import asyncio
import io
import logging
import math

import httpx
import numpy as np
import soundfile as sf

log = logging.getLogger(__name__)

DEFAULT_BLOCKS = 200

AUDIO_EXTENSIONS = (".mp3", ".wav", ".m4a", ".flac", ".ogg")
TEXT_EXTENSIONS = (".txt", ".md")


class FetchError(Exception):
    """The audio source could not be retrieved."""
    pass


class DecodeError(Exception):
    """The retrieved bytes are not decodable audio."""
    pass


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_time(seconds: float) -> str:
    """``M:SS`` as shown next to the player controls."""
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


# ---------------------------------------------------------------------------
# Retrieval and decoding
# ---------------------------------------------------------------------------

async def fetch_bytes(
    location: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> bytes:
    """Retrieve the raw bytes behind *location*.

    ``http(s)://`` locations are downloaded with httpx (an existing
    *client* is reused and left open); anything else is read from disk.
    Raises :class:`FetchError` on any retrieval failure.
    """
    if location.lower().startswith(("http://", "https://")):
        try:
            if client is not None:
                response = await client.get(location)
            else:
                async with httpx.AsyncClient(timeout=timeout) as own:
                    response = await own.get(location)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"Cannot fetch {location}: {e}") from e
        return response.content

    try:
        return await asyncio.to_thread(read_file, location)
    except OSError as e:
        raise FetchError(f"Cannot read {location}: {e}") from e


def read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def decode_frames(data: bytes, dtype: str = "float64") -> tuple[np.ndarray, int]:
    """Decode an in-memory audio file to ``(frames, samplerate)``.

    *frames* is always 2-D, shape ``(samples, channels)``.
    Raises :class:`DecodeError` for empty, corrupt or unsupported data.
    """
    if not data:
        raise DecodeError("No audio data")
    try:
        frames, samplerate = sf.read(io.BytesIO(data), dtype=dtype,
                                     always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError) as e:
        raise DecodeError(f"Cannot decode audio: {e}") from e
    if samplerate <= 0:
        raise DecodeError(f"Invalid sample rate: {samplerate}")
    return frames, int(samplerate)


def decode_audio(data: bytes) -> tuple[np.ndarray, int, float]:
    """Decode an in-memory audio file.

    Returns ``(first_channel, samplerate, duration_sec)``.  Only the first
    channel is kept; envelopes are drawn from it alone.
    """
    frames, samplerate = decode_frames(data)
    first = np.ascontiguousarray(frames[:, 0]) if frames.shape[1] else np.zeros(0)
    return first, samplerate, frames.shape[0] / float(samplerate)


# ---------------------------------------------------------------------------
# Envelope DSP
# ---------------------------------------------------------------------------

def compute_envelope(samples: np.ndarray, blocks: int = DEFAULT_BLOCKS) -> np.ndarray:
    """Reduce *samples* to *blocks* mean-absolute-amplitude values.

    The signal is split into ``blocks`` contiguous blocks of
    ``len(samples) // blocks`` samples; the trailing remainder is ignored.
    For multi-channel input only the first channel is used.  When there are
    fewer samples than blocks every block is empty and reads as 0.0.
    """
    if blocks <= 0:
        raise ValueError("blocks must be positive")
    data = np.asarray(samples, dtype=np.float64)
    if data.ndim > 1:
        data = data[:, 0] if data.shape[1] else np.zeros(0)
    block_size = data.size // blocks
    if block_size == 0:
        return np.zeros(blocks, dtype=np.float64)
    used = data[:block_size * blocks].reshape(blocks, block_size)
    return np.mean(np.abs(used), axis=1)
