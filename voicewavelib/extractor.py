"""Generation-tagged waveform envelope loading."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import httpx
import numpy as np

from .audio import (
    DEFAULT_BLOCKS,
    DecodeError,
    FetchError,
    compute_envelope,
    decode_audio,
    fetch_bytes,
    read_file,
)
from .events import ENVELOPE_CHANGED, EventBus
from .models import AmplitudeEnvelope, AudioSource

log = logging.getLogger(__name__)


class WaveformExtractor:
    """Turns an :class:`AudioSource` into an :class:`AmplitudeEnvelope`.

    Every source assignment bumps a generation counter.  A load only
    publishes its envelope if no newer source was assigned while it was
    suspended, so a slow decode of an old file can never overwrite the
    waveform of the current one.

    Decode and fetch failures never escape :meth:`load`: the envelope
    becomes empty (idle waveform) and the error is logged.
    """

    def __init__(self, blocks: int = DEFAULT_BLOCKS, *,
                 client: httpx.AsyncClient | None = None,
                 fetch_timeout: float = 30.0,
                 event_bus: EventBus | None = None):
        if blocks <= 0:
            raise ValueError("blocks must be positive")
        self._blocks = blocks
        self._client = client
        self._fetch_timeout = fetch_timeout
        self._bus = event_bus or EventBus()
        self._generation = 0
        self._source: AudioSource | None = None
        self._envelope = AmplitudeEnvelope.empty()
        self._last_error: Exception | None = None

    @property
    def blocks(self) -> int:
        return self._blocks

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def source(self) -> AudioSource | None:
        return self._source

    @property
    def envelope(self) -> AmplitudeEnvelope:
        return self._envelope

    @property
    def last_error(self) -> Exception | None:
        """The failure behind the current empty envelope, if any."""
        return self._last_error

    def subscribe(self, handler: Callable[..., Any]) -> Callable[[], None]:
        """Call ``handler(envelope=..., generation=...)`` on every accepted
        envelope.  Returns the unsubscribe callable."""
        return self._bus.subscribe(ENVELOPE_CHANGED, handler)

    # ── Generation bookkeeping ────────────────────────────────────────────

    def begin(self, source: AudioSource) -> int:
        """Assign a new source and return the generation tag for its load."""
        self._generation += 1
        self._source = source
        self._last_error = None
        self._set_envelope(AmplitudeEnvelope.empty())
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def accept(self, generation: int, envelope: AmplitudeEnvelope,
               error: Exception | None = None) -> bool:
        """Publish *envelope* if *generation* is still current.

        Returns False (and changes nothing) for superseded loads.
        """
        if not self.is_current(generation):
            log.debug("Dropping stale envelope (generation %d, current %d)",
                      generation, self._generation)
            return False
        self._last_error = error
        self._set_envelope(envelope)
        return True

    # ── Loading ──────────────────────────────────────────────────────────

    async def load(self, source: AudioSource) -> AmplitudeEnvelope | None:
        """Fetch, decode and reduce *source*.

        Returns the accepted envelope (empty on failure), or None when a
        newer source was assigned before this load finished.
        """
        generation = self.begin(source)
        error: Exception | None = None
        try:
            data = await self._read(source)
            if not self.is_current(generation):
                log.debug("Source replaced during fetch; skipping decode")
                return None
            envelope = await asyncio.to_thread(self._reduce, data)
        except (FetchError, DecodeError) as e:
            log.warning("Waveform unavailable for %s: %s",
                        source.name or "<bytes>", e)
            envelope = AmplitudeEnvelope.empty()
            error = e
        if not self.accept(generation, envelope, error):
            return None
        return envelope

    def extract(self, source: AudioSource) -> AmplitudeEnvelope:
        """Blocking variant of :meth:`load` without generation handling.

        Intended for worker threads and scripts.  Raises
        :class:`FetchError` / :class:`DecodeError`.
        """
        return self._reduce(self.read(source))

    def read(self, source: AudioSource) -> bytes:
        """Blocking retrieval of the source's bytes.  Raises :class:`FetchError`."""
        if source.data is not None:
            return source.data
        if source.is_remote:
            return asyncio.run(fetch_bytes(source.location,
                                           timeout=self._fetch_timeout))
        try:
            return read_file(source.location)
        except OSError as e:
            raise FetchError(f"Cannot read {source.location}: {e}") from e

    def envelope_from_frames(self, frames: np.ndarray,
                             samplerate: int) -> AmplitudeEnvelope:
        """Envelope of already decoded ``(samples, channels)`` frames."""
        return AmplitudeEnvelope(
            compute_envelope(frames, self._blocks),
            duration=frames.shape[0] / float(samplerate),
            samplerate=samplerate,
        )

    async def _read(self, source: AudioSource) -> bytes:
        if source.data is not None:
            return source.data
        return await fetch_bytes(source.location, self._client,
                                 timeout=self._fetch_timeout)

    def _reduce(self, data: bytes) -> AmplitudeEnvelope:
        samples, samplerate, duration = decode_audio(data)
        return AmplitudeEnvelope(
            compute_envelope(samples, self._blocks),
            duration=duration,
            samplerate=samplerate,
        )

    def _set_envelope(self, envelope: AmplitudeEnvelope) -> None:
        self._envelope = envelope
        self._bus.emit(ENVELOPE_CHANGED, envelope=envelope,
                       generation=self._generation)
