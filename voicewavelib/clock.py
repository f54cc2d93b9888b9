"""Playback clock: bridges a media element's position to the UI."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Callable, Protocol, runtime_checkable

from .events import EventBus
from .models import PlaybackPosition

log = logging.getLogger(__name__)

# Media element notifications
TIME_UPDATE = "timeupdate"
LOADED_METADATA = "loadedmetadata"
ENDED = "ended"

POSITION_CHANGED = "position.changed"


class MediaError(Exception):
    """Raised by a media element that cannot perform a transport command."""
    pass


@runtime_checkable
class MediaElement(Protocol):
    """What the clock needs from a playable media element.

    ``current_time`` and ``duration`` are in seconds; ``duration`` may be
    NaN or 0 until metadata has loaded.  The element reports progress by
    calling the handlers registered for ``"timeupdate"``,
    ``"loadedmetadata"`` and ``"ended"``.
    """

    current_time: float
    volume: float

    @property
    def duration(self) -> float: ...

    @property
    def has_source(self) -> bool: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def add_listener(self, event: str, handler: Callable[[], None]) -> None: ...

    def remove_listener(self, event: str, handler: Callable[[], None]) -> None: ...


def _seconds(value: float) -> float:
    """Sanitize a media time value: NaN/inf/negative read as 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


class PlaybackClock:
    """Pull-based :class:`PlaybackPosition` plus transport commands.

    Every position change is broadcast synchronously to subscribers in the
    order the media element reported it.  Commands are applied
    immediately; the latest one wins.
    """

    def __init__(self, media: MediaElement):
        self._media = media
        self._bus = EventBus()
        self._position = PlaybackPosition(
            current_time=_seconds(media.current_time),
            duration=_seconds(media.duration),
            is_playing=False,
        )
        self._volume = min(max(_seconds(media.volume), 0.0), 1.0)
        self._media_handlers = {
            TIME_UPDATE: self._on_time_update,
            LOADED_METADATA: self._on_loaded_metadata,
            ENDED: self._on_ended,
        }
        for event, handler in self._media_handlers.items():
            media.add_listener(event, handler)
        self._closed = False

    @property
    def position(self) -> PlaybackPosition:
        return self._position

    @property
    def volume(self) -> float:
        return self._volume

    def subscribe(self, listener: Callable[..., Any]) -> Callable[[], None]:
        """Register ``listener(position=...)``; returns its unsubscribe."""
        return self._bus.subscribe(POSITION_CHANGED, listener)

    def close(self) -> None:
        """Detach from the media element and drop all subscribers."""
        if self._closed:
            return
        for event, handler in self._media_handlers.items():
            self._media.remove_listener(event, handler)
        self._bus = EventBus()
        self._closed = True

    # ── Commands ─────────────────────────────────────────────────────────

    def toggle_playback(self) -> bool:
        """Pause if playing, otherwise start.  Returns the new playing state."""
        if self._position.is_playing:
            self.pause()
        else:
            self.play()
        return self._position.is_playing

    def play(self) -> bool:
        """Start playback.  Returns False if the media cannot play."""
        if self._position.is_playing:
            return True
        if not self._media.has_source:
            log.info("Play requested without a loaded source")
            return False
        try:
            self._media.play()
        except MediaError as e:
            log.warning("Playback failed: %s", e)
            return False
        self._update(is_playing=True)
        return True

    def pause(self) -> None:
        if not self._position.is_playing:
            return
        self._media.pause()
        self._update(is_playing=False)

    def seek(self, target: float) -> float:
        """Jump to *target* seconds, clamped to ``[0, duration]``.

        The new position is published right away, before the media element
        confirms it; its next ``timeupdate`` overwrites it.
        """
        duration = self._position.duration
        clamped = min(_seconds(target), duration)
        self._write_media_time(clamped)
        self._update(current_time=clamped)
        return clamped

    def restart(self) -> None:
        """Back to the start; playing state is left as it is."""
        self._write_media_time(0.0)
        self._update(current_time=0.0)

    def set_volume(self, volume: float) -> float:
        volume = min(max(_seconds(volume), 0.0), 1.0)
        self._media.volume = volume
        self._volume = volume
        return volume

    def reset(self) -> None:
        """Forget the position after the media element got a new source."""
        if self._position.is_playing:
            self._media.pause()
        self._update(current_time=0.0,
                     duration=_seconds(self._media.duration),
                     is_playing=False)

    # ── Media notifications ──────────────────────────────────────────────

    def _on_time_update(self) -> None:
        self._update(current_time=_seconds(self._media.current_time))

    def _on_loaded_metadata(self) -> None:
        self._update(duration=_seconds(self._media.duration),
                     current_time=_seconds(self._media.current_time))

    def _on_ended(self) -> None:
        self._update(is_playing=False, current_time=self._position.duration)

    # ── Internal ─────────────────────────────────────────────────────────

    def _write_media_time(self, seconds: float) -> None:
        try:
            self._media.current_time = seconds
        except MediaError as e:
            log.debug("Media rejected seek to %.3f s: %s", seconds, e)

    def _update(self, **changes: Any) -> None:
        position = replace(self._position, **changes)
        if position == self._position:
            return
        self._position = position
        self._bus.emit(POSITION_CHANGED, position=position)
