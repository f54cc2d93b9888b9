"""Waveform bar geometry, pixel-surface painting and click-to-seek mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .models import AmplitudeEnvelope, PlaybackPosition

_TEXT_LEVELS = " ▁▂▃▄▅▆▇█"


@dataclass(frozen=True)
class BarRenderCtx:
    """Surface geometry shared by every paint pass."""
    width: int
    height: int
    height_ratio: float = 0.8
    bar_gap: float = 1.0


@dataclass(frozen=True)
class Bar:
    x: float
    y: float
    w: float
    h: float
    played: bool


# ---------------------------------------------------------------------------
# Forward and inverse mappings
# ---------------------------------------------------------------------------

def progress_fraction(current_time: float, duration: float) -> float:
    """Played fraction of the media in [0, 1].  Zero duration reads as 0."""
    if duration <= 0:
        return 0.0
    return min(max(current_time / duration, 0.0), 1.0)


def played_mask(n: int, progress: float) -> np.ndarray:
    """Boolean mask of played bars: bar ``i`` is played when ``i / n < progress``."""
    if n <= 0:
        return np.zeros(0, dtype=bool)
    return np.arange(n) / n < progress


def x_to_fraction(x: float, width: float) -> float:
    """Horizontal surface coordinate to playback fraction, clamped to [0, 1]."""
    if width <= 0:
        return 0.0
    return min(max(x / width, 0.0), 1.0)


def x_to_seconds(x: float, width: float, duration: float) -> float:
    """Seek target for a click at *x*; 0 while the duration is unknown."""
    if duration <= 0:
        return 0.0
    return x_to_fraction(x, width) * duration


def bar_layout(envelope: AmplitudeEnvelope | np.ndarray, ctx: BarRenderCtx,
               progress: float) -> list[Bar]:
    """One :class:`Bar` per envelope value.

    Each bar occupies a ``width / n`` slot minus the gap (the gap is dropped
    when the slot is narrower than it), is ``value * height * height_ratio``
    tall (capped at the surface height) and is centred vertically.
    """
    values = envelope.values if isinstance(envelope, AmplitudeEnvelope) else np.asarray(envelope)
    n = int(values.size)
    if n == 0 or ctx.width <= 0 or ctx.height <= 0:
        return []
    slot = ctx.width / n
    bar_w = slot - ctx.bar_gap if slot > ctx.bar_gap else slot
    heights = np.minimum(np.maximum(values, 0.0) * ctx.height * ctx.height_ratio,
                         ctx.height)
    played = played_mask(n, progress)
    return [
        Bar(
            x=i * slot,
            y=(ctx.height - float(h)) / 2.0,
            w=bar_w,
            h=float(h),
            played=bool(played[i]),
        )
        for i, h in enumerate(heights)
    ]


# ---------------------------------------------------------------------------
# Pixel surface
# ---------------------------------------------------------------------------

def parse_color(value: str) -> tuple[int, int, int, int]:
    """``#RRGGBB`` or ``#RRGGBBAA`` to an RGBA tuple."""
    text = value.lstrip("#")
    if len(text) not in (6, 8):
        raise ValueError(f"Invalid color: {value!r}")
    channels = [int(text[i:i + 2], 16) for i in range(0, len(text), 2)]
    if len(channels) == 3:
        channels.append(255)
    return tuple(channels)  # type: ignore[return-value]


class WaveformRenderer:
    """Paints an envelope onto an RGBA ``uint8`` pixel surface.

    Every call repaints the whole surface; with a few hundred bars that is
    cheaper than tracking what changed.
    """

    def __init__(self, width: int = 400, height: int = 80, *,
                 height_ratio: float = 0.8, bar_gap: float = 1.0,
                 played_color: str = "#3B82F6",
                 unplayed_color: str = "#E5E7EB"):
        self._ctx = BarRenderCtx(width, height, height_ratio, bar_gap)
        self._played_rgba = parse_color(played_color)
        self._unplayed_rgba = parse_color(unplayed_color)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> WaveformRenderer:
        return cls(
            config.get("canvas_width", 400),
            config.get("canvas_height", 80),
            height_ratio=config.get("height_ratio", 0.8),
            bar_gap=config.get("bar_gap", 1),
            played_color=config.get("played_color", "#3B82F6"),
            unplayed_color=config.get("unplayed_color", "#E5E7EB"),
        )

    @property
    def ctx(self) -> BarRenderCtx:
        return self._ctx

    def layout(self, envelope: AmplitudeEnvelope,
               position: PlaybackPosition) -> list[Bar]:
        return bar_layout(envelope, self._ctx, position.progress)

    def paint(self, envelope: AmplitudeEnvelope,
              position: PlaybackPosition) -> np.ndarray:
        """Return a ``(height, width, 4)`` surface; transparent when idle."""
        surface = np.zeros((self._ctx.height, self._ctx.width, 4), dtype=np.uint8)
        for bar in self.layout(envelope, position):
            x0 = int(round(bar.x))
            x1 = max(x0 + 1, int(round(bar.x + bar.w)))
            y0 = int(round(bar.y))
            y1 = int(round(bar.y + bar.h))
            if y1 <= y0:
                continue
            surface[y0:y1, x0:x1] = (self._played_rgba if bar.played
                                     else self._unplayed_rgba)
        return surface

    def played_count(self, envelope: AmplitudeEnvelope,
                     position: PlaybackPosition) -> int:
        return int(np.count_nonzero(played_mask(len(envelope), position.progress)))


# ---------------------------------------------------------------------------
# Text rendering (terminal preview)
# ---------------------------------------------------------------------------

def render_text(envelope: AmplitudeEnvelope, progress: float,
                width: int = 80) -> tuple[str, int]:
    """Render the envelope as one line of block characters.

    Returns ``(text, played_chars)``: the first *played_chars* characters
    belong to the played part.  Envelopes wider than *width* are reduced
    by taking the loudest value of each column.
    """
    if envelope.is_empty or width <= 0:
        return "", 0
    values = envelope.values
    if values.size > width:
        columns = np.array([chunk.max() for chunk in np.array_split(values, width)])
    else:
        columns = values
    peak = float(columns.max())
    if peak > 0:
        levels = np.round(columns / peak * (len(_TEXT_LEVELS) - 1)).astype(int)
    else:
        levels = np.zeros(columns.size, dtype=int)
    text = "".join(_TEXT_LEVELS[level] for level in levels)
    played = int(np.count_nonzero(played_mask(columns.size, progress)))
    return text, played
