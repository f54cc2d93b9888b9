"""Bar waveform widget with played/unplayed colouring and click-to-seek."""

from __future__ import annotations

from typing import Any

from PySide6.QtCore import QRectF, Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QWidget

from voicewavelib.models import AmplitudeEnvelope, PlaybackPosition
from voicewavelib.rendering import BarRenderCtx, bar_layout, x_to_seconds

from .theme import COLORS


class WaveformWidget(QWidget):
    """Draws an :class:`AmplitudeEnvelope` as vertically centred bars.

    Bars left of the playback position use the played colour.  A left
    click emits :attr:`seek_requested` with the target time in seconds;
    the widget itself never moves the position.
    """

    seek_requested = Signal(float)  # seconds

    def __init__(self, config: dict[str, Any] | None = None, parent=None):
        super().__init__(parent)
        config = config or {}
        self._height_ratio = float(config.get("height_ratio", 0.8))
        self._bar_gap = float(config.get("bar_gap", 1))
        self._played = QColor(config.get("played_color", "#3B82F6"))
        self._unplayed = QColor(config.get("unplayed_color", "#E5E7EB"))
        self._envelope = AmplitudeEnvelope.empty()
        self._position = PlaybackPosition(0.0, 0.0, False)
        self._loading = False
        self.setMinimumHeight(int(config.get("canvas_height", 80)))
        self.setMinimumWidth(120)
        self.setCursor(Qt.PointingHandCursor)

    # ── Data management ────────────────────────────────────────────────────

    @property
    def envelope(self) -> AmplitudeEnvelope:
        return self._envelope

    def set_envelope(self, envelope: AmplitudeEnvelope):
        self._envelope = envelope
        self._loading = False
        self.update()

    def set_position(self, position: PlaybackPosition):
        if position == self._position:
            return
        self._position = position
        self.update()

    def set_loading(self, loading: bool):
        """Show or hide a 'Loading waveform…' placeholder."""
        self._loading = loading
        if loading:
            self._envelope = AmplitudeEnvelope.empty()
        self.update()

    def _ctx(self) -> BarRenderCtx:
        return BarRenderCtx(self.width(), self.height(),
                            self._height_ratio, self._bar_gap)

    # ── Painting ──────────────────────────────────────────────────────────

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(0, 0, self.width(), self.height(), QColor(COLORS["bg"]))

        if self._loading:
            painter.setPen(QPen(QColor(COLORS["dim"])))
            painter.drawText(self.rect(), Qt.AlignCenter, "Loading waveform…")
            painter.end()
            return

        for bar in bar_layout(self._envelope, self._ctx(),
                              self._position.progress):
            painter.fillRect(QRectF(bar.x, bar.y, bar.w, bar.h),
                             self._played if bar.played else self._unplayed)
        painter.end()

    # ── Mouse ─────────────────────────────────────────────────────────────

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton or self._envelope.is_empty:
            super().mousePressEvent(event)
            return
        target = x_to_seconds(event.position().x(), self.width(),
                              self._position.duration)
        self.seek_requested.emit(target)
