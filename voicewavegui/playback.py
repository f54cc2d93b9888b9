"""Media element backed by a sounddevice OutputStream."""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np
import sounddevice as sd

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from voicewavelib.clock import ENDED, LOADED_METADATA, TIME_UPDATE, MediaError

log = logging.getLogger(__name__)


class SoundDeviceMedia(QObject):
    """Plays decoded PCM and reports progress like a browser media element.

    Listeners registered with :meth:`add_listener` are called on the Qt
    main thread for ``"timeupdate"`` (every timer tick while playing),
    ``"loadedmetadata"`` (after :meth:`load`) and ``"ended"`` (the stream
    ran out of frames).

    Signals:
        error(str): Emitted when the output stream cannot be opened.
    """

    error = Signal(str)

    def __init__(self, interval_ms: int = 30, parent=None):
        super().__init__(parent)
        self._stream: sd.OutputStream | None = None
        self._audio: np.ndarray | None = None  # (samples, channels) float32
        self._samplerate: int = 44100
        self._start_sample: int = 0
        self._frame_count: list[int] = [0]
        self._ended: list[bool] = [False]
        self._gain: list[float] = [1.0]
        self._listeners: dict[str, list[Callable[[], None]]] = {}

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timer)

    # ── Source ───────────────────────────────────────────────────────────

    def load(self, audio: np.ndarray, samplerate: int) -> None:
        """Replace the source with decoded frames and fire loadedmetadata."""
        self._close_stream()
        if audio.ndim == 1:
            audio = audio.reshape(-1, 1)
        self._audio = np.ascontiguousarray(audio, dtype=np.float32)
        self._samplerate = int(samplerate)
        self._start_sample = 0
        self._frame_count = [0]
        self._fire(LOADED_METADATA)

    def unload(self) -> None:
        self._close_stream()
        self._audio = None
        self._start_sample = 0
        self._frame_count = [0]
        self._fire(LOADED_METADATA)

    @property
    def has_source(self) -> bool:
        return self._audio is not None and self._audio.shape[0] > 0

    @property
    def duration(self) -> float:
        if self._audio is None:
            return math.nan
        return self._audio.shape[0] / float(self._samplerate)

    @property
    def is_playing(self) -> bool:
        return self._stream is not None and self._stream.active

    # ── Position and volume ──────────────────────────────────────────────

    @property
    def current_time(self) -> float:
        if self._audio is None:
            return 0.0
        return self._current_sample() / float(self._samplerate)

    @current_time.setter
    def current_time(self, seconds: float) -> None:
        if self._audio is None:
            raise MediaError("No audio loaded")
        total = self._audio.shape[0]
        sample = int(round(max(0.0, float(seconds)) * self._samplerate))
        sample = min(sample, total)
        was_playing = self.is_playing
        self._close_stream()
        self._start_sample = sample
        self._frame_count = [0]
        if was_playing and sample < total:
            self._open_stream()

    @property
    def volume(self) -> float:
        return self._gain[0]

    @volume.setter
    def volume(self, value: float) -> None:
        self._gain[0] = min(max(float(value), 0.0), 1.0)

    # ── Transport ────────────────────────────────────────────────────────

    def play(self) -> None:
        if not self.has_source:
            raise MediaError("No audio loaded")
        if self.is_playing:
            return
        if self._current_sample() >= self._audio.shape[0]:
            self._start_sample = 0
            self._frame_count = [0]
        else:
            self._start_sample = self._current_sample()
            self._frame_count = [0]
        self._open_stream()

    def pause(self) -> None:
        """Stop the stream but keep the position."""
        if self._audio is None:
            return
        self._start_sample = self._current_sample()
        self._frame_count = [0]
        self._close_stream()

    # ── Listeners ────────────────────────────────────────────────────────

    def add_listener(self, event: str, handler: Callable[[], None]) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[[], None]) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    # ── Internal ─────────────────────────────────────────────────────────

    def _current_sample(self) -> int:
        return self._start_sample + self._frame_count[0]

    def _open_stream(self) -> None:
        play_data = self._audio[self._start_sample:]
        frame_count = self._frame_count
        ended = [False]
        self._ended = ended
        gain = self._gain

        def callback(outdata, frames, time_info, status):
            pos = frame_count[0]
            end = pos + frames
            if end <= len(play_data):
                outdata[:] = play_data[pos:end] * gain[0]
                frame_count[0] = end
            else:
                remaining = len(play_data) - pos
                if remaining > 0:
                    outdata[:remaining] = play_data[pos:] * gain[0]
                outdata[remaining:] = 0
                frame_count[0] = len(play_data)
                ended[0] = True
                raise sd.CallbackStop()

        def finished():
            # audio thread; hop to the main thread
            QTimer.singleShot(0, lambda: self._on_finished_main(ended))

        try:
            self._stream = sd.OutputStream(
                samplerate=self._samplerate,
                channels=play_data.shape[1],
                dtype="float32",
                callback=callback,
                finished_callback=finished,
            )
            self._stream.start()
            self._timer.start()
        except sd.PortAudioError as e:
            self._stream = None
            log.warning("Cannot open output stream: %s", e)
            self.error.emit(str(e))
            raise MediaError(str(e)) from e

    def _close_stream(self) -> None:
        self._timer.stop()
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            log.debug("Error closing output stream: %s", e)

    def _fire(self, event: str) -> None:
        for handler in list(self._listeners.get(event, [])):
            handler()

    def _on_finished_main(self, ended: list[bool]) -> None:
        # Only a stream that ran out of data ends playback; a stream we
        # closed ourselves (pause, seek, load) also reports finished.
        if ended is not self._ended or not ended[0]:
            return
        self._timer.stop()
        self._stream = None
        self._fire(TIME_UPDATE)
        self._fire(ENDED)

    @Slot()
    def _on_timer(self):
        if self._stream is not None:
            self._fire(TIME_UPDATE)
