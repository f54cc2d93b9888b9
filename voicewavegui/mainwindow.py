"""Main window of the VoiceWave player."""

from __future__ import annotations

import os
import sys

from PySide6.QtCore import Qt, Slot
from PySide6.QtGui import QAction, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMainWindow,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from voicewavelib.audio import AUDIO_EXTENSIONS, format_time
from voicewavelib.clock import PlaybackClock
from voicewavelib.extractor import WaveformExtractor
from voicewavelib.models import AmplitudeEnvelope, AudioSource, PlaybackPosition

from .log import dbg, timed
from .playback import SoundDeviceMedia
from .settings import load_config, save_config
from .theme import COLORS, apply_dark_theme
from .waveform import WaveformWidget
from .worker import AudioLoadWorker


class PlayerWindow(QMainWindow):
    """Single-source player: waveform, transport buttons, volume."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("VoiceWave")
        self.resize(720, 220)

        self._config = load_config()
        wf_cfg = self._config["waveform"]
        gui_cfg = self._config["gui"]

        self._extractor = WaveformExtractor(
            wf_cfg["envelope_blocks"], fetch_timeout=wf_cfg["fetch_timeout"])
        self._media = SoundDeviceMedia(wf_cfg["cursor_interval_ms"], self)
        self._media.error.connect(self._on_media_error)
        self._clock = PlaybackClock(self._media)
        self._unsubscribe = self._clock.subscribe(self._on_position)
        self._workers: list[AudioLoadWorker] = []

        self._init_ui(wf_cfg)
        self._init_menus()
        self._clock.set_volume(gui_cfg["volume"])
        self._volume.setValue(int(round(self._clock.volume * 100)))
        self._on_position(self._clock.position)
        apply_dark_theme(self)

    # ── UI construction ───────────────────────────────────────────────────

    def _init_ui(self, wf_cfg):
        central = QWidget()
        layout = QVBoxLayout(central)

        self._title = QLabel("No audio loaded")
        self._title.setStyleSheet(f"color: {COLORS['dim']};")
        layout.addWidget(self._title)

        self._waveform = WaveformWidget(wf_cfg)
        self._waveform.seek_requested.connect(self._on_seek_requested)
        layout.addWidget(self._waveform, 1)

        controls = QHBoxLayout()
        self._play_btn = QPushButton("Play")
        self._play_btn.clicked.connect(self._on_toggle)
        controls.addWidget(self._play_btn)

        self._restart_btn = QPushButton("Restart")
        self._restart_btn.clicked.connect(self._clock.restart)
        controls.addWidget(self._restart_btn)

        self._time_label = QLabel("0:00 / 0:00")
        controls.addWidget(self._time_label)
        controls.addStretch(1)

        controls.addWidget(QLabel("Volume"))
        self._volume = QSlider(Qt.Horizontal)
        self._volume.setRange(0, 100)
        self._volume.setFixedWidth(120)
        self._volume.valueChanged.connect(self._on_volume)
        controls.addWidget(self._volume)
        layout.addLayout(controls)

        self.setCentralWidget(central)
        self.statusBar().showMessage("Open an audio file or URL")

        QShortcut(QKeySequence(Qt.Key_Space), self, activated=self._on_toggle)

    def _init_menus(self):
        file_menu = self.menuBar().addMenu("&File")

        open_action = QAction("&Open File…", self)
        open_action.setShortcut(QKeySequence.Open)
        open_action.triggered.connect(self._on_open_file)
        file_menu.addAction(open_action)

        url_action = QAction("Open &URL…", self)
        url_action.triggered.connect(self._on_open_url)
        file_menu.addAction(url_action)

        file_menu.addSeparator()
        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

    # ── Loading ───────────────────────────────────────────────────────────

    @Slot()
    def _on_open_file(self):
        patterns = " ".join(f"*{ext}" for ext in AUDIO_EXTENSIONS)
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Audio", self._config["gui"]["last_dir"],
            f"Audio files ({patterns})")
        if not path:
            return
        self._config["gui"]["last_dir"] = os.path.dirname(path)
        self.open_source(AudioSource.from_location(path))

    @Slot()
    def _on_open_url(self):
        url, ok = QInputDialog.getText(self, "Open URL", "Audio URL:")
        if ok and url.strip():
            self.open_source(AudioSource.from_location(url.strip()))

    def open_source(self, source: AudioSource):
        """Replace the current source; a pending load of the old one is dropped."""
        generation = self._extractor.begin(source)
        dbg(f"Loading {source.name} (generation {generation})")
        self._media.unload()
        self._clock.reset()
        self._waveform.set_loading(True)
        self._title.setText(source.name or "<audio>")
        self.statusBar().showMessage(f"Loading {source.name}…")

        worker = AudioLoadWorker(self._extractor, source, generation)
        worker.loaded.connect(self._on_loaded)
        worker.failed.connect(self._on_load_failed)
        worker.finished.connect(lambda w=worker: self._on_worker_done(w))
        self._workers.append(worker)
        worker.start()

    @Slot(int, object, object, int)
    def _on_loaded(self, generation: int, envelope: AmplitudeEnvelope,
                   frames, samplerate: int):
        if not self._extractor.accept(generation, envelope):
            dbg(f"Dropped stale load (generation {generation})")
            return
        self._media.load(frames, samplerate)
        self._waveform.set_envelope(envelope)
        self.statusBar().showMessage(
            f"{format_time(envelope.duration)}  ·  {samplerate} Hz  ·  "
            f"{frames.shape[1]} ch", 5000)
        if self._config["gui"]["autoplay"]:
            self._clock.play()

    @Slot(int, str)
    def _on_load_failed(self, generation: int, message: str):
        if not self._extractor.accept(generation, AmplitudeEnvelope.empty(),
                                      RuntimeError(message)):
            return
        self._waveform.set_envelope(AmplitudeEnvelope.empty())
        self.statusBar().showMessage(f"Cannot load audio: {message}")

    def _on_worker_done(self, worker: AudioLoadWorker):
        if worker in self._workers:
            self._workers.remove(worker)
        worker.deleteLater()

    # ── Transport ─────────────────────────────────────────────────────────

    @Slot()
    def _on_toggle(self):
        if not self._clock.toggle_playback() and not self._media.has_source:
            self.statusBar().showMessage("Nothing to play", 3000)

    @Slot(float)
    def _on_seek_requested(self, seconds: float):
        self._clock.seek(seconds)

    @Slot(int)
    def _on_volume(self, value: int):
        self._config["gui"]["volume"] = self._clock.set_volume(value / 100.0)

    @Slot(str)
    def _on_media_error(self, message: str):
        self.statusBar().showMessage(f"Playback error: {message}")

    def _on_position(self, position: PlaybackPosition):
        self._waveform.set_position(position)
        self._play_btn.setText("Pause" if position.is_playing else "Play")
        self._time_label.setText(
            f"{format_time(position.current_time)} / {format_time(position.duration)}")

    def closeEvent(self, event):
        self._unsubscribe()
        self._clock.pause()
        self._clock.close()
        self._media.unload()
        for worker in list(self._workers):
            worker.wait()
        save_config(self._config)
        super().closeEvent(event)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    with timed("startup"):
        app = QApplication(sys.argv)
        app.setStyle("Fusion")

        window = PlayerWindow()
        window.show()
        if len(sys.argv) > 1:
            window.open_source(AudioSource.from_location(sys.argv[1]))

    sys.exit(app.exec())
