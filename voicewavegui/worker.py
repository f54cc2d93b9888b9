"""Background worker thread for audio loading."""

from __future__ import annotations

from PySide6.QtCore import QThread, Signal

from voicewavelib.audio import DecodeError, FetchError, decode_frames
from voicewavelib.extractor import WaveformExtractor
from voicewavelib.models import AudioSource

from .log import timed


class AudioLoadWorker(QThread):
    """Fetches and decodes one source off the main thread.

    Emits the generation tag it was started with so the window can drop
    results of sources that were replaced in the meantime.
    """

    loaded = Signal(int, object, object, int)  # (generation, envelope, frames, samplerate)
    failed = Signal(int, str)                  # (generation, message)

    def __init__(self, extractor: WaveformExtractor, source: AudioSource,
                 generation: int):
        super().__init__()
        self._extractor = extractor
        self._source = source
        self._generation = generation

    @property
    def generation(self) -> int:
        return self._generation

    def run(self):
        try:
            with timed(f"load generation {self._generation}"):
                data = self._extractor.read(self._source)
                frames, samplerate = decode_frames(data, dtype="float32")
                envelope = self._extractor.envelope_from_frames(frames, samplerate)
        except (FetchError, DecodeError) as e:
            self.failed.emit(self._generation, str(e))
            return
        self.loaded.emit(self._generation, envelope, frames, samplerate)
