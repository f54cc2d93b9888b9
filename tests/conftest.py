"""Shared fixtures: synthetic audio and a fake media element."""

import io
import math

import numpy as np
import pytest
import soundfile as sf

from voicewavelib.clock import ENDED, LOADED_METADATA, TIME_UPDATE, MediaError


def make_wav(seconds: float, samplerate: int = 8000, channels: int = 1,
             freq: float = 440.0, amplitude: float = 0.5) -> bytes:
    """A sine tone encoded as an in-memory WAV file."""
    t = np.arange(int(seconds * samplerate)) / samplerate
    tone = amplitude * np.sin(2 * np.pi * freq * t)
    data = np.column_stack([tone] * channels) if channels > 1 else tone
    buf = io.BytesIO()
    sf.write(buf, data, samplerate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


@pytest.fixture
def tone_wav():
    """10 seconds of 440 Hz at 8 kHz."""
    return make_wav(10.0)


@pytest.fixture
def wav_factory():
    return make_wav


class FakeMedia:
    """In-memory media element; tests drive its notifications by hand."""

    def __init__(self, duration: float = math.nan, playable: bool = True):
        self._duration = duration
        self._time = 0.0
        self.volume = 1.0
        self.playing = False
        self.playable = playable
        self.has_source = not math.isnan(duration)
        self.listeners: dict[str, list] = {}

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def current_time(self) -> float:
        return self._time

    @current_time.setter
    def current_time(self, value: float) -> None:
        if not self.has_source:
            raise MediaError("no source")
        self._time = value

    def play(self) -> None:
        if not self.playable:
            raise MediaError("not allowed")
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def add_listener(self, event, handler) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler) -> None:
        self.listeners.get(event, []).remove(handler)

    # test helpers

    def fire(self, event: str) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler()

    def load(self, duration: float) -> None:
        self._duration = duration
        self._time = 0.0
        self.has_source = True
        self.fire(LOADED_METADATA)

    def advance(self, seconds: float) -> None:
        self._time = seconds
        self.fire(TIME_UPDATE)

    def end(self) -> None:
        self._time = self._duration
        self.playing = False
        self.fire(ENDED)


@pytest.fixture
def media():
    return FakeMedia()
