import numpy as np
import pytest

from voicewavelib.models import AmplitudeEnvelope, AudioSource, FileHandle, PlaybackPosition


def test_audio_source_needs_exactly_one_origin():
    with pytest.raises(ValueError):
        AudioSource()
    with pytest.raises(ValueError):
        AudioSource(location="a.wav", data=b"x")
    assert AudioSource.from_location("https://cdn.test/x/voice.mp3").name == "voice.mp3"
    assert AudioSource.from_location("https://cdn.test/voice.mp3").is_remote
    assert not AudioSource.from_bytes(b"x").is_remote


def test_envelope_values_are_read_only():
    env = AmplitudeEnvelope(np.ones(4), duration=1.0)
    with pytest.raises(ValueError):
        env.values[0] = 2.0
    assert AmplitudeEnvelope.empty().is_empty


@pytest.mark.parametrize("current, duration, expected", [
    (5.0, 10.0, 0.5),
    (12.0, 10.0, 1.0),
    (3.0, 0.0, 0.0),
])
def test_position_progress(current, duration, expected):
    assert PlaybackPosition(current, duration).progress == expected


def test_file_handle():
    handle = FileHandle("Notes.TXT", 1572864)
    assert handle.extension == ".txt"
    assert handle.size_mb == "1.50 MB"
    assert FileHandle("README").extension == ""
