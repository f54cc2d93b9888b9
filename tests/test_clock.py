import pytest

from conftest import FakeMedia
from voicewavelib.clock import ENDED, LOADED_METADATA, TIME_UPDATE, PlaybackClock


@pytest.fixture
def loaded():
    media = FakeMedia()
    clock = PlaybackClock(media)
    media.load(10.0)
    return media, clock


def test_initial_position_without_source(media):
    clock = PlaybackClock(media)
    pos = clock.position
    assert (pos.current_time, pos.duration, pos.is_playing) == (0.0, 0.0, False)
    assert pos.progress == 0.0


def test_loadedmetadata_sets_duration(loaded):
    _media, clock = loaded
    assert clock.position.duration == 10.0


@pytest.mark.parametrize("target, expected", [(-5, 0.0), (4.2, 4.2), (110, 10.0)])
def test_seek_clamps(loaded, target, expected):
    media, clock = loaded
    assert clock.seek(target) == expected
    assert clock.position.current_time == expected
    assert media.current_time == expected


def test_seek_without_source_stays_at_zero(media):
    clock = PlaybackClock(media)
    assert clock.seek(3.0) == 0.0
    assert clock.position.current_time == 0.0


def test_toggle_playback(loaded):
    media, clock = loaded
    assert clock.toggle_playback() is True
    assert media.playing
    assert clock.toggle_playback() is False
    assert not media.playing


def test_play_is_idempotent(loaded):
    _media, clock = loaded
    seen = []
    clock.subscribe(lambda position: seen.append(position))
    clock.play()
    clock.play()
    assert len(seen) == 1


def test_play_without_source(media):
    clock = PlaybackClock(media)
    assert clock.toggle_playback() is False
    assert not clock.position.is_playing


def test_play_refused_by_media():
    media = FakeMedia(duration=10.0, playable=False)
    clock = PlaybackClock(media)
    before = clock.position
    assert clock.play() is False
    assert clock.position == before


def test_timeupdate_is_authoritative(loaded):
    media, clock = loaded
    clock.play()
    clock.seek(8.0)
    media.advance(2.5)
    assert clock.position.current_time == 2.5


def test_ended_stops_at_duration(loaded):
    media, clock = loaded
    clock.play()
    media.advance(9.9)
    media.end()
    pos = clock.position
    assert not pos.is_playing
    assert pos.current_time == 10.0
    assert pos.progress == 1.0


def test_restart_keeps_playing_state(loaded):
    media, clock = loaded
    clock.play()
    media.advance(6.0)
    clock.restart()
    assert clock.position.current_time == 0.0
    assert clock.position.is_playing
    assert media.current_time == 0.0


def test_subscribers_get_every_change_in_order(loaded):
    media, clock = loaded
    times = []
    unsubscribe = clock.subscribe(lambda position: times.append(position.current_time))
    for t in (1.0, 2.0, 3.0):
        media.advance(t)
    unsubscribe()
    unsubscribe()
    media.advance(4.0)
    assert times == [1.0, 2.0, 3.0]


def test_set_volume_clamps(loaded):
    media, clock = loaded
    assert clock.set_volume(1.7) == 1.0
    assert clock.set_volume(-2) == 0.0
    assert media.volume == 0.0


def test_reset_after_new_source(loaded):
    media, clock = loaded
    clock.play()
    media.advance(5.0)
    media._duration = 3.0
    clock.reset()
    pos = clock.position
    assert (pos.current_time, pos.duration, pos.is_playing) == (0.0, 3.0, False)


def test_close_detaches_from_media(loaded):
    media, clock = loaded
    clock.close()
    for event in (TIME_UPDATE, LOADED_METADATA, ENDED):
        assert media.listeners.get(event) == []
    media.advance(3.0)
    assert clock.position.current_time == 0.0
