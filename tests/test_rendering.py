import numpy as np
import pytest

from voicewavelib.extractor import WaveformExtractor
from voicewavelib.models import AmplitudeEnvelope, AudioSource, PlaybackPosition
from voicewavelib.rendering import (
    BarRenderCtx,
    WaveformRenderer,
    bar_layout,
    parse_color,
    progress_fraction,
    render_text,
    x_to_fraction,
    x_to_seconds,
)


def _flat(n: int, value: float = 0.5, duration: float = 10.0) -> AmplitudeEnvelope:
    return AmplitudeEnvelope(np.full(n, value), duration=duration, samplerate=8000)


def test_half_played_tone_colours_exactly_half(tone_wav):
    envelope = WaveformExtractor(200).extract(AudioSource.from_bytes(tone_wav))
    position = PlaybackPosition(current_time=5.0, duration=10.0, is_playing=True)
    bars = WaveformRenderer().layout(envelope, position)
    assert len(bars) == 200
    assert sum(b.played for b in bars) == 100
    assert bars[99].played and not bars[100].played


@pytest.mark.parametrize("t, expected", [(0, 0.0), (2.5, 0.25), (10, 1.0), (15, 1.0), (-1, 0.0)])
def test_progress_fraction(t, expected):
    assert progress_fraction(t, 10.0) == expected


def test_progress_fraction_zero_duration():
    assert progress_fraction(3.0, 0.0) == 0.0


def test_zero_duration_nothing_played():
    bars = bar_layout(_flat(10, duration=0.0), BarRenderCtx(100, 40),
                      PlaybackPosition(3.0, 0.0).progress)
    assert not any(b.played for b in bars)


def test_full_progress_everything_played():
    bars = bar_layout(_flat(10), BarRenderCtx(100, 40), 1.0)
    assert all(b.played for b in bars)


def test_bar_geometry():
    bars = bar_layout(AmplitudeEnvelope([0.5, 1.0, 2.0, 0.0]),
                      BarRenderCtx(400, 80, height_ratio=0.8, bar_gap=1), 0.0)
    assert [b.x for b in bars] == [0.0, 100.0, 200.0, 300.0]
    assert all(b.w == 99.0 for b in bars)
    assert bars[0].h == pytest.approx(32.0)
    assert bars[0].y == pytest.approx(24.0)
    assert bars[1].h == pytest.approx(64.0)
    # capped at the surface height
    assert bars[2].h == pytest.approx(80.0)
    assert bars[3].h == 0.0


def test_gap_dropped_when_slot_too_narrow():
    bars = bar_layout(_flat(400), BarRenderCtx(200, 40, bar_gap=1), 0.0)
    assert bars[0].w == pytest.approx(0.5)


def test_x_to_fraction_clamps():
    assert x_to_fraction(-20, 400) == 0.0
    assert x_to_fraction(500, 400) == 1.0
    assert x_to_fraction(100, 400) == 0.25


def test_x_to_seconds_zero_duration():
    assert x_to_seconds(200, 400, 0.0) == 0.0


@pytest.mark.parametrize("width, n, duration", [(400, 200, 10.0), (333, 200, 7.3), (120, 50, 0.5)])
def test_click_round_trip_within_one_bar(width, n, duration):
    ctx = BarRenderCtx(width, 80)
    envelope = _flat(n, duration=duration)
    slot = width / n
    for x in np.linspace(0, width, 401):
        target = x_to_seconds(x, width, duration)
        fraction = progress_fraction(target, duration)
        assert fraction * width == pytest.approx(x, abs=1e-9)
        played = sum(b.played for b in bar_layout(envelope, ctx, fraction))
        assert abs(played * slot - x) <= slot + 1e-9


def test_paint_idle_surface_is_transparent():
    surface = WaveformRenderer(40, 20).paint(AmplitudeEnvelope.empty(), PlaybackPosition())
    assert surface.shape == (20, 40, 4)
    assert surface.dtype == np.uint8
    assert not surface.any()


def test_paint_uses_played_and_unplayed_colours():
    renderer = WaveformRenderer(40, 20, bar_gap=0,
                                played_color="#FF0000", unplayed_color="#00FF00")
    surface = renderer.paint(_flat(4, value=1.0), PlaybackPosition(5.0, 10.0))
    middle = surface[10]
    assert tuple(middle[0]) == (255, 0, 0, 255)
    assert tuple(middle[39]) == (0, 255, 0, 255)


def test_renderer_from_config_and_played_count():
    renderer = WaveformRenderer.from_config({"canvas_width": 100, "canvas_height": 10})
    assert (renderer.ctx.width, renderer.ctx.height) == (100, 10)
    assert renderer.played_count(_flat(200), PlaybackPosition(2.5, 10.0)) == 50


def test_parse_color():
    assert parse_color("#3B82F6") == (0x3B, 0x82, 0xF6, 255)
    assert parse_color("00000080") == (0, 0, 0, 128)
    with pytest.raises(ValueError):
        parse_color("#123")


def test_render_text():
    text, played = render_text(_flat(200), 0.5, width=40)
    assert len(text) == 40
    assert played == 20
    assert render_text(AmplitudeEnvelope.empty(), 0.5) == ("", 0)
