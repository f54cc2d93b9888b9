import asyncio

import numpy as np
import pytest

from voicewavelib.audio import (
    DecodeError,
    FetchError,
    compute_envelope,
    decode_audio,
    decode_frames,
    fetch_bytes,
    format_time,
)


class TestComputeEnvelope:

    @pytest.mark.parametrize("length", [0, 1, 199, 200, 201, 399, 1000, 80000])
    def test_always_n_values(self, length):
        rng = np.random.default_rng(length)
        env = compute_envelope(rng.uniform(-1, 1, length), 200)
        assert env.shape == (200,)

    def test_fewer_samples_than_blocks_is_all_zero(self):
        env = compute_envelope(np.ones(150), 200)
        assert np.all(env == 0.0)

    def test_values_non_negative_for_signed_input(self):
        rng = np.random.default_rng(7)
        env = compute_envelope(rng.uniform(-1, 1, 10_000), 200)
        assert np.all(env >= 0.0)

    def test_block_mean_of_absolute_values(self):
        samples = np.array([1.0, -1.0, 0.5, -0.5, 0.25, -0.25, 9.0])
        env = compute_envelope(samples, 3)
        # block size 2, trailing sample dropped
        np.testing.assert_allclose(env, [1.0, 0.5, 0.25])

    def test_uses_first_channel_only(self):
        frames = np.column_stack([np.full(400, 0.5), np.full(400, -1.0)])
        env = compute_envelope(frames, 4)
        np.testing.assert_allclose(env, [0.5] * 4)

    def test_deterministic(self):
        samples = np.random.default_rng(3).normal(size=5000)
        np.testing.assert_array_equal(compute_envelope(samples, 200),
                                      compute_envelope(samples, 200))

    def test_rejects_non_positive_blocks(self):
        with pytest.raises(ValueError):
            compute_envelope(np.ones(10), 0)


class TestDecode:

    def test_decode_tone(self, tone_wav):
        samples, sr, duration = decode_audio(tone_wav)
        assert sr == 8000
        assert samples.ndim == 1
        assert duration == pytest.approx(10.0)

    def test_decode_frames_keeps_channels(self, wav_factory):
        frames, sr = decode_frames(wav_factory(1.0, channels=2), dtype="float32")
        assert frames.shape == (8000, 2)
        assert frames.dtype == np.float32

    def test_empty_bytes(self):
        with pytest.raises(DecodeError):
            decode_audio(b"")

    def test_garbage_bytes(self):
        with pytest.raises(DecodeError):
            decode_audio(b"definitely not audio" * 100)


class TestFetch:

    def test_reads_local_file(self, tmp_path, tone_wav):
        path = tmp_path / "tone.wav"
        path.write_bytes(tone_wav)
        assert asyncio.run(fetch_bytes(str(path))) == tone_wav

    def test_missing_file(self, tmp_path):
        with pytest.raises(FetchError):
            asyncio.run(fetch_bytes(str(tmp_path / "nope.wav")))


@pytest.mark.parametrize("seconds, expected", [
    (0, "0:00"),
    (5.9, "0:05"),
    (65, "1:05"),
    (600, "10:00"),
    (float("nan"), "0:00"),
    (-3, "0:00"),
])
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected
