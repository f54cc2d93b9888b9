import asyncio

import httpx
import pytest

from voicewavelib.audio import DecodeError, FetchError, decode_frames
from voicewavelib.extractor import WaveformExtractor
from voicewavelib.models import AmplitudeEnvelope, AudioSource


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_load_from_bytes(tone_wav):
    ex = WaveformExtractor(200)
    env = await ex.load(AudioSource.from_bytes(tone_wav, "tone.wav"))
    assert len(env) == 200
    assert env.duration == pytest.approx(10.0)
    assert ex.envelope is env
    assert ex.last_error is None


@pytest.mark.asyncio
async def test_load_over_http(tone_wav):
    async def handler(request):
        return httpx.Response(200, content=tone_wav)

    async with _client(handler) as client:
        ex = WaveformExtractor(50, client=client)
        env = await ex.load(AudioSource.from_location("https://cdn.test/a.wav"))
    assert len(env) == 50


@pytest.mark.asyncio
async def test_http_error_gives_empty_envelope():
    async def handler(request):
        return httpx.Response(404)

    async with _client(handler) as client:
        ex = WaveformExtractor(client=client)
        env = await ex.load(AudioSource.from_location("https://cdn.test/missing.wav"))
    assert env.is_empty
    assert isinstance(ex.last_error, FetchError)


@pytest.mark.asyncio
async def test_corrupt_audio_gives_empty_envelope():
    ex = WaveformExtractor()
    env = await ex.load(AudioSource.from_bytes(b"\x00\x01garbage" * 64))
    assert env.is_empty
    assert isinstance(ex.last_error, DecodeError)


@pytest.mark.asyncio
async def test_stale_load_is_dropped(tone_wav, wav_factory):
    gate = asyncio.Event()
    short = wav_factory(2.0)

    async def handler(request):
        if request.url.path == "/slow.wav":
            await gate.wait()
            return httpx.Response(200, content=tone_wav)
        return httpx.Response(200, content=short)

    async with _client(handler) as client:
        ex = WaveformExtractor(200, client=client)
        slow = asyncio.create_task(
            ex.load(AudioSource.from_location("http://cdn.test/slow.wav")))
        await asyncio.sleep(0)
        fast = await ex.load(AudioSource.from_location("http://cdn.test/fast.wav"))
        gate.set()
        assert await slow is None

    assert ex.envelope is fast
    assert ex.envelope.duration == pytest.approx(2.0)


def test_accept_rejects_old_generation():
    ex = WaveformExtractor(4)
    first = ex.begin(AudioSource.from_bytes(b"a"))
    second = ex.begin(AudioSource.from_bytes(b"b"))
    stale = AmplitudeEnvelope([1.0, 1.0, 1.0, 1.0], duration=1.0)
    assert not ex.accept(first, stale)
    assert ex.envelope.is_empty
    assert ex.accept(second, stale)
    assert ex.envelope is stale


def test_subscribers_see_clear_then_result(tone_wav):
    ex = WaveformExtractor(10)
    seen = []
    unsubscribe = ex.subscribe(lambda envelope, generation: seen.append(len(envelope)))
    asyncio.run(ex.load(AudioSource.from_bytes(tone_wav)))
    assert seen == [0, 10]
    unsubscribe()
    unsubscribe()
    asyncio.run(ex.load(AudioSource.from_bytes(tone_wav)))
    assert seen == [0, 10]


def test_extract_local_file(tmp_path, tone_wav):
    path = tmp_path / "tone.wav"
    path.write_bytes(tone_wav)
    env = WaveformExtractor(100).extract(AudioSource.from_location(str(path)))
    assert len(env) == 100
    assert env.samplerate == 8000


def test_extract_missing_file_raises(tmp_path):
    with pytest.raises(FetchError):
        WaveformExtractor().extract(AudioSource.from_location(str(tmp_path / "x.wav")))


def test_envelope_from_frames_matches_extract(tone_wav):
    ex = WaveformExtractor(200)
    frames, sr = decode_frames(tone_wav)
    a = ex.envelope_from_frames(frames, sr)
    b = ex.extract(AudioSource.from_bytes(tone_wav))
    assert a.duration == pytest.approx(b.duration)
    assert list(a.values) == pytest.approx(list(b.values))


def test_blocks_must_be_positive():
    with pytest.raises(ValueError):
        WaveformExtractor(0)
