import asyncio

import numpy as np

from adapters import pygame_output
from adapters.pygame_output import PygameAudioOutput, PygameAudioSource, _resample
from core.models import AudioBuffer


class _FakeChannel:
    def __init__(self, busy_polls=2):
        self.busy_polls = busy_polls
        self.played = []
        self.stopped = False

    def play(self, sound):
        self.played.append(sound)

    def get_busy(self):
        if self.stopped:
            return False
        self.busy_polls -= 1
        return self.busy_polls >= 0

    def stop(self):
        self.stopped = True


def _patch_mixer(monkeypatch, channel, init=(24000, -16, 1)):
    monkeypatch.setattr(pygame_output, "POLL_INTERVAL_S", 0.001)
    monkeypatch.setattr(pygame_output.pygame.mixer, "find_channel", lambda force=False: channel)
    monkeypatch.setattr(pygame_output.pygame.mixer, "get_init", lambda: init)
    monkeypatch.setattr(pygame_output.pygame.mixer, "init", lambda **kwargs: None)
    monkeypatch.setattr(pygame_output.pygame.mixer, "unpause", lambda: None)
    monkeypatch.setattr(pygame_output.pygame.mixer, "Sound", lambda buffer: buffer)


def test_source_fires_on_ended_once_channel_goes_idle(monkeypatch):
    channel = _FakeChannel(busy_polls=2)
    _patch_mixer(monkeypatch, channel)

    async def scenario():
        ended = []
        source = PygameAudioSource("sound")
        source.on_ended(lambda: ended.append(True))
        source.start()
        for _ in range(200):
            if ended:
                break
            await asyncio.sleep(0.001)
        return ended

    assert asyncio.run(scenario()) == [True]
    assert channel.played == ["sound"]


def test_stopped_source_never_reports_completion(monkeypatch):
    channel = _FakeChannel(busy_polls=1000)
    _patch_mixer(monkeypatch, channel)

    async def scenario():
        ended = []
        source = PygameAudioSource("sound")
        source.on_ended(lambda: ended.append(True))
        source.start()
        source.stop()
        await asyncio.sleep(0.02)
        return ended

    assert asyncio.run(scenario()) == []
    assert channel.stopped is True


def test_create_source_converts_to_mixer_format(monkeypatch):
    _patch_mixer(monkeypatch, _FakeChannel(), init=(48000, -16, 2))
    samples = np.array([0.0, 0.25, 0.5, 0.75], dtype=np.float32)
    buffer = AudioBuffer(channels=(samples,), sample_rate=24000)

    source = PygameAudioOutput().create_source(buffer)

    pcm = np.frombuffer(source.sound, dtype="<i2").reshape(-1, 2)
    assert pcm.shape == (8, 2)
    assert (pcm[:, 0] == pcm[:, 1]).all()
    assert pcm[0, 0] == 0
    assert pcm[-1, 0] == int(0.75 * 32768)


def test_resample_keeps_endpoints():
    pcm = np.array([[0], [100], [200]], dtype="<i2")
    out = _resample(pcm, 24000, 48000)
    assert out.shape == (6, 1)
    assert out[0, 0] == 0
    assert out[-1, 0] == 200
