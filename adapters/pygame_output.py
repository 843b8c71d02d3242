import asyncio

import numpy as np
import pygame

from core.audio_decoder import encode_pcm
from core.audio_output import AudioOutputPort, AudioSource
from core.models import NUM_CHANNELS, SAMPLE_RATE

POLL_INTERVAL_S = 0.05


class PygameAudioSource(AudioSource):
    """Plays one pygame Sound; completion is detected by polling its channel."""

    def __init__(self, sound):
        self.sound = sound
        self.channel = None
        self._callback = None
        self._started = False
        self._stopped = False
        self._handle = None
        self._loop = None

    def on_ended(self, callback):
        self._callback = callback

    def start(self):
        if self._started:
            raise RuntimeError("Audio source can only be started once.")
        self._started = True
        self._loop = asyncio.get_running_loop()
        self.channel = pygame.mixer.find_channel(True)
        self.channel.play(self.sound)
        self._schedule_poll()

    def _schedule_poll(self):
        self._handle = self._loop.call_later(POLL_INTERVAL_S, self._poll)

    def _poll(self):
        self._handle = None
        if self._stopped:
            return
        if self.channel is not None and self.channel.get_busy():
            self._schedule_poll()
            return
        self._stopped = True
        if self._callback:
            self._callback()

    def stop(self):
        if self._stopped:
            return
        self._stopped = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self.channel is not None:
            self.channel.stop()


class PygameAudioOutput(AudioOutputPort):
    def __init__(self, sample_rate=SAMPLE_RATE, channels=NUM_CHANNELS, debug=False):
        self.sample_rate = sample_rate
        self.channels = channels
        self.debug = debug

    def debug_log(self, message):
        if self.debug:
            print(f"[DEBUG][PygameAudioOutput] {message}")

    def ensure_ready(self):
        if not pygame.mixer.get_init():
            pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=self.channels)
            self.debug_log(f"Mixer initialized: {pygame.mixer.get_init()}")
        pygame.mixer.unpause()

    def create_source(self, buffer):
        self.ensure_ready()
        frequency, _size, mixer_channels = pygame.mixer.get_init()
        pcm = np.frombuffer(encode_pcm(buffer), dtype="<i2").reshape(-1, max(1, buffer.num_channels))
        if frequency != buffer.sample_rate and pcm.shape[0] > 0:
            self.debug_log(f"Resampling {buffer.sample_rate} Hz -> {frequency} Hz")
            pcm = _resample(pcm, buffer.sample_rate, frequency)
        if mixer_channels != pcm.shape[1]:
            pcm = np.repeat(pcm[:, :1], mixer_channels, axis=1)
        sound = pygame.mixer.Sound(buffer=np.ascontiguousarray(pcm).tobytes())
        return PygameAudioSource(sound)

    def close(self):
        if pygame.mixer.get_init():
            pygame.mixer.quit()
            self.debug_log("Mixer closed")


def _resample(pcm, source_rate, target_rate):
    frames = pcm.shape[0]
    target_frames = max(1, int(round(frames * target_rate / float(source_rate))))
    source_positions = np.arange(frames)
    target_positions = np.linspace(0, frames - 1, target_frames)
    columns = [
        np.interp(target_positions, source_positions, pcm[:, c]).astype("<i2")
        for c in range(pcm.shape[1])
    ]
    return np.stack(columns, axis=1)
