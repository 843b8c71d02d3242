import base64

import numpy as np

from core.models import NUM_CHANNELS, SAMPLE_RATE, AudioBuffer

PCM_SCALE = 32768.0
BYTES_PER_SAMPLE = 2


def decode_pcm(data, sample_rate=SAMPLE_RATE, num_channels=NUM_CHANNELS):
    """
    Convert interleaved little-endian int16 PCM into an AudioBuffer.
    A trailing partial frame is dropped rather than treated as an error.
    """
    if num_channels < 1:
        raise ValueError(f"num_channels must be >= 1, got {num_channels}")
    frame_bytes = BYTES_PER_SAMPLE * num_channels
    usable = len(data) - (len(data) % frame_bytes)
    samples = np.frombuffer(memoryview(data)[:usable], dtype="<i2")
    frame_count = samples.shape[0] // num_channels

    channels = []
    for channel in range(num_channels):
        channel_data = samples[channel::num_channels].astype(np.float32) / PCM_SCALE
        channel_data.setflags(write=False)
        channels.append(channel_data[:frame_count])
    return AudioBuffer(channels=tuple(channels), sample_rate=sample_rate)


def decode_base64_pcm(payload, sample_rate=SAMPLE_RATE, num_channels=NUM_CHANNELS):
    raw = base64.b64decode(payload)
    return decode_pcm(raw, sample_rate=sample_rate, num_channels=num_channels)


def encode_pcm(buffer):
    """Inverse of decode_pcm, used when handing samples to int16 mixers."""
    interleaved = buffer.interleaved()
    clipped = np.clip(interleaved * PCM_SCALE, -PCM_SCALE, PCM_SCALE - 1)
    return clipped.astype("<i2").tobytes()
