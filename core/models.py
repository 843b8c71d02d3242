from dataclasses import dataclass, field
from enum import Enum

import numpy as np

SAMPLE_RATE = 24000
NUM_CHANNELS = 1


class Testament(Enum):
    OLD = "Antigo Testamento"
    NEW = "Novo Testamento"


class PlaybackStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class Book:
    name: str
    chapters: int
    testament: Testament
    abbreviation: str = ""


@dataclass(frozen=True)
class Verse:
    number: int
    text: str


@dataclass(frozen=True)
class VoiceProfile:
    id: str
    name: str
    gender: str = ""
    style: str = ""


@dataclass(frozen=True)
class ChapterContent:
    book: str
    chapter: int
    verses: tuple
    summary: str = ""

    @classmethod
    def from_payload(cls, book, chapter, payload):
        verses = tuple(
            Verse(number=int(item["number"]), text=str(item["text"]))
            for item in payload.get("verses", [])
        )
        return cls(book=book, chapter=chapter, verses=verses, summary=payload.get("summary") or "")

    def to_payload(self):
        return {
            "verses": [{"number": v.number, "text": v.text} for v in self.verses],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded float32 samples, one array per channel."""

    channels: tuple = field(default_factory=tuple)
    sample_rate: int = SAMPLE_RATE

    @property
    def num_channels(self):
        return len(self.channels)

    @property
    def frame_count(self):
        if not self.channels:
            return 0
        return int(self.channels[0].shape[0])

    @property
    def duration_s(self):
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)

    def interleaved(self):
        if not self.channels:
            return np.zeros(0, dtype=np.float32)
        return np.stack(self.channels, axis=1).reshape(-1)
