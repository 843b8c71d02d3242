from abc import ABC, abstractmethod


class AudioSource(ABC):
    """A single playable buffer. Started at most once."""

    @abstractmethod
    def start(self):
        raise NotImplementedError

    @abstractmethod
    def stop(self):
        raise NotImplementedError

    @abstractmethod
    def on_ended(self, callback):
        """Register a callback fired once when the buffer plays to the end."""
        raise NotImplementedError


class AudioOutputPort(ABC):
    @abstractmethod
    def ensure_ready(self):
        """Create the output context on first use, resume it if suspended."""
        raise NotImplementedError

    @abstractmethod
    def create_source(self, buffer):
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError
