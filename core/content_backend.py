from abc import ABC, abstractmethod


class ContentBackend(ABC):
    @abstractmethod
    async def fetch_chapter_content(self, book_name, chapter_number):
        """Return {"verses": [{"number", "text"}, ...], "summary": str}."""
        raise NotImplementedError

    @abstractmethod
    async def get_verse_audio(self, text, voice_id):
        """Return base64 encoded 16-bit mono PCM at 24 kHz."""
        raise NotImplementedError

    @abstractmethod
    async def generate_bible_cover(self, prompt):
        raise NotImplementedError

    @abstractmethod
    async def ask_bible_assistant(self, query, context):
        raise NotImplementedError
