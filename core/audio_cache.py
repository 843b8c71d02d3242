import asyncio

from core.audio_decoder import decode_base64_pcm
from core.errors import AudioGenerationError


class VerseAudioCache:
    """
    Maps a verse index to one fetch-and-decode task for the current voice.
    Concurrent requests for the same index share the stored task.
    """

    def __init__(self, fetch_audio, decoder=decode_base64_pcm, debug=False):
        # fetch_audio: async (text, voice_id) -> base64 PCM string
        self.fetch_audio = fetch_audio
        self.decoder = decoder
        self.debug = debug
        self.voice_id = None
        self._entries = {}

    def debug_log(self, message):
        if self.debug:
            print(f"[DEBUG][VerseAudioCache] {message}")

    def __len__(self):
        return len(self._entries)

    def has(self, index):
        return index in self._entries

    def get_or_fetch(self, index, text, voice):
        if voice.id != self.voice_id:
            if self._entries:
                self.debug_log(f"Voice changed {self.voice_id} -> {voice.id}, discarding entries")
            self.clear()
            self.voice_id = voice.id

        task = self._entries.get(index)
        if task is not None:
            return task

        self.debug_log(f"Fetching verse {index} with voice {voice.id}")
        task = asyncio.ensure_future(self._fetch_and_decode(text, voice.id))
        self._entries[index] = task
        task.add_done_callback(lambda done, i=index: self._on_done(i, done))
        return task

    async def _fetch_and_decode(self, text, voice_id):
        payload = await self.fetch_audio(text, voice_id)
        if not payload:
            raise AudioGenerationError("Empty audio payload from TTS service.")
        return await asyncio.to_thread(self.decoder, payload)

    def _on_done(self, index, task):
        if task.cancelled():
            exc = "cancelled"
        else:
            exc = task.exception()
            if exc is None:
                return
        # Failed entries are dropped so the next explicit request re-fetches.
        if self._entries.get(index) is task:
            del self._entries[index]
        self.debug_log(f"Verse {index} failed: {exc}")

    def clear(self):
        self._entries = {}
