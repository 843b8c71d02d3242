import asyncio

from core.audio_cache import VerseAudioCache
from core.errors import describe_error
from core.models import PlaybackStatus
from core.prefetch import PrefetchScheduler


class PlaybackSequencer:
    """
    Owns what is currently sounding for one chapter.

    Every run of play_chapter captures a generation token. stop, pause,
    chapter loads and voice changes bump the token, so continuations from
    an older run (a late fetch, a completion callback) become no-ops.
    """

    def __init__(
        self,
        output,
        fetch_audio,
        voice,
        view=None,
        on_state_change=None,
        prefetch_window=1,
        debug=False,
        log_callback=None,
    ):
        self.output = output
        self.view = view
        self.on_state_change = on_state_change
        self.debug = debug
        self.log_callback = log_callback
        self.voice = voice
        self.cache = VerseAudioCache(fetch_audio, debug=debug)
        self.prefetcher = PrefetchScheduler(self.cache, window=prefetch_window, log_callback=self.log)

        self.verses = ()
        self.chapter_key = None
        self.status = PlaybackStatus.IDLE
        self.cursor = None
        self.active_index = None
        self.is_loading_audio = False
        self.last_error = None

        self._source = None
        self._generation = 0
        self._advance_task = None

    def debug_log(self, message):
        if self.debug:
            print(f"[DEBUG][PlaybackSequencer] {message}")

    def log(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            print(message)

    def get_state(self):
        return {
            "status": self.status,
            "active_verse_index": self.active_index,
            "cursor": self.cursor,
            "is_loading_audio": self.is_loading_audio,
            "last_error": self.last_error,
            "voice": self.voice,
            "chapter": self.chapter_key,
        }

    def update_state(self):
        if self.on_state_change:
            self.on_state_change(self.get_state())

    def _set_status(self, status):
        if status is not self.status:
            self.debug_log(f"{self.status.value} -> {status.value}")
        self.status = status

    def load_chapter(self, verses, chapter_key=None):
        self.stop()
        self.verses = tuple(verses)
        self.chapter_key = chapter_key
        self.last_error = None
        self.debug_log(f"Loaded chapter {chapter_key} with {len(self.verses)} verses")
        self.update_state()

    async def play_chapter(self, start_index=0):
        self._generation += 1
        token = self._generation
        verses = self.verses

        if start_index is None or start_index < 0 or start_index >= len(verses):
            self._finish()
            return

        self._stop_source()
        self.cursor = start_index
        self.last_error = None
        cached = self.cache.voice_id == self.voice.id and self.cache.has(start_index)
        self._set_status(PlaybackStatus.LOADING)
        self.is_loading_audio = not cached
        self.update_state()

        verse = verses[start_index]
        try:
            self.output.ensure_ready()
            self.prefetcher.prefetch(start_index, verses, self.voice)
            buffer = await self._fetch_for_playback(start_index, verse, token)
            if token != self._generation or self.status is not PlaybackStatus.LOADING:
                self.debug_log(f"Discarding stale buffer for verse index {start_index}")
                return
            self.is_loading_audio = False
            self._start_buffer(buffer, start_index, token)
        except Exception as exc:
            if token != self._generation:
                self.debug_log(f"Dropping failure from superseded run: {exc}")
                return
            self._fail(exc)

    async def _fetch_for_playback(self, index, verse, token):
        task = self.cache.get_or_fetch(index, verse.text, self.voice)
        try:
            # Shared with prefetch callers, so cancelling this run must not cancel the fetch.
            return await asyncio.shield(task)
        except Exception as exc:
            if token != self._generation or not self.prefetcher.started(index, task):
                raise
            # A failed prefetch gets one playback fetch of its own before it is reported.
            self.log(f"Prefetched audio for verse index {index} failed, fetching again: {exc}")
            self.prefetcher.forget(index)
            self.is_loading_audio = True
            self.update_state()
            task = self.cache.get_or_fetch(index, verse.text, self.voice)
            return await asyncio.shield(task)

    def _start_buffer(self, buffer, index, token):
        self._stop_source()
        source = self.output.create_source(buffer)
        source.on_ended(lambda: self._on_source_ended(source, index, token))
        self._source = source
        self._set_status(PlaybackStatus.PLAYING)
        self.active_index = index
        self._reveal(index)
        self.debug_log(f"Playing verse index {index} ({buffer.duration_s:.1f}s)")
        source.start()
        self.update_state()

    def _reveal(self, index):
        if self.view is None:
            return
        if not self.view.is_verse_visible(index):
            self.view.scroll_to_verse(index)

    def _on_source_ended(self, source, index, token):
        if source is self._source:
            self._source = None
        if token != self._generation or self.status is not PlaybackStatus.PLAYING:
            return
        self._advance(index)

    def _advance(self, index):
        self._advance_task = asyncio.ensure_future(self.play_chapter(index + 1))

    def _finish(self):
        self._stop_source()
        self._set_status(PlaybackStatus.IDLE)
        self.cursor = None
        self.active_index = None
        self.is_loading_audio = False
        self.update_state()

    def _fail(self, exc):
        self.log(f"Audio playback failed at verse index {self.cursor}: {exc}")
        self._generation += 1
        self._stop_source()
        self.last_error = describe_error(exc)
        self.is_loading_audio = False
        self._set_status(PlaybackStatus.ERROR)
        self.update_state()
        self._finish()

    def _stop_source(self):
        source = self._source
        self._source = None
        if source is None:
            return
        try:
            source.stop()
        except Exception as exc:
            self.debug_log(f"Source stop failed: {exc}")

    def pause(self):
        if self.status is not PlaybackStatus.PLAYING:
            self.debug_log(f"pause ignored while {self.status.value}")
            return False
        self._generation += 1
        self._stop_source()
        self._set_status(PlaybackStatus.PAUSED)
        self.update_state()
        return True

    async def resume(self):
        if self.status is not PlaybackStatus.PAUSED:
            self.debug_log(f"resume ignored while {self.status.value}")
            return False
        await self.play_chapter(self.cursor)
        return True

    def stop(self):
        self._generation += 1
        self._stop_source()
        self.cache.clear()
        self.prefetcher.clear()
        self._set_status(PlaybackStatus.IDLE)
        self.cursor = None
        self.active_index = None
        self.is_loading_audio = False
        self.update_state()

    async def play_from_verse(self, verse, index):
        if index == self.active_index and self.status in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
            if self.status is PlaybackStatus.PAUSED:
                await self.resume()
            else:
                self.pause()
            return
        self.debug_log(f"Jumping to verse {verse.number} (index {index})")
        self.stop()
        await self.play_chapter(index)

    async def toggle_chapter(self):
        if self.status is PlaybackStatus.PLAYING:
            self.pause()
        elif self.status is PlaybackStatus.PAUSED:
            await self.resume()
        elif self.status is PlaybackStatus.LOADING:
            self.debug_log("toggle ignored while loading")
        else:
            await self.play_chapter(0)

    async def change_voice(self, voice):
        self.voice = voice
        self.cache.clear()
        self.prefetcher.clear()
        if self.status in (PlaybackStatus.PLAYING, PlaybackStatus.LOADING):
            cursor = self.cursor
            self.stop()
            # Let callbacks queued by the stop run before restarting.
            await asyncio.sleep(0)
            await self.play_chapter(cursor)
        else:
            self.update_state()

    def dismiss_error(self):
        self.last_error = None
        self.update_state()

    def close(self):
        self.stop()
        task = self._advance_task
        if task is not None and not task.done():
            task.cancel()
        self._advance_task = None
        self.output.close()
