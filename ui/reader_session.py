from core.assistant import chapter_context
from core.catalog import BIBLE_BOOKS, step_chapter
from core.errors import MissingCredentialError

UNKNOWN_LOAD_ERROR = "Erro desconhecido ao carregar capítulo."


class ReaderSession:
    """
    Current book/chapter and its text. Chapter loads are a hard boundary for
    the sequencer: audio stops and the verse audio cache is discarded before
    the new text arrives.
    """

    def __init__(self, repository, sequencer, view=None, log_callback=None):
        self.repository = repository
        self.sequencer = sequencer
        self.view = view
        self.log_callback = log_callback
        self.book = BIBLE_BOOKS[0]
        self.chapter = 1
        self.content = None
        self.is_loading = False
        self.error = None
        self.credential_missing = False
        self._request_id = 0

    def log(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            print(message)

    @property
    def chapter_key(self):
        return f"{self.book.name} {self.chapter}"

    def context(self):
        summary = self.content.summary if self.content else ""
        return chapter_context(self.book.name, self.chapter, summary)

    async def load_chapter(self, book, chapter):
        self._request_id += 1
        request_id = self._request_id
        self.book = book
        self.chapter = chapter
        self.content = None
        self.is_loading = True
        self.error = None
        self.credential_missing = False
        self.sequencer.load_chapter((), chapter_key=self.chapter_key)
        if self.view is not None:
            self.view.reset_scroll()

        try:
            content = await self.repository.load(book.name, chapter)
        except MissingCredentialError as exc:
            if request_id != self._request_id:
                return None
            self.is_loading = False
            self.credential_missing = True
            self.error = str(exc)
            return None
        except Exception as exc:
            if request_id != self._request_id:
                return None
            self.log(f"Failed to load {book.name} {chapter}: {exc}")
            self.is_loading = False
            self.error = str(exc) or UNKNOWN_LOAD_ERROR
            return None

        # The reader may have moved on while this request was in flight.
        if request_id != self._request_id:
            self.log(f"Ignoring stale result for {book.name} {chapter}")
            return None

        self.content = content
        self.is_loading = False
        self.sequencer.load_chapter(content.verses, chapter_key=self.chapter_key)
        return content

    async def navigate(self, delta):
        target = step_chapter(self.book, self.chapter, delta)
        if target is None:
            return None
        return await self.load_chapter(*target)

    def verse_index(self, number):
        if self.content is None:
            return None
        for index, verse in enumerate(self.content.verses):
            if verse.number == number:
                return index
        return None
