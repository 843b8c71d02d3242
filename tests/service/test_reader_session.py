import asyncio

from core.catalog import BIBLE_BOOKS, find_book
from core.errors import MissingCredentialError
from core.models import ChapterContent, PlaybackStatus, Verse
from ui.reader_session import ReaderSession


class _FakeSequencer:
    def __init__(self):
        self.loads = []

    def load_chapter(self, verses, chapter_key=None):
        self.loads.append((tuple(verses), chapter_key))

    @property
    def status(self):
        return PlaybackStatus.IDLE


class _FakeRepository:
    def __init__(self):
        self.requests = []
        self.gates = {}
        self.errors = {}

    async def load(self, book_name, chapter):
        key = (book_name, chapter)
        self.requests.append(key)
        if key in self.gates:
            await self.gates[key].wait()
        if key in self.errors:
            raise self.errors[key]
        verses = (Verse(1, f"{book_name} {chapter}:1"), Verse(2, f"{book_name} {chapter}:2"))
        return ChapterContent(book_name, chapter, verses, summary=f"Resumo {book_name} {chapter}")


class _FakeView:
    def __init__(self):
        self.resets = 0

    def reset_scroll(self):
        self.resets += 1


def _session(repository=None):
    repository = repository or _FakeRepository()
    sequencer = _FakeSequencer()
    view = _FakeView()
    session = ReaderSession(repository, sequencer, view=view, log_callback=lambda _m: None)
    return session, repository, sequencer, view


def test_load_chapter_stops_audio_then_hands_verses_to_sequencer():
    session, _repo, sequencer, view = _session()
    genesis = find_book("Gênesis")

    content = asyncio.run(session.load_chapter(genesis, 1))

    assert content.verses[0].text == "Gênesis 1:1"
    assert sequencer.loads[0] == ((), "Gênesis 1")
    assert sequencer.loads[-1] == (content.verses, "Gênesis 1")
    assert view.resets == 1
    assert session.is_loading is False
    assert session.error is None
    assert session.context() == "Gênesis Capítulo 1: Resumo Gênesis 1"


def test_stale_chapter_result_is_ignored():
    async def scenario():
        repo = _FakeRepository()
        gate = asyncio.Event()
        repo.gates[("Gênesis", 1)] = gate
        session, _repo, sequencer, _view = _session(repo)

        slow = asyncio.ensure_future(session.load_chapter(find_book("Gênesis"), 1))
        await asyncio.sleep(0)
        fast = await session.load_chapter(find_book("Êxodo"), 1)

        gate.set()
        assert await slow is None
        assert session.content is fast
        assert session.chapter_key == "Êxodo 1"
        assert sequencer.loads[-1] == (fast.verses, "Êxodo 1")

    asyncio.run(scenario())


def test_missing_credential_sets_flag_and_error():
    repo = _FakeRepository()
    repo.errors[("Gênesis", 1)] = MissingCredentialError()
    session, _repo, _sequencer, _view = _session(repo)

    assert asyncio.run(session.load_chapter(find_book("Gênesis"), 1)) is None
    assert session.credential_missing is True
    assert "MISSING_API_KEY" in session.error
    assert session.content is None


def test_other_failures_are_shown_as_error():
    repo = _FakeRepository()
    repo.errors[("Gênesis", 1)] = RuntimeError("Failed to load the chapter.")
    session, _repo, _sequencer, _view = _session(repo)

    asyncio.run(session.load_chapter(find_book("Gênesis"), 1))

    assert session.credential_missing is False
    assert session.error == "Failed to load the chapter."
    assert session.is_loading is False


def test_navigate_crosses_book_boundaries_and_stops_at_ends():
    session, repo, _sequencer, _view = _session()

    asyncio.run(session.load_chapter(find_book("Gênesis"), 50))
    asyncio.run(session.navigate(1))
    assert session.chapter_key == "Êxodo 1"

    asyncio.run(session.navigate(-1))
    assert session.chapter_key == "Gênesis 50"

    asyncio.run(session.load_chapter(BIBLE_BOOKS[0], 1))
    requests = len(repo.requests)
    assert asyncio.run(session.navigate(-1)) is None
    assert len(repo.requests) == requests


def test_verse_index_looks_up_by_number():
    session, _repo, _sequencer, _view = _session()
    assert session.verse_index(1) is None

    asyncio.run(session.load_chapter(find_book("Gênesis"), 1))
    assert session.verse_index(2) == 1
    assert session.verse_index(99) is None
