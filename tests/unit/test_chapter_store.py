import asyncio
import json

from system.chapter_store import CACHE_PREFIX, ChapterRepository, ChapterStore

PAYLOAD = {"verses": [{"number": 1, "text": "No princípio"}], "summary": "Criação"}


def test_cache_key_uses_versioned_prefix():
    assert ChapterStore.cache_key("Gênesis", 1) == f"{CACHE_PREFIX}Gênesis_1"


def test_put_then_get_round_trips_payload(tmp_path):
    store = ChapterStore(tmp_path, log_callback=lambda _m: None)

    assert store.put("1 Samuel", 3, PAYLOAD) is True
    assert store.get("1 Samuel", 3) == PAYLOAD
    assert not list(tmp_path.glob("*.tmp"))


def test_missing_entry_returns_none(tmp_path):
    store = ChapterStore(tmp_path, log_callback=lambda _m: None)
    assert store.get("Gênesis", 1) is None


def test_corrupt_entries_are_deleted(tmp_path):
    logs = []
    store = ChapterStore(tmp_path, log_callback=logs.append)
    path = store.path_for("Gênesis", 1)
    path.write_text("{oops", encoding="utf-8")

    assert store.get("Gênesis", 1) is None
    assert not path.exists()

    path.write_text(json.dumps({"verses": []}), encoding="utf-8")
    assert store.get("Gênesis", 1) is None
    assert not path.exists()
    assert len(logs) == 2


def test_put_failure_is_reported_not_raised(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")
    logs = []
    store = ChapterStore(blocker / "chapters", log_callback=logs.append)

    assert store.put("Gênesis", 1, PAYLOAD) is False
    assert logs


class _FakeService:
    def __init__(self):
        self.calls = []

    async def fetch_chapter_content(self, book_name, chapter):
        self.calls.append((book_name, chapter))
        return PAYLOAD


def test_repository_fetches_once_then_serves_from_store(tmp_path):
    service = _FakeService()
    repository = ChapterRepository(
        service, ChapterStore(tmp_path, log_callback=lambda _m: None), log_callback=lambda _m: None
    )

    first = asyncio.run(repository.load("Gênesis", 1))
    second = asyncio.run(repository.load("Gênesis", 1))

    assert service.calls == [("Gênesis", 1)]
    assert first == second
    assert first.verses[0].text == "No princípio"
    assert first.summary == "Criação"
