import json
import os
import re
from pathlib import Path

from core.models import ChapterContent

CACHE_PREFIX = "bible_content_v1_"


def _is_valid_payload(payload):
    return (
        isinstance(payload, dict)
        and isinstance(payload.get("verses"), list)
        and len(payload["verses"]) > 0
    )


class ChapterStore:
    """Key-value store of fetched chapter text, one JSON file per chapter."""

    def __init__(self, root, log_callback=None):
        self.root = Path(root)
        self.log_callback = log_callback

    def log(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            print(message)

    @staticmethod
    def cache_key(book_name, chapter_number):
        return f"{CACHE_PREFIX}{book_name}_{chapter_number}"

    def path_for(self, book_name, chapter_number):
        safe = re.sub(r"[^\w.-]+", "_", self.cache_key(book_name, chapter_number))
        return self.root / f"{safe}.json"

    def get(self, book_name, chapter_number):
        path = self.path_for(book_name, chapter_number)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self.log(f"Discarding unreadable cache entry {path.name}: {exc}")
            self._remove(path)
            return None
        if not _is_valid_payload(payload):
            self.log(f"Discarding corrupt cache entry {path.name}")
            self._remove(path)
            return None
        return payload

    def put(self, book_name, chapter_number, payload):
        path = self.path_for(book_name, chapter_number)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as file:
                json.dump(payload, file, ensure_ascii=False)
            os.replace(tmp_path, path)
            return True
        except OSError as exc:
            self.log(f"Could not save {path.name} to cache: {exc}")
            self._remove(tmp_path)
            return False

    def _remove(self, path):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.log(f"Could not remove {path.name}: {exc}")


class ChapterRepository:
    def __init__(self, service, store, log_callback=None):
        self.service = service
        self.store = store
        self.log_callback = log_callback

    def log(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            print(message)

    async def load(self, book_name, chapter_number):
        payload = self.store.get(book_name, chapter_number)
        if payload is not None:
            self.log(f"Loaded from cache: {book_name} {chapter_number}")
        else:
            payload = await self.service.fetch_chapter_content(book_name, chapter_number)
            self.store.put(book_name, chapter_number, payload)
        return ChapterContent.from_payload(book_name, chapter_number, payload)
