import asyncio
import io

from rich.console import Console

from core.assistant import ChatMessage
from core.catalog import AVAILABLE_VOICES, filter_books, find_book
from core.models import ChapterContent, PlaybackStatus, Verse
from ui.reader_app import ReaderApp
from ui.reader_view import (
    LABEL_CONTINUE,
    LABEL_LISTEN,
    LABEL_LOADING,
    LABEL_PAUSE,
    ConsoleReaderView,
    chapter_button_label,
    is_highlighted,
    verse_marker,
)


def _state(status=PlaybackStatus.IDLE, active=None, cursor=None, loading=False, error=None):
    return {
        "status": status,
        "active_verse_index": active,
        "cursor": cursor,
        "is_loading_audio": loading,
        "last_error": error,
        "voice": AVAILABLE_VOICES[0],
        "chapter": "Gênesis 1",
    }


def _view(lines=4):
    console = Console(file=io.StringIO(), width=100, color_system=None)
    return ConsoleReaderView(console=console, viewport_lines=lines)


def _output(view):
    return view.console.file.getvalue()


def test_chapter_button_label_follows_status():
    assert chapter_button_label(_state()) == LABEL_LISTEN
    assert chapter_button_label(_state(PlaybackStatus.LOADING)) == LABEL_LOADING
    assert chapter_button_label(_state(PlaybackStatus.PLAYING)) == LABEL_PAUSE
    assert chapter_button_label(_state(PlaybackStatus.PAUSED)) == LABEL_CONTINUE
    assert chapter_button_label(_state(PlaybackStatus.ERROR)) == LABEL_LISTEN


def test_verse_markers_and_highlight():
    loading = _state(PlaybackStatus.LOADING, cursor=2, loading=True)
    assert verse_marker(loading, 2) == "…"
    assert verse_marker(loading, 1) == " "

    playing = _state(PlaybackStatus.PLAYING, active=1, cursor=1)
    assert verse_marker(playing, 1) == "⏸"
    assert is_highlighted(playing, 1)
    assert not is_highlighted(playing, 0)

    paused = _state(PlaybackStatus.PAUSED, active=1, cursor=1)
    assert verse_marker(paused, 1) == "▶"


def test_viewport_visibility_and_centering():
    view = _view(lines=4)
    assert view.is_verse_visible(0)
    assert view.is_verse_visible(3)
    assert not view.is_verse_visible(4)

    view.scroll_to_verse(10)
    assert view.top == 8
    assert view.is_verse_visible(10)

    view.reset_scroll()
    assert view.top == 0


class _Session:
    def __init__(self, verses):
        self.book = find_book("Gênesis")
        self.chapter = 1
        self.content = ChapterContent("Gênesis", 1, verses, summary="A criação.")
        self.is_loading = False
        self.error = None
        self.credential_missing = False


def test_render_chapter_shows_window_and_remaining_count():
    verses = tuple(Verse(n, f"texto {n}") for n in range(1, 7))
    view = _view(lines=4)

    view.render_chapter(_Session(verses), _state(PlaybackStatus.PLAYING, active=0, cursor=0))

    out = _output(view)
    assert "Gênesis 1" in out
    assert "A criação." in out
    assert "texto 4" in out
    assert "texto 5" not in out
    assert "2 versículos abaixo" in out
    assert LABEL_PAUSE in out


def test_show_playback_skips_duplicate_states():
    verses = (Verse(1, "No princípio"),)
    view = _view()
    view.attach(_Session(verses))
    state = _state(PlaybackStatus.PLAYING, active=0, cursor=0)

    view.show_playback(state)
    first = _output(view)
    view.show_playback(dict(state))

    assert "No princípio" in first
    assert _output(view) == first


def test_show_playback_reports_errors():
    view = _view()
    view.show_playback(_state(error="Erro ao gerar áudio. Tente novamente em instantes."))
    assert "Erro ao gerar áudio" in _output(view)


def test_render_books_and_voices():
    view = _view()
    view.render_books(filter_books("reis"))
    view.render_voices(AVAILABLE_VOICES, selected=AVAILABLE_VOICES[2])

    out = _output(view)
    assert "Antigo Testamento" in out
    assert "Novo Testamento" not in out
    assert "1 Reis" in out
    assert f"* {AVAILABLE_VOICES[2].id}" in out


def test_render_messages_formats_markdown_replies():
    view = _view()
    view.render_messages([ChatMessage("user", "Quem?"), ChatMessage("ai", "**Deus** criou.")])

    out = _output(view)
    assert "Você: Quem?" in out
    assert "Deus criou." in out
    assert "**" not in out


class _FakeSequencer:
    def __init__(self):
        self.calls = []

    def get_state(self):
        return _state()

    async def play_from_verse(self, verse, index):
        self.calls.append(("play_from_verse", verse.number, index))

    async def toggle_chapter(self):
        self.calls.append(("toggle",))

    async def change_voice(self, voice):
        self.calls.append(("voice", voice.id))

    def stop(self):
        self.calls.append(("stop",))

    def dismiss_error(self):
        self.calls.append(("dismiss",))

    def close(self):
        self.calls.append(("close",))


def test_reader_app_dispatches_commands():
    async def scenario():
        session = _Session((Verse(1, "a"), Verse(2, "b")))
        session.sequencer = _FakeSequencer()
        view = _view()
        app = ReaderApp(session, view)
        session.verse_index = lambda number: number - 1 if number in (1, 2) else None

        assert await app.handle("2") is True
        assert await app.handle("p") is True
        assert await app.handle("v kore") is True
        assert await app.handle("v nobody") is True
        assert await app.handle("s") is True
        assert await app.handle("x") is True
        assert await app.handle("zzz") is True
        assert await app.handle("9") is True
        assert await app.handle("q") is False
        await asyncio.gather(*app._tasks)

        assert set(session.sequencer.calls) == {
            ("play_from_verse", 2, 1),
            ("toggle",),
            ("voice", "Kore"),
            ("stop",),
            ("dismiss",),
        }
        out = _output(view)
        assert "Unknown voice" in out
        assert "Unknown command" in out
        assert "Verse 9 not found" in out

    asyncio.run(scenario())


def test_reader_app_run_exits_on_eof_and_closes_sequencer():
    async def scenario():
        session = _Session((Verse(1, "a"),))
        session.sequencer = _FakeSequencer()
        lines = iter(["l"])

        def fake_input(_prompt):
            try:
                return next(lines)
            except StopIteration:
                raise EOFError

        app = ReaderApp(session, _view(), input_func=fake_input)
        await app.run()

        assert session.sequencer.calls[-1] == ("close",)

    asyncio.run(scenario())
