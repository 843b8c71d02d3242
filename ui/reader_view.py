from abc import ABC, abstractmethod

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from core.catalog import group_by_testament
from core.models import PlaybackStatus

LABEL_LISTEN = "Ouvir Capítulo"
LABEL_PAUSE = "Pausar Leitura"
LABEL_CONTINUE = "Continuar Leitura"
LABEL_LOADING = "Carregando Áudio..."


def chapter_button_label(state):
    status = state["status"]
    if status is PlaybackStatus.LOADING:
        return LABEL_LOADING
    if status is PlaybackStatus.PLAYING:
        return LABEL_PAUSE
    if status is PlaybackStatus.PAUSED:
        return LABEL_CONTINUE
    return LABEL_LISTEN


def verse_marker(state, index):
    status = state["status"]
    if status is PlaybackStatus.LOADING and state["is_loading_audio"] and state["cursor"] == index:
        return "…"
    if state["active_verse_index"] == index:
        return "⏸" if status is PlaybackStatus.PLAYING else "▶"
    return " "


def is_highlighted(state, index):
    return state["active_verse_index"] == index


class ReaderView(ABC):
    """What the sequencer needs from whatever displays the chapter."""

    @abstractmethod
    def is_verse_visible(self, index):
        raise NotImplementedError

    @abstractmethod
    def scroll_to_verse(self, index):
        raise NotImplementedError

    @abstractmethod
    def reset_scroll(self):
        raise NotImplementedError

    @abstractmethod
    def show_playback(self, state):
        raise NotImplementedError


class ConsoleReaderView(ReaderView):
    def __init__(self, console=None, viewport_lines=12):
        self.console = console or Console()
        self.viewport_lines = max(1, int(viewport_lines))
        self.top = 0
        self.session = None
        self._last_signature = None

    def attach(self, session):
        self.session = session

    def is_verse_visible(self, index):
        return self.top <= index < self.top + self.viewport_lines

    def scroll_to_verse(self, index):
        # Center the verse in the viewport.
        self.top = max(0, index - self.viewport_lines // 2)

    def reset_scroll(self):
        self.top = 0
        self._last_signature = None

    def show_playback(self, state):
        signature = (
            state["status"],
            state["active_verse_index"],
            state["is_loading_audio"],
            state["last_error"],
            state["voice"].id if state["voice"] else None,
        )
        if signature == self._last_signature:
            return
        self._last_signature = signature

        if state["last_error"]:
            self.console.print(Panel(state["last_error"], title="Erro de Áudio", style="red"))

        index = state["active_verse_index"]
        line = Text(f"[{chapter_button_label(state)}] ", style="bold")
        line.append(state["status"].value)
        if state["is_loading_audio"]:
            line.append(" (carregando áudio)", style="dim")
        verses = self.session.content.verses if self.session and self.session.content else ()
        if index is not None and index < len(verses):
            verse = verses[index]
            line.append(f"  {verse.number} ", style="bold yellow")
            line.append(verse.text)
        self.console.print(line)

    def render_chapter(self, session, state):
        if session.is_loading:
            self.console.print(Text("Carregando texto bíblico...", style="dim italic"))
            return
        if session.error:
            title = "Chave de API não detectada" if session.credential_missing else "Atenção Necessária"
            self.console.print(Panel(session.error, title=title, style="red"))
            return
        if session.content is None:
            return

        voice = state["voice"]
        header = Text(f"{session.book.name} ", style="bold")
        header.append(str(session.chapter), style="bold yellow")
        if voice is not None:
            header.append(f"   voz: {voice.name} ({voice.gender})", style="dim")
        self.console.print(header)

        if session.content.summary:
            self.console.print(Panel(session.content.summary, title="Resumo do Capítulo", style="italic"))

        verses = session.content.verses
        end = min(len(verses), self.top + self.viewport_lines)
        for index in range(self.top, end):
            verse = verses[index]
            style = "bold black on yellow" if is_highlighted(state, index) else ""
            row = Text(f"{verse_marker(state, index)} ")
            row.append(f"{verse.number} ", style="yellow")
            row.append(verse.text, style=style)
            self.console.print(row)
        if end < len(verses):
            self.console.print(Text(f"... {len(verses) - end} versículos abaixo", style="dim"))
        self.console.print(Text(f"[{chapter_button_label(state)}]", style="bold"))

    def render_books(self, books):
        for testament, group in group_by_testament(books).items():
            if not group:
                continue
            self.console.print(Text(testament.value, style="bold"))
            for book in group:
                self.console.print(f"  {book.abbreviation:<4} {book.name} ({book.chapters})")

    def render_voices(self, voices, selected=None):
        for voice in voices:
            mark = "*" if selected is not None and voice.id == selected.id else " "
            self.console.print(f"{mark} {voice.id:<8} {voice.name} - {voice.gender}, {voice.style}")

    def render_messages(self, messages):
        for message in messages:
            if message.role == "user":
                self.console.print(Text(f"Você: {message.text}", style="bold"))
            else:
                self.console.print(Text("Assistente:", style="bold"))
                self.console.print(Markdown(message.text))
