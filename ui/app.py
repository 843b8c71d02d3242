import argparse
import asyncio
import sys
from pathlib import Path

from adapters.gemini_service import GeminiService
from adapters.pygame_output import PygameAudioOutput
from core.assistant import AssistantChat
from core.catalog import AVAILABLE_VOICES, filter_books, find_book, find_voice
from core.errors import CREDENTIAL_ERROR_MESSAGE
from core.sequencer import PlaybackSequencer
from system import runtime_settings
from system.chapter_store import ChapterRepository, ChapterStore
from system.covers import DEFAULT_COVER_PROMPT, save_cover
from ui.reader_app import ReaderApp
from ui.reader_session import ReaderSession
from ui.reader_view import ConsoleReaderView


def build_parser():
    parser = argparse.ArgumentParser(description="Verbum - Bible reader with generated narration")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging in the reader, sequencer and services.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    books = sub.add_parser("books", help="List the books of the Bible.")
    books.add_argument("--search", default="", help="Filter books by name.")

    sub.add_parser("voices", help="List the available narration voices.")

    read = sub.add_parser("read", help="Open a chapter and listen to it.")
    read.add_argument("book", help="Book name or abbreviation, e.g. 'Gênesis' or 'Jo'.")
    read.add_argument("chapter", type=int, nargs="?", default=1)
    read.add_argument("--verse", type=int, default=None, help="Start playback at this verse.")
    read.add_argument("--voice", default=None, help="Voice id (see 'voices').")

    ask = sub.add_parser("ask", help="Ask the Bible assistant a question.")
    ask.add_argument("question")
    ask.add_argument("--book", default=None)
    ask.add_argument("--chapter", type=int, default=1)

    cover = sub.add_parser("cover", help="Generate a cover image.")
    cover.add_argument("--output", type=Path, default=Path("cover.jpg"))
    cover.add_argument("--prompt", default=DEFAULT_COVER_PROMPT)
    return parser


def resolve_voice(voice_id):
    return find_voice(voice_id or runtime_settings.get_setting("VERBUM_VOICE")) or AVAILABLE_VOICES[0]


def build_session(service, view, voice, debug=False):
    store = ChapterStore(runtime_settings.get_cache_dir() / "chapters")
    repository = ChapterRepository(service, store)
    sequencer = PlaybackSequencer(
        PygameAudioOutput(debug=debug),
        service.get_verse_audio,
        voice,
        view=view,
        on_state_change=view.show_playback,
        prefetch_window=runtime_settings.get_prefetch_window(),
        debug=debug,
    )
    session = ReaderSession(repository, sequencer, view=view)
    view.attach(session)
    return session


async def run_read(args, service, view):
    book = find_book(args.book)
    if book is None:
        view.console.print(f"Unknown book: {args.book}")
        return 2
    if not 1 <= args.chapter <= book.chapters:
        view.console.print(f"{book.name} has {book.chapters} chapters.")
        return 2
    session = build_session(service, view, resolve_voice(args.voice), debug=args.debug)
    await session.load_chapter(book, args.chapter)
    app = ReaderApp(session, view, debug=args.debug)
    await app.run(start_verse=args.verse)
    return 1 if session.credential_missing else 0


async def run_ask(args, service, view):
    book = find_book(args.book) if args.book else None
    chat = AssistantChat(service)
    if book is not None:
        store = ChapterStore(runtime_settings.get_cache_dir() / "chapters")
        cached = store.get(book.name, args.chapter)
        summary = cached.get("summary", "") if cached else ""
        chat.set_context(f"{book.name} Capítulo {args.chapter}: {summary}")
    await chat.send(args.question)
    view.render_messages(chat.messages[1:])
    return 0


async def run_cover(args, service, view):
    if not service.has_credentials():
        view.console.print(CREDENTIAL_ERROR_MESSAGE)
        return 1
    image_b64 = await service.generate_bible_cover(args.prompt)
    width, height = save_cover(image_b64, args.output)
    view.console.print(f"Saved cover {width}x{height} to {args.output}")
    return 0


def main(argv=None):
    runtime_settings.apply_settings_to_environ(runtime_settings.load_settings(), override=False)
    args = build_parser().parse_args(argv)
    view = ConsoleReaderView(viewport_lines=runtime_settings.get_int_setting("VERBUM_VIEWPORT_LINES", minimum=1))

    if args.command == "books":
        view.render_books(filter_books(args.search))
        return 0
    if args.command == "voices":
        view.render_voices(AVAILABLE_VOICES, selected=resolve_voice(None))
        return 0

    service = GeminiService(debug=args.debug)
    runners = {"read": run_read, "ask": run_ask, "cover": run_cover}
    try:
        return asyncio.run(runners[args.command](args, service, view))
    except KeyboardInterrupt:
        return 130
    except Exception as exc:
        view.console.print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
