import asyncio

from core.catalog import find_voice

HELP_TEXT = (
    "p: play/pause chapter | <n>: play from verse n | s: stop | v <voice>: change voice | "
    "n/b: next/previous chapter | l: redraw | x: dismiss error | q: quit"
)


class ReaderApp:
    """Line-oriented command loop driving a ReaderSession and its sequencer."""

    def __init__(self, session, view, input_func=input, debug=False):
        self.session = session
        self.view = view
        self.input_func = input_func
        self.debug = debug
        self._tasks = set()
        self.commands = {
            "p": self.toggle_chapter,
            "s": self.stop,
            "n": lambda _arg: self.change_chapter(1),
            "b": lambda _arg: self.change_chapter(-1),
            "v": self.change_voice,
            "l": self.redraw,
            "x": self.dismiss_error,
            "h": self.show_help,
        }

    @property
    def sequencer(self):
        return self.session.sequencer

    def debug_log(self, message):
        if self.debug:
            print(f"[DEBUG][ReaderApp] {message}")

    def spawn(self, coro):
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle(self, line):
        """Run one command line. Returns False when the reader should exit."""
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True
        command = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if command == "q":
            return False
        if command.isdigit():
            self.play_verse_number(int(command))
            return True
        handler = self.commands.get(command)
        if handler is None:
            self.view.console.print(f"Unknown command: {command}. {HELP_TEXT}")
            return True
        result = handler(arg)
        if asyncio.iscoroutine(result):
            await result
        return True

    def play_verse_number(self, number):
        index = self.session.verse_index(number)
        if index is None:
            self.view.console.print(f"Verse {number} not found in this chapter.")
            return
        verse = self.session.content.verses[index]
        self.spawn(self.sequencer.play_from_verse(verse, index))

    def toggle_chapter(self, _arg=""):
        self.spawn(self.sequencer.toggle_chapter())

    def stop(self, _arg=""):
        self.sequencer.stop()

    async def change_chapter(self, delta):
        content = await self.session.navigate(delta)
        if content is None and not self.session.error:
            self.view.console.print("No more chapters in that direction.")
        self.redraw()

    def change_voice(self, arg):
        voice = find_voice(arg)
        if voice is None:
            self.view.console.print(f"Unknown voice: {arg!r}")
            return
        self.spawn(self.sequencer.change_voice(voice))

    def redraw(self, _arg=""):
        self.view.render_chapter(self.session, self.sequencer.get_state())

    def dismiss_error(self, _arg=""):
        self.sequencer.dismiss_error()

    def show_help(self, _arg=""):
        self.view.console.print(HELP_TEXT)

    async def run(self, start_verse=None):
        self.redraw()
        self.show_help()
        if start_verse is not None and self.session.content is not None:
            self.play_verse_number(start_verse)
        try:
            while True:
                try:
                    line = await asyncio.to_thread(self.input_func, "> ")
                except EOFError:
                    break
                if not await self.handle(line):
                    break
        finally:
            for task in list(self._tasks):
                task.cancel()
            self.sequencer.close()
