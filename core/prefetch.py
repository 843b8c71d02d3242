MIN_LOOKAHEAD = 1
MAX_LOOKAHEAD = 3


def clamp_window(value):
    try:
        window = int(value)
    except (TypeError, ValueError):
        return MIN_LOOKAHEAD
    return max(MIN_LOOKAHEAD, min(MAX_LOOKAHEAD, window))


class PrefetchScheduler:
    # Small windows keep the TTS provider from rate limiting us.
    def __init__(self, cache, window=MIN_LOOKAHEAD, log_callback=None):
        self.cache = cache
        self.window = clamp_window(window)
        self.log_callback = log_callback
        self._started = {}

    def log(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            print(message)

    def prefetch(self, cursor, verses, voice):
        scheduled = []
        for offset in range(1, self.window + 1):
            index = cursor + offset
            if index >= len(verses):
                break
            if self.cache.has(index):
                continue
            task = self.cache.get_or_fetch(index, verses[index].text, voice)
            task.add_done_callback(lambda done, i=index: self._report(i, done))
            self._started[index] = task
            scheduled.append(index)
        return scheduled

    def started(self, index, task):
        """True when `task` is the background fetch this scheduler issued for `index`."""
        return self._started.get(index) is task

    def forget(self, index):
        self._started.pop(index, None)

    def clear(self):
        self._started = {}

    def _report(self, index, task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log(f"Background prefetch failed for verse index {index}: {exc}")
