"""
Logical-line reassembly for C headers.

A declaration macro invocation may span several physical lines before its
terminating ``;``:

    ALLEGRO_FONT_FUNC(void, al_draw_justified_text, (const ALLEGRO_FONT *font,
                      ALLEGRO_COLOR color, float x1, float x2, float y,
                      float diff, int flags, char const *text));

The reassembler turns raw header text into logical lines so the matcher can
work one line at a time. Lines that do not open a macro invocation pass
through unchanged (stripped), one per physical line, so the output order
mirrors the file top to bottom.
"""

import logging
import threading
from queue import Queue
from typing import Iterable, Iterator, Optional

from binding_coverage.exceptions import MalformedDeclarationError

logger = logging.getLogger(__name__)

# Joiner for the physical pieces of one macro invocation
CONTINUATION_JOINER = " "


def iter_logical_lines(text: str, macro: str, source: str = "") -> Iterator[str]:
    """
    Yield the logical lines of ``text``.

    A physical line whose stripped text starts with ``macro`` opens an
    invocation; it and every following physical line up to and including the
    first one ending in ``;`` are joined into a single logical line.

    Raises:
        MalformedDeclarationError: an invocation is still open at end of input.
    """
    lines = text.split("\n")
    total = len(lines)
    i = 0
    while i < total:
        line = lines[i].strip()
        if not line.startswith(macro):
            yield line
            i += 1
            continue

        start = i
        pieces = [line]
        while not line.endswith(";"):
            i += 1
            if i >= total:
                raise MalformedDeclarationError(source, start + 1, macro)
            line = lines[i].strip()
            pieces.append(line)
        yield CONTINUATION_JOINER.join(p for p in pieces if p)
        i += 1


_LINE = "line"
_ERROR = "error"
_END = "end"


class LogicalLineStream:
    """
    Runs a logical-line generator on a background thread and hands its
    output to the consumer through a bounded queue.

    Lines arrive in exactly the order the generator produced them. If the
    generator raises, every line produced before the failure is delivered
    first and the exception is then re-raised in the consumer.

    Usage:
        with LogicalLineStream(iter_logical_lines(text, "AL_FUNC")) as stream:
            for line in stream:
                ...
    """

    def __init__(self, lines: Iterable[str], maxsize: int = 256, name: str = ""):
        self._lines = lines
        self._queue: Queue = Queue(maxsize=max(1, maxsize))
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._done = False
        self.name = name

    def _start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._produce,
            name=f"reassembler[{self.name}]" if self.name else "reassembler",
            daemon=True,
        )
        self._thread.start()

    def _produce(self) -> None:
        try:
            for line in self._lines:
                if self._stop.is_set():
                    return
                self._queue.put((_LINE, line))
        except Exception as e:
            self._queue.put((_ERROR, e))
        finally:
            self._queue.put((_END, None))

    def __iter__(self) -> Iterator[str]:
        if self._done:
            return
        self._start()
        try:
            while True:
                kind, value = self._queue.get()
                if kind == _END:
                    self._thread.join()
                    self._done = True
                    return
                if kind == _ERROR:
                    self._queue.get()  # trailing _END
                    self._thread.join()
                    self._done = True
                    raise value
                yield value
        finally:
            if not self._done:
                self.close()

    def close(self) -> None:
        """Stop the producer and wait for it to finish."""
        if self._done:
            return
        self._stop.set()
        if self._thread is not None:
            while True:
                kind, _ = self._queue.get()
                if kind == _END:
                    break
            self._thread.join()
        self._done = True

    def __enter__(self) -> "LogicalLineStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def stream_logical_lines(text: str, macro: str, source: str = "",
                         maxsize: int = 256) -> LogicalLineStream:
    """Reassemble ``text`` on a background thread."""
    return LogicalLineStream(iter_logical_lines(text, macro, source), maxsize=maxsize, name=source)
