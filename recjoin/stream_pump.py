"""Concurrent line pump for a child process's stdout and stderr

Each stream is drained by its own thread into a shared queue so that
neither pipe can fill up and stall the child. Lines of one stream keep
their order; lines of different streams interleave as they arrive.
"""

import logging
import queue
import threading
from typing import IO, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Queue item pushed by a reader when its stream is exhausted
_EOF = None


class StreamPump:
    """Pump the output streams of a process into one ordered queue.

    Attributes:
        process: A started ``subprocess.Popen`` with text-mode pipes
    """

    def __init__(self, process):
        self.process = process
        self._queue: "queue.Queue[Tuple[str, Optional[str]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._active = 0
        self._threads: List[threading.Thread] = []

    @property
    def active(self) -> int:
        """Number of streams still being read"""
        with self._lock:
            return self._active

    def start(self) -> "StreamPump":
        streams = [("stdout", self.process.stdout), ("stderr", self.process.stderr)]
        streams = [(name, stream) for name, stream in streams if stream is not None]
        with self._lock:
            self._active = len(streams)
        for name, stream in streams:
            thread = threading.Thread(
                target=self._stream_reader,
                args=(stream, name),
                name=f"pump-{name}",
                daemon=True
            )
            self._threads.append(thread)
            thread.start()
        return self

    def _stream_reader(self, stream: IO[str], stream_name: str) -> None:
        """Read a stream line by line into the queue, then signal end of stream."""
        try:
            for line in iter(stream.readline, ''):
                line = line.rstrip("\r\n")
                if line:
                    self._queue.put((stream_name, line))
        except (OSError, ValueError) as e:
            # Closed pipe after the child was killed
            logger.debug("Stopped reading %s: %s", stream_name, e)
        finally:
            with self._lock:
                self._active -= 1
            self._queue.put((stream_name, _EOF))

    def lines(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(stream_name, line)`` pairs until every stream has ended."""
        remaining = len(self._threads)
        while remaining > 0:
            stream_name, line = self._queue.get()
            if line is _EOF:
                remaining -= 1
                continue
            yield stream_name, line

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in self._threads:
            thread.join(timeout)
