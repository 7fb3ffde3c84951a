"""
Line transport for the scraper: splitting raw text chunks into lines and pumping
whole files (or pipes) through it, one after the other or one thread per
output channel.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, TextIO

from xcscrape.constants import Destination

logger = logging.getLogger(__name__)

LINE_END_RE = re.compile(r"\r\n|\n|\r")
READ_SIZE = 8192


class LineBuffer:
    """
    Accumulates text chunks and hands complete lines to ``consumer.text``.

    Line terminators are kept on the delivered lines. ``close`` flushes whatever
    is left and forwards the end of stream to the consumer.
    """

    def __init__(self, consumer):
        self.consumer = consumer
        self._pending = ""
        self._closed = False

    def write(self, chunk: str) -> None:
        if self._closed:
            raise ValueError("write to closed LineBuffer")
        data = self._pending + chunk
        start = 0
        for match in LINE_END_RE.finditer(data):
            # A trailing "\r" may be the first half of "\r\n".
            if match.group() == "\r" and match.end() == len(data):
                break
            self.consumer.text(data[start:match.end()])
            start = match.end()
        self._pending = data[start:]

    def flush(self) -> None:
        """Deliver a trailing partial line, if any."""
        if self._pending:
            pending, self._pending = self._pending, ""
            self.consumer.text(pending)

    def close(self, failure: Optional[BaseException] = None) -> None:
        if self._closed:
            return
        self._closed = True
        self.flush()
        self.consumer.end_of_stream(failure)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close(exc)
        return False


def pump(stream: TextIO, consumer) -> None:
    """Read ``stream`` to the end, feeding ``consumer`` line by line."""
    buffer = LineBuffer(consumer)
    while True:
        try:
            chunk = stream.read(READ_SIZE)
        except Exception as exc:
            logger.error("Reading %s failed: %s", getattr(stream, "name", stream), exc)
            buffer.close(exc)
            raise
        if not chunk:
            break
        buffer.write(chunk)
    buffer.close()


def scrape_streams(
    scraper,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    max_workers: int = 2,
    concurrent: bool = True,
) -> None:
    """
    Pump stdout and stderr into ``scraper``.

    Live pipes are read concurrently so neither one blocks the other. Captured
    files should pass ``concurrent=False``: stdout is then read to the end before
    stderr, which keeps the event order the same from run to run.
    """
    sources = [
        (stream, scraper.channel(destination))
        for stream, destination in ((stdout, Destination.STDOUT), (stderr, Destination.STDERR))
        if stream is not None
    ]
    if not sources:
        return
    if not concurrent:
        for stream, channel in sources:
            pump(stream, channel)
        return
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(pump, stream, channel) for stream, channel in sources]
        for future in futures:
            future.result()
