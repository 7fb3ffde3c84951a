import logging
import re
import threading
from collections import deque
from typing import Any, Optional

from xcscrape.constants import Destination, ResultType
from xcscrape.descriptors import ContextFrame, TestDescriptor
from xcscrape.services import SequentialIdGenerator, SystemClock
from xcscrape.sink import ResultSink, TestFailure

logger = logging.getLogger(__name__)

TEST_SUITE_PREFIX = "Test Suite"
TEST_CASE_PREFIX = "Test Case"

TEST_SUITE_NAME_RE = re.compile(r"'([A-Za-z0-9]+)'")
TEST_CASE_NAME_RE = re.compile(r"'-\[([A-Za-z0-9]+)\.[A-Za-z0-9]+ ([A-Za-z0-9]+)\]'")
TEST_FAILURE_RE = re.compile(
    r":\d+: error: -\[([A-Za-z0-9]+)\.[A-Za-z0-9]+ ([A-Za-z0-9]+)\] : (.*)"
)


class ScrapeError(ValueError):
    """Raised for runner output that breaks the line grammar the scraper relies on."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class XcTestScraper:
    """
    Converts XCTest console output into test lifecycle events, one line at a time.

    Suites and cases are tracked on a stack of open frames. Every line is handled
    under a single lock, so stdout and stderr may be fed from different threads
    (see ``channel``). Lines that are not suite/case boundaries are reported as
    output of the innermost open frame, or of the last completed one when nothing
    is open.

    Args:
        sink: receives the events
        id_generator: object with ``generate_id()``; sequential ints by default
        clock: object with ``current_time()``; wall clock in ms by default
        lock: lock guarding the frame stack; a new one is created if omitted
    """

    def __init__(
        self,
        sink: ResultSink,
        id_generator=None,
        clock=None,
        lock=None,
    ):
        self.sink = sink
        self.id_generator = id_generator or SequentialIdGenerator()
        self.clock = clock or SystemClock()
        self._lock = lock or threading.RLock()
        self._frames: deque[ContextFrame] = deque()
        self._last_descriptor: Optional[TestDescriptor] = None

    @property
    def open_frames(self) -> tuple[ContextFrame, ...]:
        with self._lock:
            return tuple(self._frames)

    @property
    def last_completed(self) -> Optional[TestDescriptor]:
        return self._last_descriptor

    def channel(self, destination: Destination) -> "ScraperChannel":
        return ScraperChannel(self, destination)

    def text(self, line: str, destination: Destination = Destination.STDOUT) -> None:
        with self._lock:
            if line.startswith(TEST_SUITE_PREFIX):
                self._suite_boundary(line)
            elif line.startswith(TEST_CASE_PREFIX):
                self._case_boundary(line)
            else:
                self._output(line, destination)

    def end_of_stream(self, failure: Optional[BaseException] = None) -> None:
        if failure is None:
            return
        with self._lock:
            while self._frames:
                frame = self._frames.pop()
                logger.warning(
                    "Stream ended with %s still open: %s",
                    frame.descriptor.display_name,
                    failure,
                )
                self.sink.failure(frame, failure)

    def _suite_boundary(self, line: str) -> None:
        match = TEST_SUITE_NAME_RE.search(line)
        if not match:
            logger.debug("Ignoring suite line without a suite name: %r", line)
            return
        suite_name = match.group(1)

        if "started at" in line:
            descriptor = TestDescriptor.suite(self.id_generator.generate_id(), suite_name)
            self._start(descriptor)
            return

        frame = self._pop(line)
        result = ResultType.FAILURE if "failed at" in line else ResultType.SUCCESS
        self.sink.completed(frame.descriptor.id, self.clock.current_time(), result)

    def _case_boundary(self, line: str) -> None:
        match = TEST_CASE_NAME_RE.search(line)
        if not match:
            raise ScrapeError(f"Unrecognized test case line: {line!r}", line)
        suite_name, case_name = match.group(1), match.group(2)

        if "started." in line:
            descriptor = TestDescriptor.case(
                self.id_generator.generate_id(), suite_name, case_name
            )
            self._start(descriptor)
            return

        frame = self._pop(line)
        test_id = frame.descriptor.id
        if "failed (" in line:
            self.sink.failure(test_id, TestFailure(frame.failure_detail()))
            result = ResultType.FAILURE
        else:
            result = ResultType.SUCCESS
        self.sink.completed(test_id, self.clock.current_time(), result)

    def _output(self, line: str, destination: Destination) -> None:
        if self._frames:
            frame = self._frames[-1]
            self.sink.output(frame.descriptor.id, destination, line)

            match = TEST_FAILURE_RE.search(line.rstrip("\r\n"))
            if match and frame.matches(match.group(1), match.group(2)):
                frame.add_message(match.group(3))
        # Output can arrive after its case already reported completion.
        elif self._last_descriptor is not None:
            logger.debug(
                "Attributing output to last completed %s",
                self._last_descriptor.display_name,
            )
            self.sink.output(self._last_descriptor.id, destination, line)
        else:
            logger.debug("Dropping output with no test to attribute it to: %r", line)

    def _start(self, descriptor: TestDescriptor) -> None:
        self.sink.started(descriptor, self.clock.current_time())
        self._frames.append(ContextFrame(descriptor))

    def _pop(self, line: str) -> ContextFrame:
        if not self._frames:
            raise ScrapeError(f"No open suite or case for line: {line!r}", line)
        frame = self._frames.pop()
        self._last_descriptor = frame.descriptor
        return frame


class ScraperChannel:
    """The scraper as seen by one output channel."""

    def __init__(self, scraper: XcTestScraper, destination: Destination):
        self.scraper = scraper
        self.destination = destination

    def text(self, line: str) -> None:
        self.scraper.text(line, self.destination)

    def end_of_stream(self, failure: Optional[BaseException] = None) -> None:
        self.scraper.end_of_stream(failure)

    def __repr__(self) -> str:
        return f"ScraperChannel({self.destination.value})"


def scrape_lines(
    lines,
    sink: ResultSink,
    destination: Destination = Destination.STDOUT,
    **kwargs: Any,
) -> XcTestScraper:
    """Feed already split lines into a new scraper and return it."""
    scraper = XcTestScraper(sink, **kwargs)
    for line in lines:
        scraper.text(line, destination)
    return scraper
