"""
Receivers for the lifecycle events produced by the scraper.

A sink gets four kinds of calls, always in the order the scraper observed them:

    started(descriptor, start_time)
    completed(test_id, complete_time, result)
    failure(test_id, failure)
    output(test_id, destination, text)

``failure`` is also used when a stream ends abnormally: in that case ``test_id``
is the still-open ``ContextFrame`` and ``failure`` is the cause that ended the
stream.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, TextIO

from xcscrape.constants import RESULT_TO_STATUS, Destination, ResultType, TestStatus
from xcscrape.descriptors import ContextFrame, TestDescriptor

logger = logging.getLogger(__name__)

STARTED = "started"
COMPLETED = "completed"
FAILURE = "failure"
OUTPUT = "output"


class TestFailure(Exception):
    """Failure reported for a case, built from the runner's error lines."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ResultSink(ABC):
    @abstractmethod
    def started(self, descriptor: TestDescriptor, start_time: int) -> None:
        ...

    @abstractmethod
    def completed(self, test_id: Any, complete_time: int, result: ResultType) -> None:
        ...

    @abstractmethod
    def failure(self, test_id: Any, failure: BaseException) -> None:
        ...

    @abstractmethod
    def output(self, test_id: Any, destination: Destination, text: str) -> None:
        ...


@dataclass(frozen=True)
class ScrapeEvent:
    kind: str
    test_id: Any
    descriptor: Optional[TestDescriptor] = None
    time: Optional[int] = None
    result: Optional[ResultType] = None
    failure: Optional[BaseException] = None
    destination: Optional[Destination] = None
    text: Optional[str] = None


class RecordingResultSink(ResultSink):
    """Keeps every event in arrival order and answers questions about them."""

    def __init__(self):
        self.events: list[ScrapeEvent] = []
        self._descriptors: dict[Any, TestDescriptor] = {}
        # Per-id lookups, filled as events arrive.
        self._results: dict[Any, ResultType] = {}
        self._failures: dict[Any, list[BaseException]] = {}
        self._outputs: dict[Any, list[str]] = {}
        self._lock = threading.Lock()

    def _record(self, event: ScrapeEvent) -> None:
        with self._lock:
            self.events.append(event)
            if event.kind == COMPLETED:
                self._results[event.test_id] = event.result
            elif event.kind == FAILURE:
                self._failures.setdefault(_failure_target(event), []).append(event.failure)
            elif event.kind == OUTPUT:
                self._outputs.setdefault(event.test_id, []).append(event.text)

    def started(self, descriptor, start_time):
        with self._lock:
            self._descriptors[descriptor.id] = descriptor
        self._record(ScrapeEvent(STARTED, descriptor.id, descriptor=descriptor, time=start_time))

    def completed(self, test_id, complete_time, result):
        self._record(ScrapeEvent(COMPLETED, test_id, time=complete_time, result=result))

    def failure(self, test_id, failure):
        descriptor = test_id.descriptor if isinstance(test_id, ContextFrame) else None
        self._record(ScrapeEvent(FAILURE, test_id, descriptor=descriptor, failure=failure))

    def output(self, test_id, destination, text):
        self._record(ScrapeEvent(OUTPUT, test_id, destination=destination, text=text))

    def events_of(self, kind: str) -> list[ScrapeEvent]:
        return [event for event in self.events if event.kind == kind]

    def descriptor(self, test_id: Any) -> Optional[TestDescriptor]:
        return self._descriptors.get(test_id)

    def descriptors(self) -> list[TestDescriptor]:
        return list(self._descriptors.values())

    def outputs_for(self, test_id: Any) -> list[str]:
        return list(self._outputs.get(test_id, ()))

    def failures_for(self, test_id: Any) -> list[BaseException]:
        return list(self._failures.get(test_id, ()))

    def result_of(self, test_id: Any) -> Optional[ResultType]:
        return self._results.get(test_id)

    def status_map(self) -> dict[str, str]:
        """
        Flatten the recorded cases into {Suite.case: status}.

        A case that never completed but was reported by an abnormal end of stream
        is an ERROR; a case that neither completed nor failed is left out.
        """
        statuses: dict[str, str] = {}
        for descriptor in self._descriptors.values():
            if not descriptor.is_case:
                continue
            result = self.result_of(descriptor.id)
            if result is not None:
                statuses[descriptor.display_name] = RESULT_TO_STATUS[result].value
            elif descriptor.id in self._failures:
                statuses[descriptor.display_name] = TestStatus.ERROR.value
        return statuses

    def summary(self) -> dict[str, int]:
        statuses = self.status_map().values()
        return {
            "suites": sum(1 for d in self._descriptors.values() if not d.is_case),
            "cases": sum(1 for d in self._descriptors.values() if d.is_case),
            "passed": sum(1 for s in statuses if s == TestStatus.PASSED.value),
            "failed": sum(1 for s in statuses if s == TestStatus.FAILED.value),
            "errored": sum(1 for s in statuses if s == TestStatus.ERROR.value),
        }


def _failure_target(event: ScrapeEvent) -> Any:
    if isinstance(event.test_id, ContextFrame):
        return event.test_id.descriptor.id
    return event.test_id


class JsonLinesResultSink(ResultSink):
    """Writes one JSON object per event, optionally forwarding to another sink."""

    def __init__(self, stream: TextIO, forward_to: Optional[ResultSink] = None):
        self.stream = stream
        self.forward_to = forward_to
        self._lock = threading.Lock()

    def _write(self, payload: dict) -> None:
        with self._lock:
            self.stream.write(json.dumps(payload, ensure_ascii=False) + "\n")

    def started(self, descriptor, start_time):
        self._write({
            "event": STARTED,
            "id": descriptor.id,
            "kind": descriptor.kind.value,
            "suite": descriptor.suite_name,
            "case": descriptor.case_name,
            "time": start_time,
        })
        if self.forward_to is not None:
            self.forward_to.started(descriptor, start_time)

    def completed(self, test_id, complete_time, result):
        self._write({
            "event": COMPLETED,
            "id": test_id,
            "time": complete_time,
            "result": result.value,
        })
        if self.forward_to is not None:
            self.forward_to.completed(test_id, complete_time, result)

    def failure(self, test_id, failure):
        payload = {"event": FAILURE, "id": test_id, "message": str(failure)}
        if isinstance(test_id, ContextFrame):
            payload["id"] = test_id.descriptor.id
            payload["aborted"] = True
            payload["type"] = type(failure).__name__
            logger.debug("Aborted %s: %s", test_id.descriptor.display_name, failure)
        self._write(payload)
        if self.forward_to is not None:
            self.forward_to.failure(test_id, failure)

    def output(self, test_id, destination, text):
        self._write({
            "event": OUTPUT,
            "id": test_id,
            "destination": destination.value,
            "text": text,
        })
        if self.forward_to is not None:
            self.forward_to.output(test_id, destination, text)
