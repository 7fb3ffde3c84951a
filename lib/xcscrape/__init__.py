"""Turn XCTest console output into structured test lifecycle events."""
from xcscrape.constants import DescriptorKind, Destination, ResultType, TestStatus
from xcscrape.descriptors import ContextFrame, TestDescriptor
from xcscrape.scraper import ScrapeError, ScraperChannel, XcTestScraper
from xcscrape.services import SequentialIdGenerator, SystemClock
from xcscrape.sink import (
    JsonLinesResultSink,
    RecordingResultSink,
    ResultSink,
    ScrapeEvent,
    TestFailure,
)

__all__ = [
    "ContextFrame",
    "DescriptorKind",
    "Destination",
    "JsonLinesResultSink",
    "RecordingResultSink",
    "ResultSink",
    "ResultType",
    "ScrapeError",
    "ScrapeEvent",
    "ScraperChannel",
    "SequentialIdGenerator",
    "SystemClock",
    "TestDescriptor",
    "TestFailure",
    "TestStatus",
    "XcTestScraper",
]
