"""Shared fixtures for the scraper tests."""

import pytest

from xcscrape.scraper import XcTestScraper
from xcscrape.services import SequentialIdGenerator
from xcscrape.sink import RecordingResultSink


class TickingClock:
    """Clock that advances by one millisecond per reading."""

    def __init__(self, start: int = 1000):
        self.now = start

    def current_time(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def sink():
    return RecordingResultSink()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def scraper(sink, clock):
    return XcTestScraper(sink, id_generator=SequentialIdGenerator(), clock=clock)


@pytest.fixture
def feed(scraper):
    """Feed a list of lines to the scraper's stdout channel."""

    def _feed(lines):
        for line in lines:
            scraper.text(line)
        return scraper

    return _feed
