import re

from xcscrape.constants import TestStatus
from xcscrape.scraper import XcTestScraper
from xcscrape.sink import RecordingResultSink
from xcscrape.streams import LineBuffer


ANSI_ESCAPE_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class IncompleteLogError(Exception):
    """End of a captured log reached while suites or cases were still open."""


def ansi_escape(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def parse_log_xctest(log: str) -> dict[str, str]:
    """
    Parser for XCTest console output (xcodebuild / swift test on macOS)

    Runs the full scraper over the log, so failure messages and output are
    attributed the same way as in a live run. Cases still open when the log ends
    are reported as ERROR.

    Args:
        log (str): log content
    Returns:
        dict: test case ("Suite.case") to test status mapping
    """
    sink = RecordingResultSink()
    scraper = XcTestScraper(sink)
    buffer = LineBuffer(scraper)
    buffer.write(ansi_escape(log))
    buffer.flush()
    if scraper.open_frames:
        buffer.close(IncompleteLogError("log ended before all tests completed"))
    else:
        buffer.close()
    return sink.status_map()


def parse_log_swift(log: str) -> dict[str, str]:
    """Parse completion lines of Swift XCTest output and return {full_test_name: status}.

    Rules:
      * "Test Case 'ClassName.testName' passed (X.X seconds)" -> PASSED
      * "Test Case '-[Suite.Class testName]' failed (X.X seconds)" -> FAILED
      * Bracketed names "-[Suite.Class testName]" are normalized to "Suite.testName",
        the same naming parse_log_xctest uses
    """
    results: dict[str, str] = {}

    test_result_re = re.compile(
        r"^Test Case '([^']+)'\s+(passed|failed|skipped)\s+\([0-9.]+\s+seconds\)\.?$"
    )
    bracketed_re = re.compile(r"^-\[([^.\] ]+)(?:\.[^\] ]+)? ([^\]]+)\]$")

    for raw in ansi_escape(log).splitlines():
        line = raw.strip()
        if not line:
            continue

        if m := test_result_re.match(line):
            test_name = m.group(1)
            if b := bracketed_re.match(test_name):
                test_name = f"{b.group(1)}.{b.group(2)}"
            results[test_name] = TestStatus[m.group(2).upper()].value

    return results


parse_log_xcodebuild = parse_log_xctest

NAME_TO_PARSER = {
    "parse_log_xctest": parse_log_xctest,
    "parse_log_xcodebuild": parse_log_xcodebuild,
    "parse_log_swift": parse_log_swift,
}


def get_parser(parser_name: str):
    parser = NAME_TO_PARSER.get(parser_name)
    if parser is None:
        raise ValueError(f"Unknown log parser: {parser_name}")
    return parser
