import pytest

from xcscrape import log_parsers

XCODEBUILD_LOG = """\
Test Suite 'All tests' started at 2017-03-01 10:00:00.000
Test Suite 'FooTests.xctest' started at 2017-03-01 10:00:00.000
Test Suite 'Foo' started at 2017-03-01 10:00:00.001
Test Case '-[Foo.FooTests testPasses]' started.
Test Case '-[Foo.FooTests testPasses]' passed (0.001 seconds).
Test Case '-[Foo.FooTests testFails]' started.
/src/FooTests/FooTests.swift:12: error: -[Foo.FooTests testFails] : XCTAssertEqual failed: ("1") is not equal to ("2")
Test Case '-[Foo.FooTests testFails]' failed (0.002 seconds).
Test Suite 'Foo' failed at 2017-03-01 10:00:00.004
\t Executed 2 tests, with 1 failure (0 unexpected) in 0.003 (0.003) seconds
Test Suite 'FooTests.xctest' failed at 2017-03-01 10:00:00.004
Test Suite 'All tests' failed at 2017-03-01 10:00:00.005"""


class TestParseLogXctest:
    def test_statuses(self):
        assert log_parsers.parse_log_xctest(XCODEBUILD_LOG) == {
            "Foo.testPasses": "PASSED",
            "Foo.testFails": "FAILED",
        }

    def test_colored_output(self):
        log = "\x1b[1mTest Suite 'Foo' started at now\x1b[0m\n" + "\n".join(
            XCODEBUILD_LOG.splitlines()[3:5]
        )

        statuses = log_parsers.parse_log_xctest(log)

        assert statuses == {"Foo.testPasses": "PASSED"}

    def test_truncated_log_reports_open_cases_as_errors(self):
        log = "\n".join(XCODEBUILD_LOG.splitlines()[:7])

        assert log_parsers.parse_log_xctest(log) == {
            "Foo.testPasses": "PASSED",
            "Foo.testFails": "ERROR",
        }

    def test_last_line_without_newline_is_processed(self):
        log = (
            "Test Suite 'Foo' started at now\n"
            "Test Case '-[Foo.Bar baz]' started.\n"
            "Test Case '-[Foo.Bar baz]' passed (0.1 seconds)."
        )

        assert log_parsers.parse_log_xctest(log) == {"Foo.baz": "PASSED"}

    def test_empty_log(self):
        assert log_parsers.parse_log_xctest("") == {}


class TestParseLogSwift:
    def test_plain_and_bracketed_names(self):
        log = "\n".join([
            "Test Case 'FooTests.testA' passed (0.001 seconds)",
            "Test Case '-[Foo.FooTests testB]' failed (0.010 seconds).",
            "Test Case 'FooTests.testC' skipped (0.000 seconds)",
            "Test Case 'FooTests.testD' started",
        ])

        assert log_parsers.parse_log_swift(log) == {
            "FooTests.testA": "PASSED",
            "Foo.testB": "FAILED",
            "FooTests.testC": "SKIPPED",
        }


def test_ansi_escape():
    assert log_parsers.ansi_escape("\x1b[31mred\x1b[0m") == "red"


def test_get_parser():
    assert log_parsers.get_parser("parse_log_xctest") is log_parsers.parse_log_xctest
    assert log_parsers.get_parser("parse_log_xcodebuild") is log_parsers.parse_log_xctest
    with pytest.raises(ValueError, match="Unknown log parser"):
        log_parsers.get_parser("parse_log_nope")
