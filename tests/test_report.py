import jinja2
import pytest

from xcscrape.report import build_report_context, get_template_vars, render_report
from xcscrape.scraper import scrape_lines
from xcscrape.sink import RecordingResultSink

LINES = [
    "Test Suite 'Foo' started at now",
    "Test Case '-[Foo.Bar good]' started.",
    "hello from good",
    "Test Case '-[Foo.Bar good]' passed (0.001 seconds).",
    "Test Case '-[Foo.Bar bad]' started.",
    "/src/BarTests.swift:7: error: -[Foo.Bar bad] : expected true",
    "Test Case '-[Foo.Bar bad]' failed (0.002 seconds).",
    "Test Suite 'Foo' failed at later",
]


@pytest.fixture
def recorded():
    sink = RecordingResultSink()
    scrape_lines(LINES, sink)
    return sink


def test_build_report_context(recorded):
    context = build_report_context(recorded)

    assert context["summary"]["passed"] == 1
    assert context["summary"]["failed"] == 1
    assert context["suites"] == [{"name": "Foo", "result": "FAILURE"}]
    good, bad = context["cases"]
    assert good["name"] == "Foo.good"
    assert good["output_lines"] == 1
    assert not good["failed"]
    assert bad["status"] == "FAILED"
    assert bad["message"] == "expected true"


def test_default_report(recorded):
    report = render_report(recorded)

    lines = report.splitlines()
    assert lines[0] == "2 test cases in 1 suites: 1 passed, 1 failed, 0 errored"
    assert "PASSED  Foo.good" in lines
    assert "FAILED  Foo.bad" in lines
    assert "        expected true" in lines
    assert report.endswith("\n")


def test_custom_template(recorded):
    report = render_report(recorded, "{% for c in cases %}{{ c.name }}={{ c.status }};{% endfor %}")

    assert report == "Foo.good=PASSED;Foo.bad=FAILED;"


def test_unknown_template_field_raises(recorded):
    with pytest.raises(jinja2.exceptions.UndefinedError):
        render_report(recorded, "{{ nope }}")


def test_get_template_vars():
    assert get_template_vars("{{ summary.cases }} {% for c in cases %}{{ c }}{% endfor %}") == {
        "summary",
        "cases",
    }
