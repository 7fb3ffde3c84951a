#!/usr/bin/env python3
import argparse
import contextlib
import json
import logging
import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
LIB_DIR = REPO_ROOT / "lib"
sys.path.insert(0, str(LIB_DIR))

from xcscrape.report import get_template_vars, render_report
from xcscrape.scraper import ScrapeError, XcTestScraper
from xcscrape.sink import JsonLinesResultSink, RecordingResultSink
from xcscrape.streams import scrape_streams

logger = logging.getLogger("scrape_log")

REPORT_VARS = {"summary", "suites", "cases"}
LOG_LEVEL_ENV = "XCSCRAPE_LOG_LEVEL"


class IncompleteRunError(Exception):
    """Input ended while suites or cases were still open."""


def open_input(path: str, stack: contextlib.ExitStack):
    if path == "-":
        return sys.stdin
    input_path = Path(path)
    if not input_path.is_file():
        raise FileNotFoundError(f"Log file not found: {input_path}")
    return stack.enter_context(input_path.open("r", encoding="utf-8", errors="replace"))


def load_template(path: str) -> str | None:
    if not path:
        return None
    template_path = Path(path)
    if not template_path.is_file():
        raise FileNotFoundError(f"Report template not found: {template_path}")
    template_text = template_path.read_text(encoding="utf-8")
    unknown = sorted(get_template_vars(template_text) - REPORT_VARS)
    if unknown:
        raise ValueError(
            f"Report template uses unknown fields: {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(REPORT_VARS))}."
        )
    return template_text


def scrape(args, out) -> RecordingResultSink:
    recorder = RecordingResultSink()
    sink = JsonLinesResultSink(out, forward_to=recorder) if args.format == "events" else recorder
    scraper = XcTestScraper(sink)

    with contextlib.ExitStack() as stack:
        stdout = open_input(args.stdout, stack)
        stderr = open_input(args.stderr, stack) if args.stderr else None
        # Captured files are read in order so repeated runs emit the same events.
        live = "-" in (args.stdout, args.stderr)
        scrape_streams(scraper, stdout=stdout, stderr=stderr, concurrent=live)

    open_frames = scraper.open_frames
    if open_frames and args.drain_open:
        names = ", ".join(frame.descriptor.display_name for frame in open_frames)
        scraper.end_of_stream(IncompleteRunError(f"input ended with open tests: {names}"))
    elif open_frames:
        logger.warning("Input ended with %d open suites/cases", len(open_frames))
    return recorder


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Convert XCTest console output into test events, statuses or a report."
    )
    parser.add_argument(
        "--stdout",
        default="-",
        help="Log captured from the runner's standard output (default: read stdin).",
    )
    parser.add_argument(
        "--stderr",
        default="",
        help="Optional log captured from the runner's standard error.",
    )
    parser.add_argument(
        "--format",
        choices=["events", "status", "report"],
        default="report",
        help="events: one JSON object per event; status: JSON {test: status}; "
        "report: text summary (default: report).",
    )
    parser.add_argument(
        "--report-template",
        default="",
        help="Jinja template for --format report.",
    )
    parser.add_argument(
        "--output",
        default="",
        help="Write output to this file instead of stdout.",
    )
    parser.add_argument(
        "--drain-open",
        action="store_true",
        help="Report suites/cases still open at end of input as errors.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv(LOG_LEVEL_ENV, "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or WARNING).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        template_text = load_template(args.report_template)
    except (FileNotFoundError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    with contextlib.ExitStack() as stack:
        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            out = stack.enter_context(output_path.open("w", encoding="utf-8"))
        else:
            out = sys.stdout

        try:
            recorder = scrape(args, out)
        except FileNotFoundError as exc:
            print(str(exc), file=sys.stderr)
            return 2
        except ScrapeError as exc:
            print(f"Malformed XCTest output: {exc}", file=sys.stderr)
            return 2
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Reading input failed: {exc}", file=sys.stderr)
            return 2

        if args.format == "status":
            out.write(json.dumps(recorder.status_map(), ensure_ascii=False, indent=2) + "\n")
        elif args.format == "report":
            out.write(render_report(recorder, template_text))

    summary = recorder.summary()
    return 1 if summary["failed"] or summary["errored"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
