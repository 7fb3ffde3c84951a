"""Plain-text summaries of a scraped run, rendered with Jinja."""

from jinja2 import Environment, StrictUndefined, meta

from xcscrape.constants import TestStatus
from xcscrape.sink import RecordingResultSink

DEFAULT_TEMPLATE = """\
{{ summary.cases }} test cases in {{ summary.suites }} suites: \
{{ summary.passed }} passed, {{ summary.failed }} failed, {{ summary.errored }} errored
{% for case in cases %}
{{ case.status.ljust(7) }} {{ case.name }}
{%- if case.message %}
{{ case.message | indent(8, first=True) }}
{%- endif %}
{%- endfor %}
"""


def get_template_vars(template_text: str) -> set[str]:
    env = Environment()
    parsed = env.parse(template_text)
    return set(meta.find_undeclared_variables(parsed))


def build_report_context(sink: RecordingResultSink) -> dict:
    statuses = sink.status_map()
    cases = []
    suites = []
    for descriptor in sink.descriptors():
        if not descriptor.is_case:
            result = sink.result_of(descriptor.id)
            suites.append({
                "name": descriptor.display_name,
                "result": result.value if result is not None else None,
            })
            continue
        status = statuses.get(descriptor.display_name)
        if status is None:
            continue
        messages = [
            str(failure)
            for failure in sink.failures_for(descriptor.id)
            if str(failure)
        ]
        cases.append({
            "name": descriptor.display_name,
            "suite": descriptor.suite_name,
            "status": status,
            "failed": status != TestStatus.PASSED.value,
            "message": "\n".join(messages),
            "output_lines": len(sink.outputs_for(descriptor.id)),
        })
    return {"summary": sink.summary(), "suites": suites, "cases": cases}


def render_report(sink: RecordingResultSink, template_text: str | None = None) -> str:
    """
    Render ``template_text`` (DEFAULT_TEMPLATE if omitted) against the recorded run.

    The template sees ``summary``, ``suites`` and ``cases``; referring to anything
    else raises jinja2's UndefinedError.
    """
    env = Environment(undefined=StrictUndefined, keep_trailing_newline=True)
    template = env.from_string(template_text or DEFAULT_TEMPLATE)
    return template.render(**build_report_context(sink))
