"""
Report output as indented text or as a single JSON line.
"""

import json
import logging
import sys
from typing import Sequence, TextIO

from s3bench.configuration import BenchmarkParams
from s3bench.report.tree import ReportMapping

logger = logging.getLogger(__name__)


def format_text(report: ReportMapping, directives: Sequence[str]) -> str:
    """Render the report as indented text, ordered and filtered by directives."""
    out = []
    report.render_entries(out, directives, "")
    return "".join(out)


def format_json(report: ReportMapping) -> str:
    """Render the whole report, unfiltered, as one JSON line with sorted keys."""
    return json.dumps(report.to_data(), sort_keys=True)


def print_report(report: ReportMapping, params: BenchmarkParams, stream: TextIO = None) -> None:
    stream = stream or sys.stdout
    if params.json_output:
        stream.write(format_json(report) + "\n")
    else:
        stream.write(format_text(report, params.report_directives()))
    stream.flush()
