"""
Report tree: an ordered tree of scalars, text, mappings and lists built from
the benchmark parameters and batch results.
"""

import logging
from typing import Dict, Iterable, List, Sequence, Union

from s3bench import __version__
from s3bench.configuration import BenchmarkParams
from s3bench.common.metrics_utils import (
    average,
    bytes_to_mb,
    calculate_throughput_mbps,
    percentile,
)
from s3bench.common.records import Result

logger = logging.getLogger(__name__)

NESTED_INDENT = "   "
KEY_WIDTH = 27

# (label, percentile) pairs reported for durations and TTFB
PERCENTILE_FIELDS = (
    ("Max", 100),
    ("99th-ile", 99),
    ("90th-ile", 90),
    ("75th-ile", 75),
    ("50th-ile", 50),
    ("25th-ile", 25),
    ("Min", 0),
)


def sort_keys(keys: Iterable[str], directives: Sequence[str]) -> List[str]:
    """Order mapping keys for printing.

    Keys are sorted alphabetically, then each directive is applied in turn:
    "key" moves the key to the front, after the keys already moved, and
    "-key" drops it. Directives naming missing keys are ignored.
    """
    keys = sorted(keys)
    cursor = 0
    for directive in directives:
        directive = directive.strip()
        should_delete = directive.startswith("-")
        if should_delete:
            directive = directive[1:]
        if directive not in keys:
            continue
        keys.remove(directive)
        if not should_delete:
            keys.insert(cursor, directive)
            cursor += 1
    return keys


def filter_directives(directives: Sequence[str], key: str) -> List[str]:
    """Directives scoped to the mapping under key, with the "key:" scope removed."""
    scoped = []
    for directive in directives:
        if directive.startswith(key + ":"):
            scoped.append(directive[len(key) + 1:])
        elif directive.startswith("-" + key + ":"):
            scoped.append("-" + directive[len(key) + 2:])
    return scoped


class ReportNode:
    """Base class of report tree nodes."""

    def to_data(self):
        raise NotImplementedError

    def render(self, out: List[str], heading: str, key: str,
               directives: Sequence[str], prefix: str) -> None:
        """Append the text form of this node as the value of key."""
        raise NotImplementedError

    def render_item(self, out: List[str], index: int, directives: Sequence[str],
                    prefix: str) -> None:
        """Append the text form of this node as an element of a list."""
        raise NotImplementedError


class ReportScalar(ReportNode):
    """Number or flag."""

    def __init__(self, value: Union[int, float, bool]):
        self.value = value

    def __str__(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, float):
            return f"{self.value:.3f}"
        return str(self.value)

    def to_data(self):
        return self.value

    def render(self, out, heading, key, directives, prefix):
        out.append(f"{heading} {self}\n")

    def render_item(self, out, index, directives, prefix):
        out.append(f"{prefix}{prefix} {self}\n")


class ReportText(ReportScalar):
    def __init__(self, value: str):
        super().__init__(value)

    def __str__(self) -> str:
        return self.value


class ReportMapping(ReportNode):
    def __init__(self, entries: Dict[str, ReportNode] = None):
        self.entries: Dict[str, ReportNode] = dict(entries or {})

    def __getitem__(self, key: str) -> ReportNode:
        return self.entries[key]

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __setitem__(self, key: str, node: ReportNode) -> None:
        self.entries[key] = node

    def keys(self):
        return self.entries.keys()

    def to_data(self):
        return {key: node.to_data() for key, node in self.entries.items()}

    def render_entries(self, out: List[str], directives: Sequence[str], prefix: str) -> None:
        for key in sort_keys(self.entries, directives):
            heading = f"{prefix} {key + ':':<{KEY_WIDTH}}"
            self.entries[key].render(out, heading, key, directives, prefix)

    def render(self, out, heading, key, directives, prefix):
        out.append(f"{heading}\n")
        self.render_entries(out, filter_directives(directives, key), prefix + NESTED_INDENT)

    def render_item(self, out, index, directives, prefix):
        if index > 0:
            out.append("\n")
        self.render_entries(out, directives, prefix + NESTED_INDENT)


class ReportList(ReportNode):
    def __init__(self, items: Iterable[ReportNode] = ()):
        self.items: List[ReportNode] = list(items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> ReportNode:
        return self.items[index]

    def to_data(self):
        return [item.to_data() for item in self.items]

    def render(self, out, heading, key, directives, prefix):
        if not self.items:
            out.append(f"{heading} []\n")
            return
        out.append(f"{heading}\n")
        item_directives = filter_directives(directives, key)
        for index, item in enumerate(self.items):
            item.render_item(out, index, item_directives, prefix)

    def render_item(self, out, index, directives, prefix):
        raise TypeError("Nested lists are not supported in reports")


def _text_list(values: Iterable[str]) -> ReportList:
    return ReportList(ReportText(value) for value in values)


def _percentile_entries(label: str, samples: Sequence[float]) -> Dict[str, ReportNode]:
    entries = {f"{label} {name}": ReportScalar(percentile(samples, pct))
               for name, pct in PERCENTILE_FIELDS}
    entries[f"{label} Avg"] = ReportScalar(average(samples))
    return entries


def result_report(result: Result) -> ReportMapping:
    """Per-batch report; statistics appear only when a request succeeded."""
    report = ReportMapping()
    report["Operation"] = ReportText(str(result.operation))
    report["Total Requests Count"] = ReportScalar(result.total_requests)
    if result.operation.moves_bytes:
        report["Total Transferred (MB)"] = ReportScalar(bytes_to_mb(result.bytes_transmitted))
        report["Total Throughput (MB/s)"] = ReportScalar(
            calculate_throughput_mbps(result.bytes_transmitted, result.total_duration)
        )
    report["Total Duration (s)"] = ReportScalar(float(result.total_duration))

    if result.op_durations:
        for key, node in _percentile_entries("Duration", result.op_durations).items():
            report[key] = node
    if result.op_ttfb:
        for key, node in _percentile_entries("Ttfb", result.op_ttfb).items():
            report[key] = node

    report["Errors Count"] = ReportScalar(len(result.op_errors))
    report["Errors"] = _text_list(result.op_errors)
    return report


def params_report(params: BenchmarkParams) -> ReportMapping:
    """Flat mapping of the benchmark parameters, credentials excluded."""
    return ReportMapping({
        "endpoints": _text_list(params.endpoints),
        "bucket": ReportText(params.bucket_name),
        "objectNamePrefix": ReportText(params.object_name_prefix),
        "objectSize (MB)": ReportScalar(bytes_to_mb(params.object_size)),
        "numClients": ReportScalar(params.num_clients),
        "numSamples": ReportScalar(params.num_samples),
        "sampleReads": ReportScalar(params.sample_reads),
        "verbose": ReportScalar(params.verbose),
        "headObj": ReportScalar(params.head_obj),
        "clientDelay": ReportScalar(params.client_delay),
        "jsonOutput": ReportScalar(params.json_output),
        "deleteAtOnce": ReportScalar(params.delete_at_once),
        "numTags": ReportScalar(params.num_tags),
        "putObjTag": ReportScalar(params.put_obj_tag),
        "getObjTag": ReportScalar(params.get_obj_tag),
        "readObj": ReportScalar(params.read_obj),
        "tagNamePrefix": ReportText(params.tag_name_prefix),
        "tagValPrefix": ReportText(params.tag_val_prefix),
        "reportFormat": ReportText(params.report_format),
        "validate": ReportScalar(params.validate),
        "skipWrite": ReportScalar(params.skip_write),
        "skipRead": ReportScalar(params.skip_read),
    })


def build_report(params: BenchmarkParams, results: Sequence[Result],
                 version: str = __version__) -> ReportMapping:
    """Build the full report: version, parameters and one entry per batch."""
    return ReportMapping({
        "Version": ReportText(version),
        "Parameters": params_report(params),
        "Tests": ReportList(result_report(result) for result in results),
    })
