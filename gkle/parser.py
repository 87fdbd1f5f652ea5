"""Gatekeeper "Basic measurements" line parser.

A gatekeeper lcore writes one line per reporting interval:

    GK/3 2024-01-01 00:00:05 NOTICE Basic measurements [tot_pkts_num = 10,
    tot_pkts_size = 640, ..., flow_table_occupancy = 12/250000=0.0048%]

(wrapped here for readability; the log has it on a single line). Lines that
do not fit the grammar are ordinary log noise and parse to ``None``.
"""

import re
from datetime import datetime, timezone

from gkle.errors import ConfigError, MalformedLineError
from gkle.models import COUNTER_NAMES, UINT64_MAX, CounterRecord

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

REQUIRED_GROUPS = ("lcore", "time") + COUNTER_NAMES

_PLAIN_COUNTERS = r",\s+".join(
    rf"{name}\s+=\s+(?P<{name}>\d+)" for name in COUNTER_NAMES[:-2]
)

LINE_PATTERN = re.compile(
    r"^GK/(?P<lcore>\d+)\s+"
    r"(?P<time>\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})\s+"
    r"NOTICE\s+Basic\s+measurements\s+\["
    + _PLAIN_COUNTERS
    + r",\s+flow_table_occupancy\s+=\s+"
    r"(?P<flow_table_occupancy_current>\d+)/(?P<flow_table_occupancy_max>\d+)"
    r"=\d+\.\d+%\]"
)


def compile_line_pattern(pattern: str) -> re.Pattern:
    """Compile a user supplied line grammar and check its named groups."""
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"invalid log_line_regex: {e}") from e

    missing = [name for name in REQUIRED_GROUPS if name not in compiled.groupindex]
    if missing:
        raise ConfigError(
            f"log_line_regex is missing named groups: {', '.join(missing)}"
        )
    return compiled


def _parse_uint(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise MalformedLineError(f"{name}: {raw!r} is not an integer") from None
    if value < 0 or value > UINT64_MAX:
        raise MalformedLineError(f"{name}: {raw} is outside the uint64 range")
    return value


class LineParser:
    """Turns raw log lines into CounterRecords.

    The grammar defaults to LINE_PATTERN; a replacement must define the same
    named groups (see compile_line_pattern).
    """

    def __init__(self, pattern: re.Pattern | str | None = None):
        if pattern is None:
            self._pattern = LINE_PATTERN
        elif isinstance(pattern, str):
            self._pattern = compile_line_pattern(pattern)
        else:
            self._pattern = pattern

    @property
    def pattern(self) -> re.Pattern:
        return self._pattern

    def parse(self, line: str) -> CounterRecord | None:
        """Parse one line. Returns None when the line is not a counter line.

        Raises MalformedLineError when the line matches but a field does not
        convert.
        """
        match = self._pattern.search(line.rstrip("\n"))
        if match is None:
            return None

        # collapse runs of whitespace between date and time
        raw_time = " ".join((match.group("time") or "").split())
        try:
            timestamp = datetime.strptime(raw_time, TIMESTAMP_FORMAT)
        except ValueError:
            raise MalformedLineError(f"time: {raw_time!r} is not a valid timestamp") from None

        lcore = _parse_uint("lcore", match.group("lcore"))
        counters = {name: _parse_uint(name, match.group(name)) for name in COUNTER_NAMES}

        return CounterRecord(
            lcore=lcore,
            timestamp=timestamp.replace(tzinfo=timezone.utc),
            counters=counters,
        )
