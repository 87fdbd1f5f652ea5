"""Counter record and aggregated sample models."""

from dataclasses import dataclass, field
from datetime import datetime

# Order matches the "Basic measurements" line written by gatekeeper.
COUNTER_NAMES = (
    "tot_pkts_num",
    "tot_pkts_size",
    "pkts_num_granted",
    "pkts_size_granted",
    "pkts_num_request",
    "pkts_size_request",
    "pkts_num_declined",
    "pkts_size_declined",
    "tot_pkts_num_dropped",
    "tot_pkts_size_dropped",
    "tot_pkts_num_distributed",
    "tot_pkts_size_distributed",
    "flow_table_occupancy_current",
    "flow_table_occupancy_max",
)

UINT64_MAX = 2**64 - 1


@dataclass(frozen=True)
class CounterRecord:
    lcore: int
    timestamp: datetime
    counters: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Sample:
    timestamp: datetime
    counters: dict[str, int] = field(default_factory=dict)
