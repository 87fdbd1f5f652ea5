"""Groups per-lcore counter records into one summed sample per interval.

Gatekeeper writes one line per active lcore per interval, in no particular
lcore order and with nothing separating intervals. The only boundary signal
is an lcore reappearing: when a record arrives for an lcore already held,
everything held so far is one complete interval. An lcore that skips an
interval entirely blurs two intervals together; that approximation is
accepted.
"""

import logging
from collections.abc import Callable

from gkle.models import COUNTER_NAMES, CounterRecord, Sample

logger = logging.getLogger(__name__)

Emit = Callable[[Sample], None]


def aggregate(records: list[CounterRecord]) -> Sample:
    """Sum counters element-wise. The first record supplies the timestamp."""
    totals = dict.fromkeys(COUNTER_NAMES, 0)
    for record in records:
        for name in COUNTER_NAMES:
            totals[name] += record.counters.get(name, 0)
    return Sample(timestamp=records[0].timestamp, counters=totals)


class BucketAggregator:
    def __init__(self):
        self._bucket: dict[int, CounterRecord] = {}
        self._emitted = 0

    @property
    def emitted(self) -> int:
        return self._emitted

    @property
    def pending(self) -> int:
        """Number of lcores held in the open bucket."""
        return len(self._bucket)

    def feed(self, record: CounterRecord, emit: Emit) -> None:
        if record.lcore in self._bucket:
            self._flush_bucket(emit)
        self._bucket[record.lcore] = record

    def flush(self, emit: Emit) -> None:
        """Emit the open bucket, if any. Called once at end of stream."""
        if self._bucket:
            self._flush_bucket(emit)

    def _flush_bucket(self, emit: Emit) -> None:
        sample = aggregate(list(self._bucket.values()))
        logger.debug("Bucket %s closed with %d lcore(s)",
                     sample.timestamp.isoformat(), len(self._bucket))
        self._bucket = {}
        emit(sample)
        self._emitted += 1
