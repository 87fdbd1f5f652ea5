"""One drain pass: select pending logs, export their samples, checkpoint."""

import logging
from collections.abc import Callable

from gkle.aggregator import BucketAggregator
from gkle.checkpoint import Checkpoint
from gkle.errors import MalformedLineError, WatermarkNotFoundError
from gkle.exporter import Exporter
from gkle.models import Sample
from gkle.parser import LineParser
from gkle.selector import FileSelector

logger = logging.getLogger(__name__)


class Dispatcher:
    """Streams each pending file through parser and aggregator into the sink.

    Files are handled strictly in order and the checkpoint only moves once
    every sample of a file was accepted by the sink. Any failure stops the
    pass and propagates; the next pass recomputes the backlog from the
    unchanged checkpoint.
    """

    def __init__(self, selector: FileSelector, checkpoint: Checkpoint,
                 exporter_factory: Callable[[], Exporter],
                 parser: LineParser | None = None,
                 missing_watermark: str = "resume"):
        self._selector = selector
        self._checkpoint = checkpoint
        self._exporter_factory = exporter_factory
        self._parser = parser or LineParser()
        self._missing_watermark = missing_watermark
        self.files_processed = 0
        self.samples_exported = 0

    def pending_files(self) -> list[str]:
        watermark = self._checkpoint.load()
        if watermark is None:
            logger.debug("No checkpoint yet, selecting all closed log files")
        try:
            return self._selector.scan(watermark)
        except WatermarkNotFoundError as e:
            if self._missing_watermark != "resume":
                raise
            logger.warning("Checkpoint %s is no longer in %s; resuming with %d newer file(s)",
                           e.watermark, self._selector.log_dir, len(e.pending))
            return e.pending

    def drain(self) -> int:
        """Process the whole backlog. Returns the number of files completed."""
        files = self.pending_files()
        if not files:
            logger.debug("Nothing to export")
            return 0

        done = 0
        with self._exporter_factory() as exporter:
            for path in files:
                count = self.process_file(path, exporter)
                self._checkpoint.save(path)
                done += 1
                self.files_processed += 1
                self.samples_exported += count
                logger.info("Exported %d sample(s) from %s", count, path)
        return done

    def process_file(self, path: str, exporter: Exporter) -> int:
        """Export every sample of *path*. Returns the number of samples."""
        logger.debug("Parsing log file %s", path)
        aggregator = BucketAggregator()

        def emit(sample: Sample) -> None:
            exporter.export(sample.timestamp, sample.counters)

        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line_number, line in enumerate(f, start=1):
                try:
                    record = self._parser.parse(line)
                except MalformedLineError as e:
                    raise e.at(path, line_number) from None
                if record is not None:
                    aggregator.feed(record, emit)
        aggregator.flush(emit)
        return aggregator.emitted
