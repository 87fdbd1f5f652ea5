"""gkle entry point: export gatekeeper measurements to InfluxDB."""

import argparse
import logging
import os
import signal
import sys
import time

from gkle.checkpoint import Checkpoint
from gkle.config import LOG_LEVELS, load_config
from gkle.dispatcher import Dispatcher
from gkle.errors import ConfigError, GkleError
from gkle.exporter import InfluxExporter, LogExporter
from gkle.parser import LineParser
from gkle.selector import FileSelector
from gkle.watcher import LogDirWatcher

logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, frame):
    global _running
    logger.info("Shutdown signal received, stopping...")
    _running = False


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gatekeeper log exporter")
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file (default: $GKLE_CONFIG or /etc/gkle.yaml)",
    )
    parser.add_argument(
        "--log-level", default=os.environ.get("GKLE_LOG_LEVEL", "INFO"),
        type=str.upper, choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Log samples instead of writing them to InfluxDB",
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Run a single export pass and exit",
    )
    return parser


def build_dispatcher(config, dry_run: bool = False) -> Dispatcher:
    if dry_run:
        factory = LogExporter
    else:
        def factory():
            return InfluxExporter(config.influxdb)

    return Dispatcher(
        selector=FileSelector(config.gk_log_dir),
        checkpoint=Checkpoint(config.checkpoint_file),
        exporter_factory=factory,
        parser=LineParser(config.log_line_regex or None),
        missing_watermark=config.missing_watermark,
    )


def run(argv=None) -> int:
    global _running
    args = build_cli_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s [GKLE] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config, require_influxdb=not args.dry_run)
    except ConfigError as e:
        logger.error("Error reading config file: %s", e)
        return 1

    dispatcher = build_dispatcher(config, dry_run=args.dry_run)
    logger.info("Config: gk_log_dir=%s, checkpoint=%s, sink=%s",
                config.gk_log_dir, config.checkpoint_file,
                "log" if args.dry_run else config.influxdb.url)

    if args.once:
        try:
            n = dispatcher.drain()
        except (GkleError, OSError) as e:
            logger.error("Export pass aborted: %s", e)
            return 1
        logger.info("Exported %d file(s)", n)
        return 0

    _running = True
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    watcher = LogDirWatcher(config.gk_log_dir, dispatcher)
    try:
        watcher.start(drain_first=config.drain_on_startup)
    except OSError as e:
        logger.error("Error adding watcher to log dir %s: %s", config.gk_log_dir, e)
        watcher.stop()
        return 1

    logger.info("gkle running. Press Ctrl+C to stop.")

    exit_code = 0
    try:
        while _running:
            if not watcher.is_alive():
                logger.error("Watch loop stopped unexpectedly")
                exit_code = 1
                break
            time.sleep(1)
    except KeyboardInterrupt:
        pass

    logger.info("Shutting down...")
    watcher.stop()
    logger.info("Stats: %d file(s), %d sample(s) exported, %d failed pass(es)",
                dispatcher.files_processed, dispatcher.samples_exported,
                watcher.worker.failed_passes)
    return exit_code


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
