"""Sinks that receive aggregated samples."""

import abc
import logging
from datetime import datetime

from influxdb_client import InfluxDBClient, Point
from influxdb_client.client.write_api import SYNCHRONOUS

from gkle.errors import ExportError

logger = logging.getLogger(__name__)

INT64_MAX = 2**63 - 1

# influxdb log levels: 0 error, 1 warning, 2 info, 3 debug
INFLUX_DEBUG_LEVEL = 3

# Field names of the existing gkle series in InfluxDB.
FIELD_ALIASES = {
    "flow_table_occupancy_current": "flow_table_ocupancy_current",
    "flow_table_occupancy_max": "flow_table_ocupancy_max",
}


class Exporter(abc.ABC):
    @abc.abstractmethod
    def export(self, timestamp: datetime, counters: dict[str, int]) -> None:
        """Store one sample. Raises ExportError on failure."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class LogExporter(Exporter):
    """Logs samples instead of storing them (dry-run mode)."""

    def __init__(self):
        self.count = 0

    def export(self, timestamp: datetime, counters: dict[str, int]) -> None:
        self.count += 1
        logger.info("Sample %s %s", timestamp.isoformat(),
                    " ".join(f"{k}={v}" for k, v in counters.items()))


def build_point(measurement: str, host: str, timestamp: datetime,
                counters: dict[str, int]) -> Point:
    """Build the InfluxDB point for one sample.

    InfluxDB 1.x has no unsigned integer fields, so values are written as
    signed 64-bit integers and anything larger is refused.
    """
    point = Point(measurement).tag("host", host).time(timestamp)
    for name, value in counters.items():
        if value > INT64_MAX:
            raise ExportError(f"{name}={value} does not fit an int64 field")
        point = point.field(FIELD_ALIASES.get(name, name), int(value))
    return point


class InfluxExporter(Exporter):
    """Writes samples to InfluxDB 1.8+ through its v2 compatibility API."""

    def __init__(self, config, client: InfluxDBClient | None = None):
        self._config = config
        self._bucket = f"{config.database}/{config.retention_policy}"
        self._client = client or InfluxDBClient(
            url=config.url,
            token=f"{config.user}:{config.password}",
            org="-",
            timeout=config.timeout_ms,
            debug=config.log_level >= INFLUX_DEBUG_LEVEL,
        )
        self._write_api = self._client.write_api(write_options=SYNCHRONOUS)

    def export(self, timestamp: datetime, counters: dict[str, int]) -> None:
        point = build_point(self._config.measurement, self._config.hostname,
                            timestamp, counters)
        try:
            self._write_api.write(bucket=self._bucket, record=point)
        except Exception as e:
            raise ExportError(f"error writing to influxdb: {e}") from e

    def close(self) -> None:
        try:
            self._write_api.close()
        finally:
            self._client.close()
