"""Configuration loaded from the gkle YAML file."""

import logging
import os
import socket
from dataclasses import dataclass

import yaml

from gkle.errors import ConfigError
from gkle.parser import compile_line_pattern

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/gkle.yaml"
DEFAULT_CHECKPOINT_FILE = "/var/lib/gkle/last"
MISSING_WATERMARK_POLICIES = ("resume", "halt")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class InfluxConfig:
    url: str
    user: str
    password: str
    database: str
    retention_policy: str = ""
    measurement: str = "gkle"
    hostname: str = ""
    timeout_ms: int = 10_000
    log_level: int = 0

    @classmethod
    def from_dict(cls, d: dict) -> "InfluxConfig":
        if not isinstance(d, dict):
            raise ConfigError("influxdb section must be a mapping")
        if not (d.get("user") and d.get("password") and d.get("database")):
            raise ConfigError("not enough authentication credentials for influxdb")
        if not d.get("url"):
            raise ConfigError("influxdb url is required")
        try:
            timeout_ms = int(d.get("timeout_ms", cls.timeout_ms))
        except (TypeError, ValueError):
            raise ConfigError(f"invalid influxdb timeout_ms: {d.get('timeout_ms')!r}") from None
        log_level = d.get("log_level", cls.log_level)
        if isinstance(log_level, bool) or not isinstance(log_level, int) or not 0 <= log_level <= 3:
            raise ConfigError(f"influxdb log_level must be 0-3, got {log_level!r}")
        return cls(
            url=d["url"],
            user=str(d["user"]),
            password=str(d["password"]),
            database=str(d["database"]),
            retention_policy=str(d.get("retention_policy") or ""),
            measurement=d.get("measurement") or cls.measurement,
            hostname=d.get("hostname") or socket.gethostname(),
            timeout_ms=timeout_ms,
            log_level=log_level,
        )


@dataclass(frozen=True)
class Config:
    gk_log_dir: str
    checkpoint_file: str = DEFAULT_CHECKPOINT_FILE
    log_line_regex: str = ""
    missing_watermark: str = "resume"
    drain_on_startup: bool = True
    influxdb: InfluxConfig | None = None

    @classmethod
    def from_dict(cls, d: dict, require_influxdb: bool = True) -> "Config":
        if not isinstance(d, dict):
            raise ConfigError("config file must contain a mapping")
        if not d.get("gk_log_dir"):
            raise ConfigError("gk_log_dir empty")

        regex = d.get("log_line_regex") or ""
        if regex:
            compile_line_pattern(regex)

        policy = d.get("missing_watermark", cls.missing_watermark)
        if policy not in MISSING_WATERMARK_POLICIES:
            raise ConfigError(
                f"missing_watermark must be one of {', '.join(MISSING_WATERMARK_POLICIES)}"
            )

        influx = None
        if d.get("influxdb") is not None:
            influx = InfluxConfig.from_dict(d["influxdb"])
        elif require_influxdb:
            raise ConfigError("error parsing influxdb config")

        drain_on_startup = d.get("drain_on_startup", cls.drain_on_startup)
        if not isinstance(drain_on_startup, bool):
            raise ConfigError(f"drain_on_startup must be true or false, got {drain_on_startup!r}")

        return cls(
            gk_log_dir=d["gk_log_dir"],
            checkpoint_file=d.get("checkpoint_file") or DEFAULT_CHECKPOINT_FILE,
            log_line_regex=regex,
            missing_watermark=policy,
            drain_on_startup=drain_on_startup,
            influxdb=influx,
        )


def load_yaml(path: str) -> dict:
    """Read the YAML file at *path*."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"error reading config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing config {path}: {e}") from e
    return data or {}


def load_config(path: str | None = None, require_influxdb: bool = True) -> Config:
    """Load config from *path*, ``GKLE_CONFIG``, or /etc/gkle.yaml in that order."""
    path = path or os.environ.get("GKLE_CONFIG", DEFAULT_CONFIG_PATH)
    config = Config.from_dict(load_yaml(path), require_influxdb=require_influxdb)
    logger.info("Loaded config from %s", path)
    return config
