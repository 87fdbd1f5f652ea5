import pytest

from gkle.errors import ExportError
from gkle.exporter import Exporter
from gkle.models import COUNTER_NAMES


def counters_for(base: int) -> dict[str, int]:
    return {name: base + i for i, name in enumerate(COUNTER_NAMES)}


def format_line(lcore: int, ts: str, counters: dict[str, int]) -> str:
    plain = ", ".join(f"{name} = {counters[name]}" for name in COUNTER_NAMES[:-2])
    return (
        f"GK/{lcore} {ts} NOTICE Basic measurements [{plain}, "
        f"flow_table_occupancy = {counters['flow_table_occupancy_current']}"
        f"/{counters['flow_table_occupancy_max']}=0.0048%]"
    )


class RecordingExporter(Exporter):
    def __init__(self, fail_after: int | None = None):
        self.samples = []
        self.closed = False
        self._fail_after = fail_after

    def export(self, timestamp, counters):
        if self._fail_after is not None and len(self.samples) >= self._fail_after:
            raise ExportError("sink unavailable")
        self.samples.append((timestamp, dict(counters)))

    def close(self):
        self.closed = True


@pytest.fixture
def make_line():
    def _make(lcore: int, ts: str = "2024-01-01 00:00:05", base: int = 1) -> str:
        return format_line(lcore, ts, counters_for(base))
    return _make


@pytest.fixture
def log_dir(tmp_path):
    d = tmp_path / "gatekeeper"
    d.mkdir()
    return d


@pytest.fixture
def write_log(log_dir):
    def _write(name: str, lines: list[str]) -> str:
        path = log_dir / name
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return str(path)
    return _write
