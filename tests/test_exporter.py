"""Tests for gkle/exporter.py"""

from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from conftest import counters_for
from gkle.config import InfluxConfig
from gkle.errors import ExportError
from gkle.exporter import INT64_MAX, InfluxExporter, LogExporter, build_point

TS = datetime(2024, 1, 1, 0, 0, 5, tzinfo=timezone.utc)

CONFIG = InfluxConfig(
    url="http://localhost:8086",
    user="gkle",
    password="secret",
    database="gatekeeper",
    retention_policy="autogen",
    hostname="gk-01",
)


class TestBuildPoint:
    def test_line_protocol(self):
        lp = build_point("gkle", "gk-01", TS, {"tot_pkts_num": 10}).to_line_protocol()
        assert lp.startswith("gkle,host=gk-01 tot_pkts_num=10i ")

    def test_occupancy_field_names(self):
        lp = build_point("gkle", "gk-01", TS, counters_for(0)).to_line_protocol()
        assert "flow_table_ocupancy_current=12i" in lp
        assert "flow_table_ocupancy_max=13i" in lp

    def test_int64_max_accepted(self):
        lp = build_point("gkle", "h", TS, {"tot_pkts_size": INT64_MAX}).to_line_protocol()
        assert f"tot_pkts_size={INT64_MAX}i" in lp

    def test_beyond_int64_refused(self):
        with pytest.raises(ExportError, match="int64"):
            build_point("gkle", "h", TS, {"tot_pkts_size": INT64_MAX + 1})


class TestInfluxExporter:
    def test_writes_to_database_and_retention_policy(self):
        client = MagicMock()
        ex = InfluxExporter(CONFIG, client=client)
        ex.export(TS, counters_for(1))

        write_api = client.write_api.return_value
        write_api.write.assert_called_once()
        assert write_api.write.call_args.kwargs["bucket"] == "gatekeeper/autogen"

    def test_client_error_becomes_export_error(self):
        client = MagicMock()
        client.write_api.return_value.write.side_effect = ConnectionError("refused")
        ex = InfluxExporter(CONFIG, client=client)
        with pytest.raises(ExportError, match="refused"):
            ex.export(TS, counters_for(1))

    def test_close_closes_client(self):
        client = MagicMock()
        with InfluxExporter(CONFIG, client=client):
            pass
        client.write_api.return_value.close.assert_called_once()
        client.close.assert_called_once()

    @pytest.mark.parametrize("level, debug", [(0, False), (2, False), (3, True)])
    def test_log_level_sets_client_debug(self, monkeypatch, level, debug):
        client_cls = MagicMock()
        monkeypatch.setattr("gkle.exporter.InfluxDBClient", client_cls)
        InfluxExporter(replace(CONFIG, log_level=level))
        assert client_cls.call_args.kwargs["debug"] is debug
        assert client_cls.call_args.kwargs["token"] == "gkle:secret"


class TestLogExporter:
    def test_logs_samples(self, caplog):
        caplog.set_level("INFO")
        ex = LogExporter()
        ex.export(TS, {"tot_pkts_num": 3})
        assert ex.count == 1
        assert "tot_pkts_num=3" in caplog.text
