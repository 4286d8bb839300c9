"""
Series Sink — writes SLA series and pump timings to InfluxDB.

Every write opens its own client, sends one batch and closes the client
again. Failures are logged and dropped: the 4 hour window of the long
cadence re-covers any minute lost here.

Usage::

    from storage.series_sink import SeriesSink
    sink = SeriesSink(cfg.database)
    sink.write_sla(cfg.data_sources[0], records)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from settings.config_loader import DatabaseConfig, DataSourceConfig
from utils.errors import SinkError
from utils.logger import get_logger

if TYPE_CHECKING:
    from sla.sla_aggregator import SLARecord

logger = get_logger(__name__)

TIMINGS_TAG = "timings"


@dataclass(frozen=True)
class CycleTimingRecord:
    """How long one pump cycle spent fetching and saving."""

    data_source: int            # index in the configuration
    series_length: int
    started_at: datetime
    fetch_duration: float       # seconds
    persist_duration: float     # seconds

    def to_fields(self) -> dict[str, int]:
        return {
            "ds":   self.data_source,
            "slen": self.series_length,
            "get":  int(self.fetch_duration * 1000),
            "save": int(self.persist_duration * 1000),
        }


class SeriesSink:
    """Batched point writer for one InfluxDB database."""

    def __init__(self, database: DatabaseConfig) -> None:
        self.database = database

    def _client(self) -> InfluxDBClient:
        # InfluxDB 1.8+ compatibility API: token is "user:password", bucket is the database
        return InfluxDBClient(
            url=self.database.host,
            token=f"{self.database.user}:{self.database.password}",
            org="-",
        )

    def _write(self, points: list[Point]) -> None:
        try:
            with self._client() as client:
                with client.write_api(write_options=SYNCHRONOUS) as write_api:
                    write_api.write(
                        bucket=self.database.name,
                        record=points,
                        write_precision=WritePrecision.S,
                    )
        except Exception as exc:
            raise SinkError(
                f"Write of {len(points)} points to {self.database.host} failed: {exc}",
                {"database": self.database.name},
            ) from exc

    # ── Points ────────────────────────────────────────────────────────────────

    def sla_point(self, data_source: DataSourceConfig, record: "SLARecord") -> Point:
        point = Point(self.database.name).tag(self.database.name, data_source.unique_name)
        for key, value in record.to_fields().items():
            point = point.field(key, value)
        return point.time(record.timestamp_seconds, WritePrecision.S)

    def timing_point(self, timing: CycleTimingRecord) -> Point:
        point = Point(self.database.name).tag(self.database.name, TIMINGS_TAG)
        for key, value in timing.to_fields().items():
            point = point.field(key, value)
        return point.time(timing.started_at, WritePrecision.S)

    # ── Writes ────────────────────────────────────────────────────────────────

    def write_sla(self, data_source: DataSourceConfig, records: dict[int, "SLARecord"]) -> bool:
        """Write one point per record; ``False`` when nothing was written."""
        if not records:
            return False

        points = [self.sla_point(data_source, r) for r in records.values()]
        try:
            self._write(points)
        except SinkError as exc:
            logger.warning("[%s] SLA series dropped: %s", data_source.unique_name, exc)
            return False
        return True

    def write_timing(self, data_source_index: int, timing: CycleTimingRecord) -> bool:
        try:
            self._write([self.timing_point(timing)])
        except SinkError as exc:
            logger.warning("[ds=%s] timings dropped: %s", data_source_index, exc)
            return False
        return True
