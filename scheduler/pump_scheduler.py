"""
Pump Scheduler — keeps every data source's SLA series flowing into InfluxDB.

Two pumps run per data source, each on its own thread:

  • short pump: wait a minute, then save the last 5 minutes of data
  • long pump:  save the last 240 minutes right away, then wait an hour

The long pump's first run fills the gap left while the vault was down;
after that both keep overwriting the same buckets with fresher numbers.
A cycle that fails is logged and forgotten; the pump goes on.

Cycle counts and durations go to the default prometheus_client registry.
The vault itself serves no endpoint and pushes nowhere, so they are only
readable in-process: by an application embedding ``PumpScheduler`` that
exposes the registry itself, or from tests.

Usage (CLI)::

    SLA_VAULT_CONFIG=config/config.yaml python -m scheduler.pump_scheduler
"""

from __future__ import annotations

import os
import signal
import sys
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from prometheus_client import Counter, Histogram

from collector import payload_parser
from collector.metric_source import MetricSource
from settings.config_loader import DataSourceConfig, VaultConfig, load_config
from sla.sla_aggregator import SLAAggregator
from storage.series_sink import CycleTimingRecord, SeriesSink
from utils.errors import ConfigurationError
from utils.logger import get_logger

logger = get_logger(__name__)

# ── Cadences (intervals overridable via environment) ──────────────────────────

SHORT_INTERVAL_S = float(os.getenv("SLA_SHORT_INTERVAL_S", "60"))
LONG_INTERVAL_S  = float(os.getenv("SLA_LONG_INTERVAL_S",  "3600"))


@dataclass(frozen=True)
class Cadence:
    name: str
    interval_s: float
    lookback_minutes: int
    rollup: bool
    sleep_first: bool


SHORT_CADENCE = Cadence("1m", SHORT_INTERVAL_S, lookback_minutes=5,   rollup=False, sleep_first=True)
LONG_CADENCE  = Cadence("1h", LONG_INTERVAL_S,  lookback_minutes=240, rollup=False, sleep_first=False)
CADENCES = (LONG_CADENCE, SHORT_CADENCE)


@dataclass(frozen=True)
class PumpTask:
    """Everything one pump thread needs, fixed at spawn time."""

    index: int
    data_source: DataSourceConfig
    cadence: Cadence

    @property
    def name(self) -> str:
        return f"pump-{self.data_source.unique_name}-{self.cadence.name}"


# ── Prometheus instruments ────────────────────────────────────────────────────

CYCLE_COUNT = Counter(
    "sla_vault_cycles_total",
    "Pump cycles run",
    ["cadence", "outcome"],
)

CYCLE_DURATION = Histogram(
    "sla_vault_cycle_duration_seconds",
    "Wall time of one fetch + save cycle",
    ["cadence"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)


# ── Scheduler ─────────────────────────────────────────────────────────────────

class PumpScheduler:
    """
    Runs the short and long pump for every configured data source.

    Usage::

        scheduler = PumpScheduler(load_config())
        scheduler.start()
        scheduler.run_forever()     # until stop() or SIGTERM
    """

    def __init__(
        self,
        config: VaultConfig,
        source: MetricSource | None = None,
        sink: SeriesSink | None = None,
        aggregator: SLAAggregator | None = None,
        cadences: tuple[Cadence, ...] = CADENCES,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.config     = config
        self.source     = source or MetricSource(timeout=config.http_timeout_s)
        self.sink       = sink or SeriesSink(config.database)
        self.aggregator = aggregator or SLAAggregator()
        self.cadences   = cadences
        self.stop_event = stop_event or threading.Event()
        self._threads: list[threading.Thread] = []

    def tasks(self) -> list[PumpTask]:
        return [
            PumpTask(index=idx, data_source=ds, cadence=cadence)
            for idx, ds in enumerate(self.config.data_sources)
            for cadence in self.cadences
        ]

    # ── One cycle ─────────────────────────────────────────────────────────────

    def run_cycle(self, task: PumpTask) -> CycleTimingRecord:
        ds = task.data_source
        started_at = datetime.now(tz=timezone.utc)
        start = time.monotonic()

        body = self.source.fetch(ds, task.cadence.lookback_minutes, task.cadence.rollup)
        records = self.aggregator.aggregate(payload_parser.parse(body))
        fetched = time.monotonic()

        self.sink.write_sla(ds, records)
        saved = time.monotonic()

        timing = CycleTimingRecord(
            data_source=task.index,
            series_length=len(records),
            started_at=started_at,
            fetch_duration=fetched - start,
            persist_duration=saved - fetched,
        )
        self.sink.write_timing(task.index, timing)

        logger.info(
            "[%s] %s pump: %d records, get %.3fs, save %.3fs",
            ds.unique_name, task.cadence.name, len(records),
            timing.fetch_duration, timing.persist_duration,
        )
        if records:
            logger.debug("[%s] series\n%s", ds.unique_name, self.aggregator.report(records))
        return timing

    def _safe_cycle(self, task: PumpTask) -> None:
        start = time.monotonic()
        try:
            self.run_cycle(task)
        except Exception:
            CYCLE_COUNT.labels(cadence=task.cadence.name, outcome="error").inc()
            logger.exception(
                "[%s] %s pump cycle failed", task.data_source.unique_name, task.cadence.name
            )
        else:
            CYCLE_COUNT.labels(cadence=task.cadence.name, outcome="ok").inc()
        finally:
            CYCLE_DURATION.labels(cadence=task.cadence.name).observe(time.monotonic() - start)

    # ── Loops ─────────────────────────────────────────────────────────────────

    def _run_loop(self, task: PumpTask) -> None:
        interval = task.cadence.interval_s
        if task.cadence.sleep_first and self.stop_event.wait(interval):
            return
        while not self.stop_event.is_set():
            self._safe_cycle(task)
            if self.stop_event.wait(interval):
                break
        logger.info("%s stopped", task.name)

    def start(self) -> None:
        for task in self.tasks():
            thread = threading.Thread(
                target=self._run_loop, args=(task,), name=task.name, daemon=True
            )
            thread.start()
            self._threads.append(thread)
        logger.info(
            "Started %d pumps for %d data source(s)",
            len(self._threads), len(self.config.data_sources),
        )

    def stop(self, timeout: float | None = None) -> None:
        self.stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()

    def run_forever(self) -> None:
        self.stop_event.wait()


# ── CLI entry-point ───────────────────────────────────────────────────────────

def main() -> None:
    try:
        config = load_config()
    except ConfigurationError as exc:
        logger.error("Cannot start: %s", exc)
        sys.exit(1)

    scheduler = PumpScheduler(config)

    def _shutdown(signum, _frame) -> None:
        logger.info("Received signal %s, stopping pumps", signum)
        scheduler.stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    scheduler.start()
    scheduler.run_forever()
    # In-flight cycles may still be waiting on the controller; daemon threads
    # are not waited for beyond this.
    scheduler.stop(timeout=5)


if __name__ == "__main__":
    main()
