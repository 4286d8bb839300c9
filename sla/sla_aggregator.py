"""
SLA Aggregator — folds BT counter series into one SLA record per minute.

Reads:
  • parsed controller series (calls, errors, stalls, very slow calls)

Produces:
  • dict of startTimeInMillis → SLARecord with availability / performance
  • text report of a series, handy when debugging a data source
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from collector.payload_parser import RawMetricSeries


class CounterKind(enum.Enum):
    """BT metrics the SLA is computed from, keyed by their exact label."""

    CALLS     = "Calls per Minute"
    ERRORS    = "Errors per Minute"
    STALLS    = "Stall Count"
    VERY_SLOW = "Number of Very Slow Calls"

    @classmethod
    def from_label(cls, label: str) -> "CounterKind | None":
        try:
            return cls(label)
        except ValueError:
            return None


_COUNTER_FIELD = {
    CounterKind.CALLS:     "total_calls",
    CounterKind.ERRORS:    "total_errors",
    CounterKind.STALLS:    "total_stalls",
    CounterKind.VERY_SLOW: "total_very_slow",
}


# ── Record ────────────────────────────────────────────────────────────────────

@dataclass
class SLARecord:
    """Counters and SLA score for one reporting interval."""

    start_time: int                  # epoch millis, bucket start
    frequency: str
    total_calls: int = 0
    total_errors: int = 0
    total_stalls: int = 0
    total_very_slow: int = 0
    availability: float = 100.0
    performance: float = 100.0

    @property
    def timestamp_seconds(self) -> int:
        return self.start_time // 1000

    def set_counter(self, kind: CounterKind, value: int) -> None:
        setattr(self, _COUNTER_FIELD[kind], value)

    def calc_sla(self) -> None:
        """Set availability and performance from the counters.

        Idle buckets (no calls) keep the 100.0 defaults.
        """
        if self.total_calls > 0:
            unavailable = 100 * (self.total_errors + self.total_stalls) / self.total_calls
            slow = 100 * self.total_very_slow / self.total_calls
            self.availability = 100.0 - unavailable
            # Very slow calls raise the score above 100.
            self.performance = 100.0 + slow

    def to_fields(self) -> dict[str, Any]:
        return {
            "availability":  self.availability,
            "performance":   self.performance,
            "totalCalls":    self.total_calls,
            "totalErrors":   self.total_errors,
            "totalStalls":   self.total_stalls,
            "totalVerySlow": self.total_very_slow,
        }


# ── Aggregator ────────────────────────────────────────────────────────────────

class SLAAggregator:
    """
    Builds SLA records from one fetch worth of controller series.

    Usage::

        records = SLAAggregator().aggregate(payload_parser.parse(body))
        print(SLAAggregator.report(records))
    """

    def aggregate(self, series: Iterable[RawMetricSeries]) -> dict[int, SLARecord]:
        records: dict[int, SLARecord] = {}

        for s in series:
            if s.is_empty:
                continue
            kind = CounterKind.from_label(s.counter_label)
            if kind is None:
                continue

            for start_time, total in s.values:
                record = records.get(start_time)
                if record is None:
                    record = SLARecord(start_time=start_time, frequency=s.frequency)
                    records[start_time] = record
                record.set_counter(kind, total)

        for record in records.values():
            record.calc_sla()
        return records

    # ── Report ────────────────────────────────────────────────────────────────

    @staticmethod
    def report(records: dict[int, SLARecord]) -> str:
        lines = [
            "╔══════════════════════════════════════════════════════════════╗",
            "║  Freq      Start                  Avail %    Perf %   Calls ║",
            "╠══════════════════════════════════════════════════════════════╣",
        ]
        for key in sorted(records):
            r = records[key]
            start = datetime.fromtimestamp(r.timestamp_seconds).strftime("%Y-%m-%d %H:%M:%S")
            lines.append(
                f"║  {r.frequency:<9} {start:<20} {r.availability:>8.1f} "
                f"{r.performance:>9.1f} {r.total_calls:>7} ║"
            )
        lines += [
            "╠══════════════════════════════════════════════════════════════╣",
            f"║  Series length {len(records):<46}║",
            "╚══════════════════════════════════════════════════════════════╝",
        ]
        return "\n".join(lines)
