"""
Payload Parser — turns a controller ``metric-data`` response into series.

The controller answers with a bare JSON array of metric objects::

    [{"metricName": "BTM|BTs|BT:1|Component:2|Calls per Minute",
      "metricPath": "Business Transaction Performance|...|Calls per Minute",
      "frequency": "ONE_MIN",
      "metricValues": [{"startTimeInMillis": 1700000040000, "sum": 12, ...}]},
     ...]

so the body is wrapped as ``{ "metrics": <body> }`` before decoding.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from utils.errors import FormatError
from utils.logger import get_logger

logger = get_logger(__name__)

NO_DATA = "METRIC DATA NOT FOUND"


@dataclass(frozen=True)
class RawMetricSeries:
    """One counter series exactly as reported by the controller."""

    metric_name: str
    metric_path: str
    frequency: str
    values: tuple[tuple[int, int], ...]   # (startTimeInMillis, sum)

    @property
    def counter_label(self) -> str:
        """Last ``|`` segment of the path, e.g. ``Errors per Minute``."""
        return self.metric_path.split("|")[-1]

    @property
    def is_empty(self) -> bool:
        return self.metric_name == NO_DATA or not self.values


def wrap_payload(raw: bytes) -> bytes:
    return b'{ "metrics": ' + raw + b"}"


def _to_series(obj: Any) -> RawMetricSeries:
    """Build one series; absent path, frequency or sum read as "" / 0.

    Raises ``FormatError`` for entries that are not objects, samples
    without a start time, or values that are not integers.
    """
    if not isinstance(obj, dict):
        raise FormatError(f"Metric entry is not an object: {type(obj).__name__}")
    try:
        values = tuple(
            (int(v["startTimeInMillis"]), int(v.get("sum") or 0))
            for v in (obj.get("metricValues") or [])
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise FormatError(f"Malformed metric entry: {exc!r}", {"entry": obj}) from exc
    return RawMetricSeries(
        metric_name=str(obj.get("metricName") or ""),
        metric_path=str(obj.get("metricPath") or ""),
        frequency=str(obj.get("frequency") or ""),
        values=values,
    )


def decode(raw: bytes) -> list[RawMetricSeries]:
    """Decode a raw body.

    Raises ``FormatError`` when the body is not JSON or not an array of
    metrics. A single malformed entry is logged and skipped so the other
    series in the payload survive. Empty series are kept here; ``parse``
    filters them out.
    """
    try:
        doc = json.loads(wrap_payload(raw))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FormatError(f"Payload is not valid JSON: {exc}") from exc

    metrics = doc["metrics"]
    if isinstance(metrics, dict):
        # A lone sentinel object instead of an array
        metrics = [metrics]
    if not isinstance(metrics, list):
        raise FormatError(f"Unexpected payload type: {type(metrics).__name__}")

    series = []
    for idx, entry in enumerate(metrics):
        try:
            series.append(_to_series(entry))
        except FormatError as exc:
            logger.warning("Skipping metric entry %d: %s", idx, exc)
    return series


def parse(raw: bytes) -> list[RawMetricSeries]:
    """Return the non-empty series in ``raw``; ``[]`` if it cannot be decoded."""
    try:
        series = decode(raw)
    except FormatError as exc:
        if raw:
            logger.warning("Discarding undecodable payload (%d bytes): %s", len(raw), exc)
        return []
    return [s for s in series if not s.is_empty]
