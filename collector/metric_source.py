"""
Metric Source — pulls BT scorecard data from an AppDynamics controller.

One ``GET {host}/metric-data`` per call, authenticated with the data
source's REST user. A controller that is down or answers with anything
but 200 yields an empty body; the pump carries on with the next cycle.
"""

from __future__ import annotations

import requests

from settings.config_loader import DataSourceConfig
from utils.errors import TransportError
from utils.logger import get_logger

logger = get_logger(__name__)

METRIC_DATA_ENDPOINT = "/metric-data"


class MetricSource:
    """Fetches raw ``metric-data`` bodies for a configured data source."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    @staticmethod
    def build_params(data_source: DataSourceConfig, minutes: int, rollup: bool) -> dict[str, str]:
        return {
            "metric-path":      data_source.metric_path,
            "time-range-type":  "BEFORE_NOW",
            "duration-in-mins": str(minutes),
            "output":           "JSON",
            "rollup":           "true" if rollup else "false",
        }

    def _request(self, data_source: DataSourceConfig, minutes: int, rollup: bool) -> requests.Response:
        url = data_source.host + METRIC_DATA_ENDPOINT
        params = self.build_params(data_source, minutes, rollup)
        with requests.Session() as session:
            try:
                response = session.get(
                    url,
                    params=params,
                    auth=(data_source.rest_user, data_source.rest_pwd),
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise TransportError(
                    f"GET {url} failed: {exc}", {"data_source": data_source.unique_name}
                ) from exc
        return response

    def fetch(self, data_source: DataSourceConfig, minutes: int, rollup: bool = False) -> bytes:
        """Return the raw response body, or ``b""`` on any failure."""
        try:
            response = self._request(data_source, minutes, rollup)
        except TransportError as exc:
            logger.warning("[%s] controller unreachable: %s", data_source.unique_name, exc)
            return b""

        if response.status_code != requests.codes.ok:
            logger.warning(
                "[%s] controller answered HTTP %s for %s minutes of data",
                data_source.unique_name, response.status_code, minutes,
            )
            return b""
        return response.content
