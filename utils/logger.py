"""
Logger factory for the SLA vault.

Every pump, source and sink logs through here so the output format and
log level are set in one place (``LOG_LEVEL`` environment variable).
Each line carries the pump it came from (``prod/1m``, ``perf/1h``) or
``main`` for the process thread, and a UTC timestamp so lines from
controllers in different zones line up with the InfluxDB series.
"""

from __future__ import annotations

import logging
import os
import sys
import time

LOG_FORMAT = "%(asctime)s  [%(levelname)-8s]  %(pump)-12s  %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
PUMP_THREAD_PREFIX = "pump-"


class PumpContextFilter(logging.Filter):
    """Adds ``record.pump``: ``<data source>/<cadence>`` for pump threads."""

    def filter(self, record: logging.LogRecord) -> bool:
        thread = record.threadName or ""
        if thread.startswith(PUMP_THREAD_PREFIX):
            source, _, cadence = thread[len(PUMP_THREAD_PREFIX):].rpartition("-")
            record.pump = f"{source}/{cadence}" if source else cadence
        else:
            record.pump = "main"
        return True


class UTCFormatter(logging.Formatter):
    converter = time.gmtime


def get_logger(name: str) -> logging.Logger:
    """Return a logger writing to stdout with the vault's format."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(PumpContextFilter())
    handler.setFormatter(UTCFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger
