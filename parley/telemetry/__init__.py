"""Telemetry for Parley: log formatting and per-backend usage accounting."""

from parley.telemetry.logging import (
    JsonLogFormatter,
    ParleyLogFormatter,
    setup_logging,
)
from parley.telemetry.usage import UsageRecord, UsageTracker

__all__ = [
    "JsonLogFormatter",
    "ParleyLogFormatter",
    "setup_logging",
    "UsageRecord",
    "UsageTracker",
]
