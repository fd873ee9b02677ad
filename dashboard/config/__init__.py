"""Configuration module"""
from dashboard.config.settings import DashboardConfig, get_config
from dashboard.config.timezone import (
    EXCHANGE_TIMEZONE,
    TimezoneConverter,
    exchange_offset,
    pattern_to_timestamp,
    to_chart_time,
    viewer_utc_offset,
)

__all__ = [
    "DashboardConfig",
    "get_config",
    "EXCHANGE_TIMEZONE",
    "TimezoneConverter",
    "exchange_offset",
    "pattern_to_timestamp",
    "to_chart_time",
    "viewer_utc_offset",
]
