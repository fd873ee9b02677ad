"""
Configuration management using Pydantic settings.
Loads configuration from environment variables.
"""
import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DashboardConfig(BaseSettings):
    """Dashboard client configuration"""
    api_base: str = Field("http://localhost:8000", alias="DASHBOARD__API_BASE")
    trading_daemon_base: str = Field("http://localhost:8001", alias="DASHBOARD__TRADING_DAEMON_BASE")
    ticker: str = Field("@ES", alias="DASHBOARD__TICKER")
    refresh_interval_seconds: float = Field(5.0, alias="DASHBOARD__REFRESH_INTERVAL_SECONDS")
    chart_bars_back: int = Field(500, alias="DASHBOARD__CHART_BARS_BACK")
    request_timeout_seconds: float = Field(10.0, alias="DASHBOARD__REQUEST_TIMEOUT_SECONDS")
    settings_path: str = Field("dashboard_settings.json", alias="DASHBOARD__SETTINGS_PATH")
    viewer_timezone: Optional[str] = Field(None, alias="DASHBOARD__VIEWER_TIMEZONE")
    serialize_cycles: bool = Field(False, alias="DASHBOARD__SERIALIZE_CYCLES")
    log_level: str = Field("INFO", alias="DASHBOARD__LOG_LEVEL")
    structured_logs: bool = Field(True, alias="DASHBOARD__STRUCTURED_LOGS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    def validate_all(self) -> None:
        """Validate all configuration values"""
        errors = []

        for name in ("api_base", "trading_daemon_base"):
            value = getattr(self, name)
            if not value.startswith(("http://", "https://")):
                errors.append(f"{name} must be an http(s) URL, got {value!r}")

        if not self.ticker:
            errors.append("DASHBOARD__TICKER is required")
        if self.refresh_interval_seconds <= 0:
            errors.append("DASHBOARD__REFRESH_INTERVAL_SECONDS must be positive")
        if self.chart_bars_back <= 0:
            errors.append("DASHBOARD__CHART_BARS_BACK must be positive")
        if self.request_timeout_seconds <= 0:
            errors.append("DASHBOARD__REQUEST_TIMEOUT_SECONDS must be positive")

        if self.viewer_timezone:
            try:
                ZoneInfo(self.viewer_timezone)
            except (ZoneInfoNotFoundError, ValueError):
                errors.append(f"Unknown viewer timezone: {self.viewer_timezone}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            errors.append(f"Unknown log level: {self.log_level}")

        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


# Global config instance
_config: DashboardConfig | None = None


def get_config() -> DashboardConfig:
    """Get or create global configuration instance"""
    global _config
    if _config is None:
        _config = DashboardConfig()
        _config.validate_all()
    return _config
