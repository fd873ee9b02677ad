"""
Main application entry point.

This module wires the dashboard state, starts the auto refresh and exposes
the derived views over HTTP.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from dashboard.config import DashboardConfig, TimezoneConverter, get_config
from dashboard.core.markers.marker_pipeline import MarkerPipeline
from dashboard.core.state.pattern_visibility import PatternVisibility
from dashboard.core.state.settings_store import JSONFileSettingsStore, SettingsStore
from dashboard.core.state.snapshot_store import SnapshotStore
from dashboard.core.state.timeframe_settings import (
    AVAILABLE_TIMEFRAMES,
    CHART_TIMEFRAMES,
    TimeframeSelection,
)
from dashboard.core.views.dashboard_views import DashboardViews
from dashboard.data.api_client import DashboardApiClient
from dashboard.data.market_data_provider import MarketDataProvider
from dashboard.services.refresh_coordinator import RefreshCoordinator
from dashboard.utils.error_handler import ErrorHandler
from dashboard.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Dashboard:
    """Every long-lived dashboard component, built once at startup"""
    config: DashboardConfig
    tz_converter: TimezoneConverter
    store: SnapshotStore
    selection: TimeframeSelection
    visibility: PatternVisibility
    provider: MarketDataProvider
    coordinator: RefreshCoordinator
    markers: MarkerPipeline
    views: DashboardViews

    async def close(self) -> None:
        """Tear down in reverse construction order"""
        await self.coordinator.stop()
        await self.coordinator.wait_idle()
        self.views.close()
        self.markers.close()
        self.visibility.close()
        self.selection.close()
        self.store.close()
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()


def build_dashboard(
    config: DashboardConfig,
    provider: Optional[MarketDataProvider] = None,
    settings_store: Optional[SettingsStore] = None
) -> Dashboard:
    """
    Construct the dashboard components.

    Args:
        config: Validated configuration
        provider: Data service client (default: aiohttp client from config)
        settings_store: Settings persistence (default: JSON file from config)
    """
    error_handler = ErrorHandler()
    tz_converter = TimezoneConverter(config.viewer_timezone)

    store = SnapshotStore()
    selection = TimeframeSelection(
        settings_store or JSONFileSettingsStore(config.settings_path),
        error_handler
    )
    visibility = PatternVisibility()

    if provider is None:
        provider = DashboardApiClient(
            api_base=config.api_base,
            trading_daemon_base=config.trading_daemon_base,
            ticker=config.ticker,
            timeout_seconds=config.request_timeout_seconds,
            tz_converter=tz_converter
        )

    coordinator = RefreshCoordinator(
        store,
        selection,
        provider,
        interval_seconds=config.refresh_interval_seconds,
        chart_bars_back=config.chart_bars_back,
        serialize_cycles=config.serialize_cycles,
        error_handler=error_handler
    )

    return Dashboard(
        config=config,
        tz_converter=tz_converter,
        store=store,
        selection=selection,
        visibility=visibility,
        provider=provider,
        coordinator=coordinator,
        markers=MarkerPipeline(store, selection, visibility, tz_converter),
        views=DashboardViews(store, selection),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    dashboard: Optional[Dashboard] = getattr(app.state, "dashboard", None)
    if dashboard is None:
        config = get_config()
        setup_logging(config.log_level, config.structured_logs)
        dashboard = build_dashboard(config)
        app.state.dashboard = dashboard

    logger.info("=" * 60)
    logger.info("Market Dashboard Starting...")
    logger.info(f"  - Data service: {dashboard.config.api_base}")
    logger.info(f"  - Trading daemon: {dashboard.config.trading_daemon_base}")
    logger.info(f"  - Timeframes: {list(dashboard.selection.selected)}")
    logger.info(f"  - Chart timeframe: {dashboard.selection.chart_timeframe}m")
    logger.info("=" * 60)

    await dashboard.coordinator.start()

    try:
        yield
    finally:
        logger.info("Market Dashboard Shutting Down...")
        await dashboard.close()


app = FastAPI(
    title="Market Dashboard",
    description="Multi-timeframe market data, patterns and trade setups, refreshed continuously",
    version="1.0.0",
    lifespan=lifespan
)


def _dashboard(request: Request) -> Dashboard:
    return request.app.state.dashboard


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Market Dashboard",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Unhealthy only while no cycle has ever completed and the last one failed.
    """
    dashboard = _dashboard(request)
    snapshot = dashboard.store.snapshot
    is_healthy = not (snapshot.last_update is None and snapshot.error)

    response = {
        "status": "healthy" if is_healthy else "unhealthy",
        "auto_refresh": dashboard.coordinator.running,
        "is_loading": snapshot.is_loading,
        "last_update": snapshot.last_update.isoformat() if snapshot.last_update else None,
        "last_update_local": (
            dashboard.tz_converter.format_local(snapshot.last_update)
            if snapshot.last_update else None
        ),
        "error": snapshot.error,
    }

    return JSONResponse(content=response, status_code=200 if is_healthy else 503)


@app.get("/snapshot")
async def get_snapshot(request: Request):
    return _dashboard(request).store.snapshot


@app.get("/markers")
async def get_markers(request: Request):
    dashboard = _dashboard(request)
    return {
        "chart_timeframe": dashboard.selection.chart_timeframe,
        "markers": list(dashboard.markers.markers),
    }


@app.get("/patterns")
async def get_patterns(request: Request):
    dashboard = _dashboard(request)
    return [
        {**vars(p), "key": p.key, "visible": dashboard.visibility.is_visible(p.key)}
        for p in dashboard.markers.patterns
    ]


@app.post("/patterns/{key}/toggle")
async def toggle_pattern(key: str, request: Request):
    visible = _dashboard(request).visibility.toggle(key)
    return {"key": key, "visible": visible}


@app.get("/indicators")
async def get_indicators(request: Request):
    return _dashboard(request).views.indicators


@app.get("/pivots")
async def get_pivots(request: Request):
    return _dashboard(request).views.pivots


@app.get("/trade-setups")
async def get_trade_setups(request: Request):
    return _dashboard(request).views.trade_setups


@app.get("/timeframes")
async def get_timeframes(request: Request):
    selection = _dashboard(request).selection
    return {
        "available": list(AVAILABLE_TIMEFRAMES),
        "chart_available": list(CHART_TIMEFRAMES),
        "selected": list(selection.selected),
        "chart_timeframe": selection.chart_timeframe,
    }


@app.post("/timeframes/{timeframe}/toggle")
async def toggle_timeframe(timeframe: int, request: Request):
    selection = _dashboard(request).selection
    try:
        changed = selection.toggle(timeframe)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"changed": changed, "selected": list(selection.selected)}


@app.put("/chart-timeframe/{timeframe}")
async def set_chart_timeframe(timeframe: int, request: Request):
    selection = _dashboard(request).selection
    try:
        changed = selection.set_chart_timeframe(timeframe)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"changed": changed, "chart_timeframe": selection.chart_timeframe}


@app.post("/refresh")
async def refresh(request: Request):
    """Run a cycle now and report the resulting state"""
    dashboard = _dashboard(request)
    completed = await dashboard.coordinator.refresh_data()
    snapshot = dashboard.store.snapshot
    return {"completed": completed, "error": snapshot.error}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dashboard.main:app",
        host="0.0.0.0",
        port=8080,
        log_level="info",
        access_log=True
    )
