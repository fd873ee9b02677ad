"""Refresh snapshot dataclass"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from dashboard.data.models import (
    ChartBar,
    MarketDataResponse,
    MarketStateResponse,
    TradeSetupsResponse,
)


@dataclass(frozen=True)
class RefreshSnapshot:
    """
    Aggregate published state of the refresh cycles.

    Only the refresh coordinator produces new snapshots; everything else
    reads them.

    Attributes:
        market_data: Bars, indicators and patterns per selected timeframe
        market_state: Semantic state and pivots per selected timeframe
        chart_bars: OHLCV bars for the chart timeframe
        trade_setups: AI trade setups (None when unavailable)
        last_update: UTC time of the last completed cycle
        is_loading: True while a cycle is in flight
        error: Message of the last orchestration failure
    """
    market_data: Optional[MarketDataResponse] = None
    market_state: Optional[MarketStateResponse] = None
    chart_bars: Tuple[ChartBar, ...] = field(default_factory=tuple)
    trade_setups: Optional[TradeSetupsResponse] = None
    last_update: Optional[datetime] = None
    is_loading: bool = False
    error: Optional[str] = None
