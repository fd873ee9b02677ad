"""Market data provider protocol"""
from typing import List, Optional, Protocol, Sequence

from dashboard.data.models import (
    ChartBar,
    MarketDataResponse,
    MarketStateResponse,
    TradeSetupsResponse,
)


class MarketDataProvider(Protocol):
    """Protocol for the analytics data service"""

    async def fetch_market_data(self, timeframes: Sequence[int]) -> MarketDataResponse:
        """
        Fetch the latest bar with indicators and patterns per timeframe.

        Args:
            timeframes: Timeframes in minutes (e.g. [1, 5, 30, 120])

        Returns:
            Per-timeframe bar bundles
        """
        ...

    async def fetch_market_state(self, timeframes: Sequence[int]) -> MarketStateResponse:
        """
        Fetch semantic market state and pivots.

        Args:
            timeframes: Timeframes in minutes

        Returns:
            Per-timeframe semantic state
        """
        ...

    async def fetch_bars(self, timeframe: int, bars_back: int) -> List[ChartBar]:
        """
        Fetch raw OHLCV bars for the chart.

        Args:
            timeframe: Chart timeframe in minutes
            bars_back: Number of bars to request

        Returns:
            Bars in chart time, oldest first
        """
        ...

    async def fetch_trade_setups(self) -> Optional[TradeSetupsResponse]:
        """
        Fetch AI trade setups.

        Returns:
            Setups snapshot, or None when the daemon has nothing to serve
        """
        ...
