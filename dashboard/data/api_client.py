"""aiohttp client for the analytics data service and the trading daemon"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiohttp
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from dashboard.config.timezone import TimezoneConverter
from dashboard.data.models import (
    ChartBar,
    MarketDataResponse,
    MarketStateResponse,
    TradeSetupsResponse,
)
from dashboard.utils.error_handler import DataServiceError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)

# Retries must fit well inside one refresh cadence
transient_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.25, min=0.25, max=1),
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    reraise=True
)


class DashboardApiClient:
    """
    Stateless request/response wrappers for every dashboard endpoint.

    One aiohttp session is shared by all requests; it is created on first use
    and released by close().
    """

    def __init__(
        self,
        api_base: str = "http://localhost:8000",
        trading_daemon_base: str = "http://localhost:8001",
        ticker: str = "@ES",
        timeout_seconds: float = 10.0,
        tz_converter: Optional[TimezoneConverter] = None
    ):
        """
        Initialize API client.

        Args:
            api_base: Base URL of the analytics service
            trading_daemon_base: Base URL of the trading daemon (trade setups)
            ticker: Instrument requested from every endpoint
            timeout_seconds: Total timeout per request
            tz_converter: Converter for chart bar times
        """
        self.api_base = api_base.rstrip("/")
        self.trading_daemon_base = trading_daemon_base.rstrip("/")
        self.ticker = ticker
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.tz_converter = tz_converter or TimezoneConverter()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "DashboardApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        """Close the shared HTTP session"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request_json(
        self,
        endpoint: str,
        method: str,
        url: str,
        **kwargs: Any
    ) -> Any:
        session = self._get_session()
        async with session.request(method, url, **kwargs) as response:
            if response.status >= 400:
                detail = await response.text()
                raise DataServiceError(endpoint, response.status, detail[:200] or None)
            return await response.json(content_type=None)

    @transient_retry
    async def fetch_market_data(self, timeframes: Sequence[int]) -> MarketDataResponse:
        """
        POST /analysis/market_data for the latest bar of each timeframe.

        Args:
            timeframes: Timeframes in minutes

        Returns:
            Parsed market data response
        """
        payload = {
            'ticker': self.ticker,
            'bars_back': 1,
            'timeframes': list(timeframes),
        }
        data = await self._request_json(
            "Market data", "POST", f"{self.api_base}/analysis/market_data", json=payload
        )
        return MarketDataResponse.model_validate(data)

    @transient_retry
    async def fetch_market_state(self, timeframes: Sequence[int]) -> MarketStateResponse:
        """
        POST /analysis/market_state for semantic state and pivots.

        Args:
            timeframes: Timeframes in minutes

        Returns:
            Parsed market state response
        """
        payload = {
            'ticker': self.ticker,
            'timeframes': list(timeframes),
        }
        data = await self._request_json(
            "Market state", "POST", f"{self.api_base}/analysis/market_state", json=payload
        )
        return MarketStateResponse.model_validate(data)

    @transient_retry
    async def fetch_bars(self, timeframe: int = 1, bars_back: int = 500) -> List[ChartBar]:
        """
        GET /bars/{ticker} and convert to chart format.

        Args:
            timeframe: Timeframe in minutes
            bars_back: Number of bars to request

        Returns:
            Bars with time in shifted epoch seconds
        """
        data = await self._request_json(
            "Bars",
            "GET",
            f"{self.api_base}/bars/{self.ticker}",
            params={'timeframe': timeframe, 'bars_back': bars_back}
        )

        return [
            ChartBar(
                time=self.tz_converter.to_chart_time(bar['bar_datetime']),
                open=bar['open'],
                high=bar['high'],
                low=bar['low'],
                close=bar['close'],
                volume=bar.get('volume'),
            )
            for bar in data
        ]

    async def fetch_trade_setups(self) -> Optional[TradeSetupsResponse]:
        """
        GET /api/trade_setups from the trading daemon.

        Absence is a normal state: any non-success answer, network failure or
        unparseable payload yields None.

        Returns:
            Trade setups snapshot or None
        """
        url = f"{self.trading_daemon_base}/api/trade_setups"
        try:
            session = self._get_session()
            async with session.get(url) as response:
                if response.status >= 400:
                    logger.debug(f"Trade setups unavailable: {response.status}")
                    return None
                data = await response.json(content_type=None)
            return TradeSetupsResponse.model_validate(data)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"Trade setups unavailable: {e}")
            return None
