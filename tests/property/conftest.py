"""Shared fixtures: sample service payloads and an in-memory data provider"""
import asyncio
from typing import Dict, List, Optional, Set

import pytest

from dashboard.data.models import (
    ChartBar,
    MarketDataResponse,
    MarketStateResponse,
    TradeSetupsResponse,
)
from dashboard.utils.error_handler import DataServiceError


def make_bar(yyyymmdd=20240315, hhmm=930, patterns=(), indicators=None, close=5000.0) -> dict:
    return {
        'yyyymmdd': yyyymmdd,
        'hhmm': hhmm,
        'is_final': True,
        'open': close - 2,
        'high': close + 3,
        'low': close - 4,
        'close': close,
        'volume': 1200,
        'indicators': indicators if indicators is not None else {
            'RSI14': {'value': 55.123},
            'VWAP': {'value': 5012.5},
            'REGIME_ADX14_SMA50': {'value': 'trending'},
        },
        'patterns': [{'name': n, 'classification': c} for n, c in patterns],
    }


def make_market_data(bars_by_timeframe: Optional[Dict[int, List[dict]]] = None, close=5000.0) -> MarketDataResponse:
    if bars_by_timeframe is None:
        bars_by_timeframe = {
            1: [make_bar(hhmm=934, close=close)],
            5: [make_bar(hhmm=930, patterns=[('doji', 'neutral')], close=close)],
            30: [make_bar(hhmm=930, patterns=[('bullish_engulfing', 'bullish')], close=close)],
            120: [make_bar(hhmm=800, close=close)],
        }
    return MarketDataResponse.model_validate({
        'ticker': '@ES',
        'session': {'session': 'RTH', 'hhmm': 934, 'yyyymmdd': 20240315, 'ORB5': {'low': 4990, 'high': 5010}},
        'data': {f"{tf}min": {'bars': bars} for tf, bars in bars_by_timeframe.items()},
    })


def make_market_state(latest_price=5001.25) -> MarketStateResponse:
    return MarketStateResponse.model_validate({
        'ticker': '@ES',
        'latest_price': latest_price,
        'session': {'session': 'RTH', 'hhmm': 934, 'yyyymmdd': 20240315},
        'state': {
            '1min': {
                'is_final': False,
                'indicators': {'RSI14': {'momentum': 'rising', 'level': 'neutral'}},
                'patterns': [],
            },
        },
        'pivots': {
            'structural_bias': {'cpr_relationship': 'higher_value', 'bias_direction': 'bullish'},
            'active_zone': {
                'floor_level': {'id': 'pp_daily', 'raw_id': 'PP', 'price': 4995.5, 'confidence': 0.8},
                'ceiling_level': {'id': 'r1_daily', 'raw_id': 'r1', 'price': 5020.0, 'confidence': 0.6},
                'zone_width': 24.5,
            },
            'primary_interaction': None,
        },
    })


def make_trade_setups(bias='bullish') -> TradeSetupsResponse:
    setup = {
        'status': 'waiting',
        'entry_zone': '4995-5000',
        'stop_loss': 4985.0,
        'target_1': 5020.0,
        'target_2': 5035.0,
        'trigger_condition': 'reclaim of VWAP',
    }
    return TradeSetupsResponse.model_validate({
        'last_updated': '2024-03-15T13:35:00Z',
        'bias': bias,
        'confidence': 0.72,
        'rationale': 'Higher value CPR with price above VWAP',
        'bullish_setup': setup,
        'bearish_setup': {**setup, 'status': 'inactive'},
        'key_levels': {'support': [4995.5, 4980.0], 'resistance': [5020.0]},
    })


def make_chart_bars(count=3, start=1710509400) -> List[ChartBar]:
    return [
        ChartBar(time=start + i * 300, open=5000, high=5003, low=4998, close=5001, volume=100)
        for i in range(count)
    ]


class FakeProvider:
    """
    In-memory data service.

    Sources listed in `failures` raise DataServiceError; when `gate` is set,
    every fetch waits for it before answering.
    """

    def __init__(self):
        self.market_data = make_market_data()
        self.market_state = make_market_state()
        self.chart_bars = make_chart_bars()
        self.trade_setups: Optional[TradeSetupsResponse] = make_trade_setups()
        self.failures: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[tuple] = []

    async def _answer(self, source: str, value, *args):
        self.calls.append((source, *args))
        if self.gate is not None:
            await self.gate.wait()
        if source in self.failures:
            raise DataServiceError(source, 500)
        return value

    async def fetch_market_data(self, timeframes):
        return await self._answer("market_data", self.market_data, list(timeframes))

    async def fetch_market_state(self, timeframes):
        return await self._answer("market_state", self.market_state, list(timeframes))

    async def fetch_bars(self, timeframe, bars_back):
        return await self._answer("chart_bars", self.chart_bars, timeframe, bars_back)

    async def fetch_trade_setups(self):
        return await self._answer("trade_setups", self.trade_setups)

    def cycles(self) -> int:
        return sum(1 for call in self.calls if call[0] == "market_data")


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
