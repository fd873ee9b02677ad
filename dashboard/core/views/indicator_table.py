"""Indicator table derived from the latest snapshot"""
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Union

from dashboard.core.domain.snapshot import RefreshSnapshot
from dashboard.core.markers.marker_pipeline import format_timeframe

INDICATOR_LABELS = {
    'RSI14': 'RSI (14)',
    'SMA20': 'SMA (20)',
    'EMA20': 'EMA (20)',
    'ADX14': 'ADX (14)',
    'ATR14': 'ATR (14)',
    'VOLUME_SMA20': 'Volume SMA',
    'CVD': 'CVD',
    'POC': 'POC',
    'VWAP': 'VWAP',
    'REGIME_ADX14_SMA50': 'Regime',
}

MISSING = '—'


@dataclass
class IndicatorRow:
    indicator: str
    label: str
    values: Dict[str, str] = field(default_factory=dict)  # timeframe label -> formatted value
    semantic: str = ''


def format_indicator_value(value: Union[float, str, None]) -> str:
    if value is None:
        return MISSING
    if isinstance(value, str):
        return value
    if abs(value) >= 1000:
        return f"{value:.0f}"
    if abs(value) >= 100:
        return f"{value:.1f}"
    return f"{value:.2f}"


def indicator_names(snapshot: RefreshSnapshot) -> List[str]:
    """Indicator names as reported on the first timeframe bundle"""
    market_data = snapshot.market_data
    if market_data is None or not market_data.data:
        return []

    first = next(iter(market_data.data.values()))
    if not first.bars:
        return []
    return list(first.bars[0].indicators.keys())


def semantic_text(snapshot: RefreshSnapshot, indicator: str, timeframes: Sequence[int]) -> str:
    """Qualitative descriptors of the finest selected timeframe, comma-joined"""
    state = snapshot.market_state
    if state is None or not timeframes:
        return ''

    tf_state = state.state.get(f"{min(timeframes)}min")
    if tf_state is None or indicator not in tf_state.indicators:
        return ''

    descriptors = tf_state.indicators[indicator].model_dump(exclude_none=True)
    return ', '.join(str(v) for v in descriptors.values() if v)


def build_indicator_table(snapshot: RefreshSnapshot, timeframes: Sequence[int]) -> List[IndicatorRow]:
    """
    One row per indicator with a value per selected timeframe.

    Args:
        snapshot: Latest refresh snapshot
        timeframes: Selected timeframes in minutes

    Returns:
        Indicator rows in service order
    """
    rows = []
    for name in indicator_names(snapshot):
        row = IndicatorRow(
            indicator=name,
            label=INDICATOR_LABELS.get(name, name),
            semantic=semantic_text(snapshot, name, timeframes),
        )
        for tf in timeframes:
            bar = snapshot.market_data.latest_bar(tf)
            value = bar.indicators.get(name) if bar is not None else None
            row.values[format_timeframe(tf)] = (
                format_indicator_value(value.value) if value is not None else MISSING
            )
        rows.append(row)
    return rows
