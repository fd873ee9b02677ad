"""Pivot and trade setup summaries derived from the latest snapshot"""
from dataclasses import dataclass
from typing import List, Optional

from dashboard.core.domain.snapshot import RefreshSnapshot
from dashboard.data.models import PivotLevel, TradeSetup

LEVEL_LABELS = {
    'pp': 'Pivot Point (PP)',
    'tc': 'Top Central (TC)',
    'bc': 'Bottom Central (BC)',
    'r1': 'Resistance 1 (R1)',
    'r2': 'Resistance 2 (R2)',
    'r3': 'Resistance 3 (R3)',
    'r4': 'Resistance 4 (R4)',
    's1': 'Support 1 (S1)',
    's2': 'Support 2 (S2)',
    's3': 'Support 3 (S3)',
    's4': 'Support 4 (S4)',
    'h3': 'Camarilla H3',
    'h4': 'Camarilla H4',
    'l3': 'Camarilla L3',
    'l4': 'Camarilla L4',
}


def level_label(raw_id: str) -> str:
    return LEVEL_LABELS.get(raw_id.lower(), raw_id)


@dataclass
class ZoneLevel:
    label: str
    price: float
    confidence: float

    @classmethod
    def from_level(cls, level: Optional[PivotLevel]) -> Optional["ZoneLevel"]:
        if level is None:
            return None
        return cls(label=level_label(level.raw_id), price=level.price, confidence=level.confidence)


@dataclass
class PivotSummary:
    bias_direction: Optional[str]
    cpr_relationship: Optional[str]
    floor: Optional[ZoneLevel]
    ceiling: Optional[ZoneLevel]
    zone_width: Optional[float]
    latest_price: Optional[float]


@dataclass
class TradeSetupSummary:
    last_updated: str
    bias: str
    confidence: float
    rationale: str
    bullish_setup: TradeSetup
    bearish_setup: TradeSetup
    support: str
    resistance: str


def build_pivot_summary(snapshot: RefreshSnapshot) -> Optional[PivotSummary]:
    """Pivot structure of the latest market state, None when not reported"""
    state = snapshot.market_state
    if state is None or state.pivots is None:
        return None

    pivots = state.pivots
    bias = pivots.structural_bias
    zone = pivots.active_zone
    return PivotSummary(
        bias_direction=bias.bias_direction if bias else None,
        cpr_relationship=bias.cpr_relationship.replace('_', ' ') if bias else None,
        floor=ZoneLevel.from_level(zone.floor_level) if zone else None,
        ceiling=ZoneLevel.from_level(zone.ceiling_level) if zone else None,
        zone_width=zone.zone_width if zone else None,
        latest_price=state.latest_price,
    )


def _format_levels(levels: List[float]) -> str:
    return ' | '.join(f"{level:.2f}" for level in levels)


def build_trade_setup_summary(snapshot: RefreshSnapshot) -> Optional[TradeSetupSummary]:
    """Trade setups for display; None while the daemon has nothing to serve"""
    setups = snapshot.trade_setups
    if setups is None:
        return None

    key_levels = setups.key_levels
    return TradeSetupSummary(
        last_updated=setups.last_updated,
        bias=setups.bias,
        confidence=setups.confidence,
        rationale=setups.rationale,
        bullish_setup=setups.bullish_setup,
        bearish_setup=setups.bearish_setup,
        support=_format_levels(key_levels.support) if key_levels else '',
        resistance=_format_levels(key_levels.resistance) if key_levels else '',
    )
