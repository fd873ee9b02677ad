"""Response models for the analytics data service"""
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ServiceModel(BaseModel):
    """Base for service payloads: unknown fields are ignored"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class IndicatorValue(ServiceModel):
    value: Union[float, str, None] = None


class PatternInfo(ServiceModel):
    name: str
    classification: str = "neutral"


class Bar(ServiceModel):
    """One OHLCV sample with indicators and patterns attached"""
    yyyymmdd: int
    hhmm: int
    is_final: bool = False
    open: float
    high: float
    low: float
    close: float
    volume: float = 0
    indicators: Dict[str, IndicatorValue] = Field(default_factory=dict)
    patterns: List[PatternInfo] = Field(default_factory=list)


class OpeningRange(ServiceModel):
    low: float
    high: float


class Session(ServiceModel):
    session: str
    hhmm: int
    yyyymmdd: int
    orb5: Optional[OpeningRange] = Field(None, alias="ORB5")
    orb15: Optional[OpeningRange] = Field(None, alias="ORB15")


class TimeframeBars(ServiceModel):
    bars: List[Bar] = Field(default_factory=list)


class MarketDataResponse(ServiceModel):
    """Per-timeframe bar bundles keyed "{tf}min" """
    ticker: str
    session: Optional[Session] = None
    data: Dict[str, TimeframeBars] = Field(default_factory=dict)

    def latest_bar(self, timeframe: int) -> Optional[Bar]:
        bundle = self.data.get(f"{timeframe}min")
        if bundle is None or not bundle.bars:
            return None
        return bundle.bars[0]


class IndicatorSemantic(ServiceModel):
    """Qualitative descriptors for one indicator"""
    level: Optional[str] = None
    momentum: Optional[str] = None
    price_position: Optional[str] = None
    proximity: Optional[str] = None
    slope: Optional[str] = None
    strength: Optional[str] = None
    volatility: Optional[str] = None
    trend: Optional[str] = None
    participation: Optional[str] = None
    bias: Optional[str] = None
    divergence: Optional[str] = None
    regime: Optional[str] = None


class TimeframeState(ServiceModel):
    is_final: bool = False
    indicators: Dict[str, IndicatorSemantic] = Field(default_factory=dict)
    patterns: List[PatternInfo] = Field(default_factory=list)


class PivotLevel(ServiceModel):
    id: str
    raw_id: str
    price: float
    confidence: float = 0.0


class ActiveZone(ServiceModel):
    floor_level: Optional[PivotLevel] = None
    ceiling_level: Optional[PivotLevel] = None
    zone_width: Optional[float] = None


class StructuralBias(ServiceModel):
    cpr_relationship: str
    bias_direction: str


class Pivots(ServiceModel):
    structural_bias: Optional[StructuralBias] = None
    active_zone: Optional[ActiveZone] = None
    primary_interaction: Optional[str] = None


class MarketStateResponse(ServiceModel):
    """Per-timeframe semantic state plus pivot structure"""
    ticker: str
    latest_price: Optional[float] = None
    session: Optional[Session] = None
    state: Dict[str, TimeframeState] = Field(default_factory=dict)
    pivots: Optional[Pivots] = None


class TradeSetup(ServiceModel):
    status: str
    entry_zone: str
    stop_loss: float
    target_1: float
    target_2: float
    trigger_condition: str


class KeyLevels(ServiceModel):
    support: List[float] = Field(default_factory=list)
    resistance: List[float] = Field(default_factory=list)


class TradeSetupsResponse(ServiceModel):
    """AI-generated trade setups snapshot"""
    last_updated: str
    bias: str
    confidence: float
    rationale: str
    bullish_setup: TradeSetup
    bearish_setup: TradeSetup
    key_levels: Optional[KeyLevels] = None


class ChartBar(ServiceModel):
    """OHLCV bar in chart format; time is shifted epoch seconds"""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None
