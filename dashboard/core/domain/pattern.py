"""Pattern occurrence and chart marker dataclasses"""
from dataclasses import dataclass


@dataclass(frozen=True)
class PatternOccurrence:
    """
    A candlestick pattern detected on one bar.

    Attributes:
        name: Machine name (e.g., "bullish_engulfing")
        classification: "bullish", "bearish" or "neutral"
        timeframe: Display label of the timeframe (e.g., "5m", "1h")
        timeframe_minutes: Timeframe in minutes
        yyyymmdd: Exchange-local date of the bar
        hhmm: Exchange-local time of the bar
    """
    name: str
    classification: str
    timeframe: str
    timeframe_minutes: int
    yyyymmdd: int
    hhmm: int

    @property
    def key(self) -> str:
        """Visibility key, stable across refresh cycles"""
        return f"{self.name}-{self.timeframe}"

    @property
    def is_bullish(self) -> bool:
        return self.classification.lower() == "bullish"


@dataclass(frozen=True)
class ChartMarker:
    """
    Annotation drawn on the chart.

    Attributes:
        time: Chart time in shifted epoch seconds
        position: "belowBar" or "aboveBar"
        color: Hex color
        shape: "arrowUp" or "arrowDown"
        text: Human-readable pattern name
    """
    time: int
    position: str
    color: str
    shape: str
    text: str
