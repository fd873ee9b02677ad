"""
Chart marker derivation.

Markers are recomputed from scratch from three independent inputs: the
patterns in the latest snapshot, the set of visible pattern keys and the
chart timeframe. Patterns detected on other timeframes are never drawn,
even when their key is toggled visible.
"""
import logging
from datetime import timedelta
from typing import AbstractSet, Callable, Iterable, List, Optional, Sequence, Tuple

from dashboard.config.timezone import TimezoneConverter, pattern_to_timestamp, viewer_utc_offset
from dashboard.core.domain.pattern import ChartMarker, PatternOccurrence
from dashboard.core.domain.snapshot import RefreshSnapshot
from dashboard.core.state.pattern_visibility import PatternVisibility
from dashboard.core.state.snapshot_store import SnapshotStore
from dashboard.core.state.subscribers import Subscribers
from dashboard.core.state.timeframe_settings import TimeframeSelection
from dashboard.data.models import MarketDataResponse

logger = logging.getLogger(__name__)

BULLISH_COLOR = '#26a69a'
BEARISH_COLOR = '#ef5350'


def format_pattern_name(name: str) -> str:
    """bullish_engulfing -> Bullish Engulfing"""
    return ' '.join(word[:1].upper() + word[1:] for word in name.split('_'))


def format_timeframe(timeframe: int, upper: bool = False) -> str:
    """5 -> "5m", 120 -> "2h" ("2H" when upper)"""
    if timeframe >= 60:
        return f"{timeframe / 60:g}{'H' if upper else 'h'}"
    return f"{timeframe}m"


def collect_patterns(
    market_data: Optional[MarketDataResponse],
    timeframes: Iterable[int]
) -> List[PatternOccurrence]:
    """
    Flatten the patterns of every bar of the selected timeframes.

    Args:
        market_data: Latest market data (None before the first fetch)
        timeframes: Selected timeframes in minutes

    Returns:
        Pattern occurrences in timeframe order, then bar order
    """
    if market_data is None:
        return []

    result = []
    for tf in timeframes:
        bundle = market_data.data.get(f"{tf}min")
        if bundle is None:
            continue
        label = format_timeframe(tf)
        for bar in bundle.bars:
            for p in bar.patterns:
                result.append(PatternOccurrence(
                    name=p.name,
                    classification=p.classification,
                    timeframe=label,
                    timeframe_minutes=tf,
                    yyyymmdd=bar.yyyymmdd,
                    hhmm=bar.hhmm,
                ))
    return result


def pattern_marker(pattern: PatternOccurrence, local_offset: timedelta) -> ChartMarker:
    bullish = pattern.is_bullish
    return ChartMarker(
        time=pattern_to_timestamp(pattern.yyyymmdd, pattern.hhmm, local_offset),
        position='belowBar' if bullish else 'aboveBar',
        color=BULLISH_COLOR if bullish else BEARISH_COLOR,
        shape='arrowUp' if bullish else 'arrowDown',
        text=format_pattern_name(pattern.name),
    )


def derive_markers(
    patterns: Sequence[PatternOccurrence],
    visible: AbstractSet[str],
    chart_timeframe: int,
    local_offset: Optional[timedelta] = None
) -> List[ChartMarker]:
    """
    Build the chart markers for the visible patterns of the chart timeframe.

    Args:
        patterns: All pattern occurrences of the fetched timeframes
        visible: Visible pattern keys
        chart_timeframe: Active chart timeframe in minutes
        local_offset: Viewer UTC offset (None to observe it once, now)

    Returns:
        Markers sorted ascending by time, ties in input order. Occurrences
        whose date or time is not on the calendar are left out.
    """
    if not visible or not patterns:
        return []

    if local_offset is None:
        local_offset = viewer_utc_offset()

    markers = []
    for p in patterns:
        if p.key not in visible or p.timeframe_minutes != chart_timeframe:
            continue
        try:
            markers.append(pattern_marker(p, local_offset))
        except ValueError as e:
            logger.warning(f"Skipping {p.key} at {p.yyyymmdd} {p.hhmm:04d}: {e}")

    # The chart rejects unsorted markers; sorted() is stable
    return sorted(markers, key=lambda m: m.time)


class MarkerPipeline:
    """
    Keeps patterns and markers in sync with their inputs.

    Registers against the snapshot store, the pattern visibility and the
    timeframe selection and recomputes on each notification.
    """

    def __init__(
        self,
        store: SnapshotStore,
        selection: TimeframeSelection,
        visibility: PatternVisibility,
        tz_converter: Optional[TimezoneConverter] = None
    ):
        """
        Initialize pipeline and compute the initial markers.

        Args:
            store: Snapshot store
            selection: Timeframe selection
            visibility: Visible pattern keys
            tz_converter: Viewer timezone for marker times
        """
        self.store = store
        self.selection = selection
        self.visibility = visibility
        self.tz_converter = tz_converter or TimezoneConverter()

        self._patterns: Tuple[PatternOccurrence, ...] = ()
        self._markers: Tuple[ChartMarker, ...] = ()
        self._market_data = store.snapshot.market_data
        self._subscribers: Subscribers[Tuple[ChartMarker, ...]] = Subscribers("MarkerPipeline")

        self._unsubscribes = [
            store.subscribe(self._on_snapshot),
            selection.subscribe(lambda _selection: self.recompute()),
            visibility.subscribe(lambda _keys: self.recompute()),
        ]
        self.recompute()

    @property
    def patterns(self) -> Tuple[PatternOccurrence, ...]:
        return self._patterns

    @property
    def markers(self) -> Tuple[ChartMarker, ...]:
        return self._markers

    def subscribe(self, listener: Callable[[Tuple[ChartMarker, ...]], None]) -> Callable[[], None]:
        """Register a listener called when the markers change"""
        return self._subscribers.subscribe(listener)

    def _on_snapshot(self, snapshot: RefreshSnapshot) -> None:
        # Loading and error flips leave the patterns untouched
        if snapshot.market_data is self._market_data:
            return
        self._market_data = snapshot.market_data
        self.recompute()

    def recompute(self) -> None:
        patterns = tuple(collect_patterns(
            self.store.snapshot.market_data,
            self.selection.selected,
        ))
        markers = tuple(derive_markers(
            patterns,
            self.visibility.keys,
            self.selection.chart_timeframe,
            self.tz_converter.local_offset(),
        ))

        self._patterns = patterns
        if markers != self._markers:
            self._markers = markers
            logger.debug(f"Markers updated: {len(markers)} on {self.selection.chart_timeframe}m chart")
            self._subscribers.notify(markers)

    def close(self) -> None:
        """Unregister from all inputs and drop listeners"""
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []
        self._subscribers.clear()
