"""Timeframe selection state with persistence"""
import json
import logging
from typing import Any, Callable, List, Optional, Tuple

from dashboard.core.state.settings_store import SettingsStore
from dashboard.core.state.subscribers import Subscribers
from dashboard.utils.error_handler import ErrorHandler

logger = logging.getLogger(__name__)

STORAGE_KEY = "trading-dashboard-settings"

# Timeframes offered for analysis
AVAILABLE_TIMEFRAMES = (1, 3, 5, 10, 15, 30, 60, 120)

# Subset offered for the chart
CHART_TIMEFRAMES = (1, 3, 5, 10, 15, 30, 60)

DEFAULT_TIMEFRAMES = [1, 5, 30, 120]
DEFAULT_CHART_TIMEFRAME = 5


def _is_timeframe(value: Any, allowed: Tuple[int, ...]) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value in allowed


def parse_settings(raw: Optional[str]) -> Tuple[List[int], int]:
    """
    Parse a persisted settings record.

    Each field falls back to its default on its own when missing or invalid;
    the selection is never empty.

    Raises:
        ValueError: If raw is not valid JSON
    """
    if raw is None:
        return list(DEFAULT_TIMEFRAMES), DEFAULT_CHART_TIMEFRAME

    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        parsed = {}

    timeframes = parsed.get("timeframes")
    if (
        isinstance(timeframes, list)
        and timeframes
        and all(_is_timeframe(tf, AVAILABLE_TIMEFRAMES) for tf in timeframes)
    ):
        timeframes = sorted(set(timeframes))
    else:
        timeframes = list(DEFAULT_TIMEFRAMES)

    chart_timeframe = parsed.get("chartTimeframe")
    if not _is_timeframe(chart_timeframe, CHART_TIMEFRAMES):
        chart_timeframe = DEFAULT_CHART_TIMEFRAME

    return timeframes, chart_timeframe


def load_settings(
    store: SettingsStore,
    error_handler: Optional[ErrorHandler] = None
) -> Tuple[List[int], int]:
    """
    Load (timeframes, chart_timeframe) from the store.

    Unreadable or malformed data is replaced with the defaults.
    """
    try:
        return parse_settings(store.load(STORAGE_KEY))
    except (OSError, ValueError) as e:
        (error_handler or ErrorHandler()).handle_settings_error(e)
        return list(DEFAULT_TIMEFRAMES), DEFAULT_CHART_TIMEFRAME


class TimeframeSelection:
    """
    Timeframes selected for analysis plus the single chart timeframe.

    Invariants:
    - the selection is never empty
    - the selection is kept sorted ascending
    - the chart timeframe is independent of the selection

    Every mutation is saved under STORAGE_KEY and then announced to
    subscribers.
    """

    def __init__(self, store: SettingsStore, error_handler: Optional[ErrorHandler] = None):
        """
        Initialize selection from persisted settings.

        Args:
            store: Settings persistence
            error_handler: Error handler for unreadable settings
        """
        self.store = store
        self.error_handler = error_handler or ErrorHandler()
        timeframes, chart_timeframe = load_settings(store, self.error_handler)
        self._selected: Tuple[int, ...] = tuple(timeframes)
        self._chart_timeframe = chart_timeframe
        self._subscribers: Subscribers["TimeframeSelection"] = Subscribers("TimeframeSelection")

    @property
    def selected(self) -> Tuple[int, ...]:
        return self._selected

    @property
    def chart_timeframe(self) -> int:
        return self._chart_timeframe

    @property
    def finest_timeframe(self) -> int:
        return self._selected[0]

    def is_selected(self, timeframe: int) -> bool:
        return timeframe in self._selected

    def subscribe(self, listener: Callable[["TimeframeSelection"], None]) -> Callable[[], None]:
        """Register a listener called after every effective change"""
        return self._subscribers.subscribe(listener)

    def toggle(self, timeframe: int) -> bool:
        """
        Add or remove a timeframe from the selection.

        Removing the last selected timeframe is rejected.

        Args:
            timeframe: Timeframe in minutes

        Returns:
            True if the selection changed

        Raises:
            ValueError: If timeframe is not one of AVAILABLE_TIMEFRAMES
        """
        if not _is_timeframe(timeframe, AVAILABLE_TIMEFRAMES):
            raise ValueError(f"Unsupported timeframe: {timeframe}")

        if timeframe in self._selected:
            if len(self._selected) <= 1:
                logger.info(f"Refusing to deselect the last timeframe ({timeframe}m)")
                return False
            self._selected = tuple(tf for tf in self._selected if tf != timeframe)
        else:
            self._selected = tuple(sorted(self._selected + (timeframe,)))

        self._changed()
        return True

    def set_chart_timeframe(self, timeframe: int) -> bool:
        """
        Select the chart timeframe.

        Returns:
            True if the chart timeframe changed

        Raises:
            ValueError: If timeframe is not one of CHART_TIMEFRAMES
        """
        if not _is_timeframe(timeframe, CHART_TIMEFRAMES):
            raise ValueError(f"Unsupported chart timeframe: {timeframe}")

        if timeframe == self._chart_timeframe:
            return False

        self._chart_timeframe = timeframe
        self._changed()
        return True

    def to_dict(self) -> dict:
        """Persisted record shape"""
        return {
            'timeframes': list(self._selected),
            'chartTimeframe': self._chart_timeframe,
        }

    def _changed(self) -> None:
        self._save()
        self._subscribers.notify(self)

    def _save(self) -> None:
        try:
            self.store.save(STORAGE_KEY, json.dumps(self.to_dict()))
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")

    def close(self) -> None:
        """Drop all listeners"""
        self._subscribers.clear()
