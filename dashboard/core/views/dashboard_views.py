"""Derived tables kept in sync with the snapshot store"""
from typing import List, Optional

from dashboard.core.domain.snapshot import RefreshSnapshot
from dashboard.core.state.snapshot_store import SnapshotStore
from dashboard.core.state.timeframe_settings import TimeframeSelection
from dashboard.core.views.indicator_table import IndicatorRow, build_indicator_table
from dashboard.core.views.pivot_summary import (
    PivotSummary,
    TradeSetupSummary,
    build_pivot_summary,
    build_trade_setup_summary,
)


def _sources(snapshot: RefreshSnapshot) -> tuple:
    return snapshot.market_data, snapshot.market_state, snapshot.trade_setups


class DashboardViews:
    """Indicator table, pivot summary and trade setups, rebuilt when their inputs change"""

    def __init__(self, store: SnapshotStore, selection: TimeframeSelection):
        self.store = store
        self.selection = selection
        self.indicators: List[IndicatorRow] = []
        self.pivots: Optional[PivotSummary] = None
        self.trade_setups: Optional[TradeSetupSummary] = None
        self._sources = _sources(store.snapshot)

        self._unsubscribes = [
            store.subscribe(self._on_snapshot),
            selection.subscribe(lambda _selection: self.recompute()),
        ]
        self.recompute()

    def _on_snapshot(self, snapshot: RefreshSnapshot) -> None:
        sources = _sources(snapshot)
        if all(new is old for new, old in zip(sources, self._sources)):
            return
        self._sources = sources
        self.recompute()

    def recompute(self) -> None:
        snapshot = self.store.snapshot
        self.indicators = build_indicator_table(snapshot, self.selection.selected)
        self.pivots = build_pivot_summary(snapshot)
        self.trade_setups = build_trade_setup_summary(snapshot)

    def close(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []
