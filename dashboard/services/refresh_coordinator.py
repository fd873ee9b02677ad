"""Periodic refresh of all dashboard data sources"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Set

from dashboard.core.state.snapshot_store import SnapshotStore
from dashboard.core.state.timeframe_settings import TimeframeSelection
from dashboard.data.market_data_provider import MarketDataProvider
from dashboard.utils.error_handler import ErrorHandler

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_SECONDS = 5.0

# Snapshot field written by each source, in fetch order
SOURCES = ("market_data", "market_state", "chart_bars", "trade_setups")


class RefreshCoordinator:
    """
    Fetches the four dashboard sources on a fixed cadence.

    Responsibilities:
    - Run one cycle immediately on start, then every interval_seconds
    - Fetch market data, market state, chart bars and trade setups concurrently
    - Keep the previous value of any source that fails
    - Publish each cycle's results to the snapshot store in one update
    - Re-fetch immediately when the timeframe selection changes

    Overlapping cycles (periodic tick plus a selection change) are allowed by
    default and resolve last-write-wins per field. With serialize_cycles a
    cycle requested while another is in flight is skipped instead.
    """

    def __init__(
        self,
        store: SnapshotStore,
        selection: TimeframeSelection,
        provider: MarketDataProvider,
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
        chart_bars_back: int = 500,
        serialize_cycles: bool = False,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize refresh coordinator.

        Args:
            store: Snapshot store (this coordinator is its only writer)
            selection: Timeframe selection read at the start of each cycle
            provider: Data service client
            interval_seconds: Periodic cadence
            chart_bars_back: Number of chart bars requested per cycle
            serialize_cycles: Skip cycles requested while one is in flight
            error_handler: Error handler
        """
        self.store = store
        self.selection = selection
        self.provider = provider
        self.interval_seconds = interval_seconds
        self.chart_bars_back = chart_bars_back
        self.serialize_cycles = serialize_cycles
        self.error_handler = error_handler or ErrorHandler()

        self._running = False
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._in_flight = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> int:
        """Number of cycles currently awaiting their sources"""
        return self._in_flight

    async def refresh_data(self) -> bool:
        """
        Run one refresh cycle.

        Returns:
            True if the cycle completed (individual sources may still have
            failed), False if it was skipped or failed as a whole
        """
        timeframes = list(self.selection.selected)
        if not timeframes:
            return False

        if self.serialize_cycles and self._in_flight:
            logger.debug("Refresh cycle already in flight, skipping")
            return False

        self._in_flight += 1
        self.store.update(is_loading=True, error=None)

        fields: Dict[str, Any] = {}
        try:
            chart_timeframe = self.selection.chart_timeframe

            results = await asyncio.gather(
                self.provider.fetch_market_data(timeframes),
                self.provider.fetch_market_state(timeframes),
                self.provider.fetch_bars(chart_timeframe, self.chart_bars_back),
                self.provider.fetch_trade_setups(),
                return_exceptions=True
            )

            fields.update(self._collect_results(results, timeframes))
            fields['last_update'] = datetime.now(timezone.utc)
            return True

        except Exception as e:
            fields['error'] = self.error_handler.handle_cycle_error("RefreshCoordinator", e)
            return False

        finally:
            self._in_flight -= 1
            self.store.update(is_loading=self._in_flight > 0, **fields)

    def _collect_results(self, results: Sequence[Any], timeframes: Sequence[int]) -> Dict[str, Any]:
        """Map fulfilled results to snapshot fields; failed sources are left out"""
        fields = {}
        failed = []

        for source, result in zip(SOURCES, results):
            if isinstance(result, BaseException):
                failed.append(source)
                self.error_handler.handle_source_error(source, result)
                continue

            fields[source] = tuple(result) if source == "chart_bars" else result

        if failed:
            logger.info(
                f"Refresh cycle completed with {len(failed)} failed source(s): {', '.join(failed)}",
                extra={'component': 'RefreshCoordinator', 'timeframes': list(timeframes)}
            )
        else:
            logger.debug(
                "Refresh cycle completed",
                extra={'component': 'RefreshCoordinator', 'timeframes': list(timeframes)}
            )
        return fields

    def request_refresh(self, reason: str = "manual") -> asyncio.Task:
        """
        Schedule an out-of-band cycle on the running event loop.

        Returns:
            The task running the cycle
        """
        logger.debug(f"Scheduling refresh cycle ({reason})")
        task = asyncio.create_task(self.refresh_data(), name=f"refresh-{reason}")
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        return task

    def _on_selection_changed(self, selection: TimeframeSelection) -> None:
        self.request_refresh("selection")

    async def _run_periodic(self) -> None:
        """Periodic timer: schedules a cycle every interval"""
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                self.request_refresh("periodic")
        except asyncio.CancelledError:
            logger.info("Periodic refresh stopped")
            raise

    async def start(self) -> None:
        """
        Run one cycle, then arm the periodic timer.

        Calling start while already running does nothing. If the first
        cycle is cancelled, the coordinator is left stopped.
        """
        if self._running:
            return

        self._running = True
        self._unsubscribe = self.selection.subscribe(self._on_selection_changed)
        logger.info(f"Auto refresh started: every {self.interval_seconds}s")

        try:
            await self.refresh_data()
        except BaseException:
            self._running = False
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            logger.warning("Auto refresh start interrupted during the first cycle")
            raise

        # stop() may have been called during the first cycle
        if self._running and self._timer_task is None:
            self._timer_task = asyncio.create_task(self._run_periodic(), name="refresh-timer")

    async def stop(self) -> None:
        """
        Disarm the periodic timer.

        Cycles already in flight are left to finish. Calling stop before
        start, or twice, does nothing.
        """
        if not self._running:
            return

        self._running = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        task, self._timer_task = self._timer_task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        logger.info("Auto refresh stopped")

    async def wait_idle(self) -> None:
        """Wait for every scheduled cycle to finish"""
        while True:
            pending = [task for task in self._cycle_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> "RefreshCoordinator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
