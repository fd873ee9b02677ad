"""Centralized error handling"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class DataServiceError(Exception):
    """Raised when a data service endpoint answers with a non-success status"""

    def __init__(self, endpoint: str, status: int, detail: Optional[str] = None):
        self.endpoint = endpoint
        self.status = status
        self.detail = detail
        message = f"{endpoint} fetch failed: {status}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ErrorHandler:
    """
    Centralized error handling for the dashboard.

    Handles different types of errors:
    - Source errors (one data source failed, stale value kept)
    - Cycle errors (refresh orchestration failed, surfaced to the user)
    - Settings errors (persisted settings unreadable, defaults used)

    None of them are fatal.
    """

    def handle_source_error(self, source: str, error: BaseException) -> None:
        """
        Handle a single data source failure.

        Args:
            source: Name of the failed source
            error: The exception
        """
        logger.warning(
            f"SOURCE ERROR for {source}: {error}",
            extra={'component': 'RefreshCoordinator', 'source': source}
        )

    def handle_cycle_error(self, component: str, error: BaseException) -> str:
        """
        Handle a refresh cycle that failed outside the isolated fetches.

        Args:
            component: Component where error occurred
            error: The exception

        Returns:
            Human-readable message to publish
        """
        logger.error(
            f"RUNTIME ERROR in {component}: {error}",
            extra={'component': component},
            exc_info=(type(error), error, error.__traceback__)
        )
        return str(error) or "Unknown error"

    def handle_settings_error(self, error: BaseException) -> None:
        """
        Handle unreadable persisted settings.

        Args:
            error: The exception
        """
        logger.warning(
            f"Failed to load settings, using defaults: {error}",
            extra={'component': 'TimeframeSelection'}
        )
