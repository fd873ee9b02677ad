"""Domain models"""
from dashboard.core.domain.pattern import ChartMarker, PatternOccurrence
from dashboard.core.domain.snapshot import RefreshSnapshot

__all__ = [
    "ChartMarker",
    "PatternOccurrence",
    "RefreshSnapshot",
]
