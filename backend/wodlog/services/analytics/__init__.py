"""
Analytics module - movement frequency and volume statistics.
"""
from wodlog.services.analytics.calculator import (
    MovementAnalytics,
    MovementStat,
    MovementStatsCalculator,
    Period,
    compute_analytics,
)

__all__ = [
    "MovementAnalytics",
    "MovementStat",
    "MovementStatsCalculator",
    "Period",
    "compute_analytics",
]
