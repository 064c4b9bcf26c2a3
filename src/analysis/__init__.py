"""
CountyFix - Analysis Module
Aggregates over completed reports.
"""

from src.analysis.leaderboard import (
    CountyLeaderboardEntry,
    aggregate_completed,
    compute_leaderboard,
)

__all__ = [
    "CountyLeaderboardEntry",
    "aggregate_completed",
    "compute_leaderboard",
]
