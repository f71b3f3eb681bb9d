"""
Service Layer - Achievement and Progress Analytics

Services sit between callers (bot handlers, admin tools) and the query layer:
- AchievementService: Catalog, awards, summaries, popularity, ranking
- StatisticsService: Progress leaderboard and step statistics
- UserStatisticsCalculator: Per-user performance profile
- ServiceContainer: Lazily wires the services together
"""

from quest_analytics.services.achievement_service import AchievementService
from quest_analytics.services.statistics_service import StatisticsService
from quest_analytics.services.user_statistics import UserStatisticsCalculator
from quest_analytics.services.container import (
    ServiceContainer,
    get_container,
    init_container,
)

__all__ = [
    "AchievementService",
    "StatisticsService",
    "UserStatisticsCalculator",
    "ServiceContainer",
    "get_container",
    "init_container",
]
