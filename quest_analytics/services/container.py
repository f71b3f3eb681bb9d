"""
Service Container - Dependency Injection Container

Simple DI container for the analytics services.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The storage queue is injected so its lifecycle is owned by the caller;
    every service runs its queries on it.
    """

    # Infrastructure dependencies (injected)
    queue: object  # DBQueue instance

    # Services (lazy-loaded via properties)
    _achievement_service: Optional[object] = field(default=None, init=False, repr=False)
    _statistics_service: Optional[object] = field(default=None, init=False, repr=False)
    _user_statistics_calculator: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def achievement_service(self):
        """Get AchievementService instance (lazy-loaded)"""
        if self._achievement_service is None:
            from quest_analytics.services.achievement_service import AchievementService
            self._achievement_service = AchievementService(self.queue)
            logger.debug("AchievementService instantiated")
        return self._achievement_service

    @property
    def statistics_service(self):
        """Get StatisticsService instance (lazy-loaded)"""
        if self._statistics_service is None:
            from quest_analytics.services.statistics_service import StatisticsService
            self._statistics_service = StatisticsService(self.queue, self.achievement_service)
            logger.debug("StatisticsService instantiated")
        return self._statistics_service

    @property
    def user_statistics_calculator(self):
        """Get UserStatisticsCalculator instance (lazy-loaded)"""
        if self._user_statistics_calculator is None:
            from quest_analytics.services.user_statistics import UserStatisticsCalculator
            self._user_statistics_calculator = UserStatisticsCalculator(self.statistics_service, self.queue)
            logger.debug("UserStatisticsCalculator instantiated")
        return self._user_statistics_calculator


# Global container instance (initialized in main.py)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def init_container(queue: object) -> ServiceContainer:
    """
    Initialize the global service container.

    Should be called once at startup after the storage queue exists.

    Args:
        queue: DBQueue instance

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(queue=queue)

    logger.info("Service container initialized")
    return _container
