"""Entry point: prepare storage and report current achievement statistics"""
import logging
import asyncio
from prometheus_client import start_http_server

from quest_analytics.config import (
    validate_config,
    LOG_LEVEL,
    METRICS_ENABLED,
    METRICS_PORT,
    SEED_DEFAULT_ACHIEVEMENTS,
)
from quest_analytics.db.achievement_init import initialize_default_achievements
from quest_analytics.db.connection import db
from quest_analytics.db.queue import db_queue
from quest_analytics.db.schema import init_schema
from quest_analytics.exceptions import QuestAnalyticsError
from quest_analytics.observability.metrics import init_metrics
from quest_analytics.services.container import init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point"""
    try:
        logger.info("Validating configuration...")
        validate_config()

        if METRICS_ENABLED:
            start_http_server(METRICS_PORT)
            init_metrics()
            logger.info(f"Metrics exposed on port {METRICS_PORT}")

        logger.info("Initializing database connection pool...")
        await db.init_pool()
        db_queue.start()

        await init_schema(db_queue)
        if SEED_DEFAULT_ACHIEVEMENTS:
            await initialize_default_achievements(db_queue)

        container = init_container(db_queue)
        stats = await container.achievement_service.get_achievement_statistics()
        logger.info(
            f"Catalog: {stats.total_achievements} achievements, "
            f"{stats.total_user_achievements} awards held by {stats.total_users} users"
        )
        for popularity in stats.popular_achievements[:5]:
            logger.info(
                f"  {popularity.achievement.key}: {popularity.user_count} users "
                f"({popularity.percentage:.1f}%)"
            )

    except QuestAnalyticsError as e:
        logger.error(f"Startup failed: {e.message}")
        raise
    finally:
        await db_queue.stop()
        logger.info("Closing database connection...")
        await db.close_pool()
        logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
