"""
Quest Analytics

Achievement catalog and analytics for the quest bot:
- Achievement catalog and idempotent awards
- Per-user achievement summaries and global popularity
- Achievement and progress leaderboards
- Per-user performance statistics (timing, accuracy, retries)

Every statistic is recomputed from stored rows on each call.
"""

__version__ = "0.1.0"
