"""
Database queries - re-exported so services can `from quest_analytics.db import queries`.

Module organization:
- achievements.py: Achievement catalog, awards, award aggregates
- users.py: Quest participants
- answers.py: Answer submission times, per-step counts, per-step analytics
- progress.py: Step progress, leaderboard metric
- steps.py: Step catalog, asterisk step stats
"""

# Achievement operations
from quest_analytics.db.queries.achievements import (
    create_achievement,
    update_achievement,
    get_achievement_by_id,
    get_achievement_by_key,
    get_all_achievements,
    get_active_achievements,
    get_achievements_by_category,
    assign_achievement,
    get_user_achievements,
    get_user_achievements_by_category,
    count_user_achievements,
    has_user_achievement,
    get_achievement_holders,
    get_achievement_user_counts,
    count_users_with_achievements,
    get_user_achievement_counts,
)

# User operations
from quest_analytics.db.queries.users import (
    get_users_by_ids,
)

# Answer operations
from quest_analytics.db.queries.answers import (
    get_user_answer_times,
    count_user_answers,
    count_user_answers_by_step,
    get_hint_stats,
    get_speedruns,
    get_stubborn_records,
    get_dropoff_points,
)

# Progress operations
from quest_analytics.db.queries.progress import (
    get_user_progress,
    count_progress_by_step,
    count_answered_steps,
    get_leaderboard_entries,
    get_user_max_step,
    count_approved_asterisk_steps,
)

# Step operations
from quest_analytics.db.queries.steps import (
    get_active_steps,
    count_active_steps,
    get_step_orders,
    count_asterisk_steps,
    get_asterisk_step_stats,
)

__all__ = [
    # Achievements
    "create_achievement",
    "update_achievement",
    "get_achievement_by_id",
    "get_achievement_by_key",
    "get_all_achievements",
    "get_active_achievements",
    "get_achievements_by_category",
    "assign_achievement",
    "get_user_achievements",
    "get_user_achievements_by_category",
    "count_user_achievements",
    "has_user_achievement",
    "get_achievement_holders",
    "get_achievement_user_counts",
    "count_users_with_achievements",
    "get_user_achievement_counts",
    # Users
    "get_users_by_ids",
    # Answers
    "get_user_answer_times",
    "count_user_answers",
    "count_user_answers_by_step",
    "get_hint_stats",
    "get_speedruns",
    "get_stubborn_records",
    "get_dropoff_points",
    # Progress
    "get_user_progress",
    "count_progress_by_step",
    "count_answered_steps",
    "get_leaderboard_entries",
    "get_user_max_step",
    "count_approved_asterisk_steps",
    # Steps
    "get_active_steps",
    "count_active_steps",
    "get_step_orders",
    "count_asterisk_steps",
    "get_asterisk_step_stats",
]
