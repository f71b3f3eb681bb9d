"""
Default achievement catalog

Seeds the built-in achievements on startup. Existing keys are left untouched,
so admin edits to a seeded achievement survive restarts.
"""

import logging
from typing import Optional

from quest_analytics.db import queries
from quest_analytics.db.queue import DBQueue
from quest_analytics.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementConditions,
    AchievementType,
)

logger = logging.getLogger(__name__)

_PLACE_NAMES = [
    ("pioneer", "Pioneer", "First participant of the quest"),
    ("second_place", "Second", "Second participant of the quest"),
    ("third_place", "Third", "Third participant of the quest"),
    ("fourth_place", "Fourth", "Fourth participant of the quest"),
    ("fifth_place", "Fifth", "Fifth participant of the quest"),
    ("sixth_place", "Sixth", "Sixth participant of the quest"),
    ("seventh_place", "Seventh", "Seventh participant of the quest"),
    ("eighth_place", "Eighth", "Eighth participant of the quest"),
    ("ninth_place", "Ninth", "Ninth participant of the quest"),
    ("tenth_place", "Tenth", "Tenth participant of the quest"),
]

_PROGRESS_MILESTONES = [
    ("beginner_5", "Beginner", 5),
    ("experienced_10", "Experienced", 10),
    ("advanced_15", "Advanced", 15),
    ("expert_20", "Expert", 20),
    ("master_25", "Master", 25),
]

_HINT_MILESTONES = [
    ("hint_5", "Curious Mind", 5),
    ("hint_10", "Hint Seeker", 10),
    ("hint_15", "Hint Collector", 15),
    ("hint_25", "Hint Hoarder", 25),
    ("hint_30", "Hint Addict", 30),
]

_LEGEND_REQUIREMENTS = (
    [key for key, _, _ in _PLACE_NAMES]
    + [key for key, _, _ in _PROGRESS_MILESTONES]
    + ["winner", "perfect_path", "self_sufficient", "lightning", "rocket", "cheater"]
)


def get_default_achievements() -> list[Achievement]:
    """Built-in catalog in seeding order"""
    achievements = []

    for position, (key, name, description) in enumerate(_PLACE_NAMES, start=1):
        achievements.append(Achievement(
            key=key,
            name=name,
            description=description,
            category=AchievementCategory.UNIQUE,
            type=AchievementType.UNIQUE,
            is_unique=True,
            conditions=AchievementConditions(position=position),
        ))

    for key, name, correct in _PROGRESS_MILESTONES:
        achievements.append(Achievement(
            key=key,
            name=name,
            description=f"Give {correct} correct answers",
            category=AchievementCategory.PROGRESS,
            type=AchievementType.PROGRESS_BASED,
            conditions=AchievementConditions(correct_answers=correct),
        ))

    achievements.extend([
        Achievement(
            key="winner",
            name="Winner",
            description="Complete the whole quest",
            category=AchievementCategory.COMPLETION,
            type=AchievementType.ACTION_BASED,
        ),
        Achievement(
            key="perfect_path",
            name="Perfect Path",
            description="Complete the quest without a single mistake",
            category=AchievementCategory.COMPLETION,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(no_errors=True),
        ),
        Achievement(
            key="self_sufficient",
            name="Self-Sufficient",
            description="Complete the quest without using hints",
            category=AchievementCategory.COMPLETION,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(no_hints=True),
        ),
        Achievement(
            key="lightning",
            name="Lightning",
            description="Complete the quest in under 10 minutes",
            category=AchievementCategory.COMPLETION,
            type=AchievementType.TIME_BASED,
            conditions=AchievementConditions(completion_time_minutes=10),
        ),
        Achievement(
            key="rocket",
            name="Rocket",
            description="Complete the quest in under 60 minutes",
            category=AchievementCategory.COMPLETION,
            type=AchievementType.TIME_BASED,
            conditions=AchievementConditions(completion_time_minutes=60),
        ),
        Achievement(
            key="cheater",
            name="Cheater",
            description="Complete the quest in under 5 minutes",
            category=AchievementCategory.COMPLETION,
            type=AchievementType.TIME_BASED,
            conditions=AchievementConditions(completion_time_minutes=5),
        ),
    ])

    for key, name, hints in _HINT_MILESTONES:
        achievements.append(Achievement(
            key=key,
            name=name,
            description=f"Use {hints} hints",
            category=AchievementCategory.HINTS,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(hint_count=hints),
        ))

    achievements.extend([
        Achievement(
            key="hint_master",
            name="Hint Master",
            description="Use every available hint in the quest",
            category=AchievementCategory.HINTS,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(all_hints_used=True),
        ),
        Achievement(
            key="skeptic",
            name="Skeptic",
            description="Use a hint on the first task",
            category=AchievementCategory.HINTS,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(hint_on_first_task=True),
        ),
        Achievement(
            key="photographer",
            name="Photographer",
            description="Send a photo as an answer",
            category=AchievementCategory.SPECIAL,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(photo_submitted=True),
        ),
        Achievement(
            key="bullseye",
            name="Bullseye",
            description="Answer 10 tasks in a row correctly on the first try",
            category=AchievementCategory.SPECIAL,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(consecutive_correct=10),
        ),
        Achievement(
            key="secret_agent",
            name="Secret Agent",
            description="Answer 'open sesame' to any task",
            category=AchievementCategory.SPECIAL,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(specific_answer="open sesame"),
        ),
        Achievement(
            key="curious",
            name="Curious",
            description="Join the quest but answer nothing for 24 hours",
            category=AchievementCategory.SPECIAL,
            type=AchievementType.TIME_BASED,
            conditions=AchievementConditions(inactive_hours=24),
        ),
        Achievement(
            key="paparazzi",
            name="Paparazzi",
            description="Send a photo for a text task",
            category=AchievementCategory.SPECIAL,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(photo_on_text_task=True),
        ),
        Achievement(
            key="fan",
            name="Fan",
            description="Send a message after finishing the quest",
            category=AchievementCategory.SPECIAL,
            type=AchievementType.ACTION_BASED,
            conditions=AchievementConditions(post_completion=True),
        ),
        Achievement(
            key="super_collector",
            name="Super Collector",
            description="Collect every progress milestone",
            category=AchievementCategory.COMPOSITE,
            type=AchievementType.COMPOSITE,
            conditions=AchievementConditions(
                required_achievements=[key for key, _, _ in _PROGRESS_MILESTONES]
            ),
        ),
        Achievement(
            key="super_brain",
            name="Super Brain",
            description="Complete the quest in under 30 minutes without mistakes or hints",
            category=AchievementCategory.COMPOSITE,
            type=AchievementType.COMPOSITE,
            conditions=AchievementConditions(
                no_errors=True,
                no_hints=True,
                completion_time_minutes=30,
            ),
        ),
        Achievement(
            key="legend",
            name="Legend",
            description="Collect every place, progress and completion award",
            category=AchievementCategory.COMPOSITE,
            type=AchievementType.COMPOSITE,
            conditions=AchievementConditions(required_achievements=list(_LEGEND_REQUIREMENTS)),
        ),
    ])

    return achievements


async def initialize_default_achievements(queue: Optional[DBQueue] = None) -> int:
    """
    Insert missing default achievements

    Returns:
        Number of achievements created
    """
    created = 0
    for achievement in get_default_achievements():
        if await queries.create_achievement(achievement, queue=queue) is not None:
            created += 1
            logger.debug(f"Seeded achievement {achievement.key}")

    logger.info(f"Default achievements initialized ({created} new)")
    return created
