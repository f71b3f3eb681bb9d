"""Unit tests for default achievement seeding (quest_analytics/db/achievement_init.py)"""
import pytest

from quest_analytics.db.achievement_init import (
    get_default_achievements,
    initialize_default_achievements,
)
from quest_analytics.models.achievement import AchievementCategory, AchievementType

PLACE_KEYS = [
    "pioneer", "second_place", "third_place", "fourth_place", "fifth_place",
    "sixth_place", "seventh_place", "eighth_place", "ninth_place", "tenth_place",
]
PROGRESS_KEYS = ["beginner_5", "experienced_10", "advanced_15", "expert_20", "master_25"]
COMPLETION_KEYS = ["winner", "perfect_path", "self_sufficient", "lightning", "rocket", "cheater"]
HINT_KEYS = ["hint_5", "hint_10", "hint_15", "hint_25", "hint_30", "hint_master", "skeptic"]
SPECIAL_KEYS = ["photographer", "bullseye", "secret_agent", "curious", "paparazzi", "fan"]
COMPOSITE_KEYS = ["super_collector", "super_brain", "legend"]


def by_key():
    return {a.key: a for a in get_default_achievements()}


def test_default_catalog_keys():
    """Test the full built-in catalog in seeding order"""
    keys = [a.key for a in get_default_achievements()]

    assert keys == (
        PLACE_KEYS + PROGRESS_KEYS + COMPLETION_KEYS + HINT_KEYS + SPECIAL_KEYS + COMPOSITE_KEYS
    )
    assert len(keys) == 37
    assert len(keys) == len(set(keys))


@pytest.mark.parametrize("keys,category", [
    (PLACE_KEYS, AchievementCategory.UNIQUE),
    (PROGRESS_KEYS, AchievementCategory.PROGRESS),
    (COMPLETION_KEYS, AchievementCategory.COMPLETION),
    (HINT_KEYS, AchievementCategory.HINTS),
    (SPECIAL_KEYS, AchievementCategory.SPECIAL),
    (COMPOSITE_KEYS, AchievementCategory.COMPOSITE),
])
def test_default_categories(keys, category):
    catalog = by_key()

    assert {catalog[key].category for key in keys} == {category}


def test_position_awards():
    """Test the first ten participants each have a unique award"""
    unique = [a for a in get_default_achievements() if a.category == AchievementCategory.UNIQUE]

    assert [a.conditions.position for a in unique] == list(range(1, 11))
    assert all(a.is_unique for a in unique)


def test_special_award_conditions():
    catalog = by_key()

    assert catalog["cheater"].type == AchievementType.TIME_BASED
    assert catalog["cheater"].conditions.completion_time_minutes == 5
    assert catalog["hint_30"].conditions.hint_count == 30
    assert catalog["hint_master"].conditions.all_hints_used is True
    assert catalog["skeptic"].conditions.hint_on_first_task is True
    assert catalog["bullseye"].conditions.consecutive_correct == 10
    assert catalog["secret_agent"].type == AchievementType.ACTION_BASED
    assert catalog["secret_agent"].conditions.specific_answer == "open sesame"
    assert catalog["curious"].type == AchievementType.TIME_BASED
    assert catalog["curious"].conditions.inactive_hours == 24
    assert catalog["paparazzi"].conditions.photo_on_text_task is True
    assert catalog["fan"].conditions.post_completion is True


def test_composite_awards():
    """Test composite requirements reference seeded keys"""
    catalog = by_key()

    assert catalog["super_collector"].conditions.required_achievements == PROGRESS_KEYS
    assert catalog["legend"].conditions.required_achievements == (
        PLACE_KEYS + PROGRESS_KEYS + COMPLETION_KEYS
    )

    brain = catalog["super_brain"].conditions
    assert (brain.no_errors, brain.no_hints, brain.completion_time_minutes) == (True, True, 30)
    assert brain.required_achievements is None

    for achievement in catalog.values():
        required = achievement.conditions.required_achievements or []
        assert set(required) <= set(catalog)


@pytest.mark.asyncio
async def test_initialize_default_achievements(fake_store):
    """Test seeding inserts the catalog once and keeps edits on rerun"""
    expected = len(get_default_achievements())

    assert await initialize_default_achievements() == expected
    assert len(fake_store.achievements) == expected

    pioneer = next(a for a in fake_store.achievements if a.key == "pioneer")
    await fake_store.update_achievement(pioneer.model_copy(update={"name": "Trailblazer"}))

    assert await initialize_default_achievements() == 0
    assert len(fake_store.achievements) == expected
    assert (await fake_store.get_achievement_by_key("pioneer")).name == "Trailblazer"


@pytest.mark.asyncio
async def test_initialize_default_achievements_on_given_queue(fake_store, monkeypatch):
    """Test seeding passes the caller's queue to every insert"""
    seen = []
    store_create = fake_store.create_achievement

    async def create(achievement, queue=None):
        seen.append(queue)
        return await store_create(achievement, queue=queue)

    monkeypatch.setattr("quest_analytics.db.queries.create_achievement", create)
    queue = object()

    await initialize_default_achievements(queue)

    assert len(seen) == 37
    assert all(q is queue for q in seen)
