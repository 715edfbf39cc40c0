"""
Achievement Catalog

Static, versioned list of chef achievements. Each Achievement member has a
display entry in ACHIEVEMENT_DETAILS and an unlock rule in
ACHIEVEMENT_RULES; both tables must cover every member.

Changing a rule here changes who qualifies on their next completion, but
never revokes achievements already stored on a record.
"""

import enum
from dataclasses import dataclass
from typing import Callable, Iterable


CATALOG_VERSION = 1


class Achievement(str, enum.Enum):
    FIRST_ORDER = "first_order"
    TEN_ORDERS = "ten_orders"
    FIFTY_ORDERS = "fifty_orders"
    THREE_DAY_STREAK = "three_day_streak"
    SEVEN_DAY_STREAK = "seven_day_streak"
    SPEED_DEMON = "speed_demon"


@dataclass(frozen=True)
class AchievementDetails:
    title: str
    description: str


@dataclass(frozen=True)
class AchievementContext:
    """Aggregate stats an unlock rule is evaluated against."""
    orders_completed: int
    daily_streak: int
    fastest_order_time: int
    completion_time: int


SPEED_DEMON_SECONDS = 120

ACHIEVEMENT_DETAILS = {
    Achievement.FIRST_ORDER: AchievementDetails("First Order", "Completed your first order"),
    Achievement.TEN_ORDERS: AchievementDetails("Experienced Chef", "Completed 10 orders"),
    Achievement.FIFTY_ORDERS: AchievementDetails("Master Chef", "Completed 50 orders"),
    Achievement.THREE_DAY_STREAK: AchievementDetails("Consistent Cook", "Worked 3 days in a row"),
    Achievement.SEVEN_DAY_STREAK: AchievementDetails("Dedicated Chef", "Worked 7 days in a row"),
    Achievement.SPEED_DEMON: AchievementDetails(
        "Speed Demon", "Completed an order in under 2 minutes"
    ),
}

ACHIEVEMENT_RULES: dict[Achievement, Callable[[AchievementContext], bool]] = {
    Achievement.FIRST_ORDER: lambda ctx: ctx.orders_completed >= 1,
    Achievement.TEN_ORDERS: lambda ctx: ctx.orders_completed >= 10,
    Achievement.FIFTY_ORDERS: lambda ctx: ctx.orders_completed >= 50,
    Achievement.THREE_DAY_STREAK: lambda ctx: ctx.daily_streak >= 3,
    Achievement.SEVEN_DAY_STREAK: lambda ctx: ctx.daily_streak >= 7,
    # Judged on this completion alone, not on the stored fastest time
    Achievement.SPEED_DEMON: lambda ctx: ctx.completion_time < SPEED_DEMON_SECONDS,
}


def unlocked_achievements(context: AchievementContext) -> list[Achievement]:
    """Every achievement whose rule holds for context, in catalog order."""
    return [achievement for achievement in Achievement if ACHIEVEMENT_RULES[achievement](context)]


def new_achievements(
    context: AchievementContext,
    already_unlocked: Iterable[str],
) -> list[Achievement]:
    """Achievements satisfied by context that are not yet unlocked."""
    owned = set(already_unlocked)
    return [a for a in unlocked_achievements(context) if a.value not in owned]


def catalog() -> list[dict]:
    """Catalog as plain dicts for the API."""
    return [
        {
            "id": achievement.value,
            "title": ACHIEVEMENT_DETAILS[achievement].title,
            "description": ACHIEVEMENT_DETAILS[achievement].description,
        }
        for achievement in Achievement
    ]
