from datetime import date, timedelta

import pytest

from qrdine.services.achievements import (
    Achievement,
    AchievementContext,
    catalog,
    new_achievements,
    unlocked_achievements,
)
from qrdine.services.performance import (
    PerformanceState,
    ScoringRules,
    level_for_points,
    next_streak,
    score_completion,
    speed_bonus,
    streak_bonus,
)

TODAY = date(2026, 3, 14)


@pytest.mark.parametrize("points, level", [(0, 1), (99, 1), (100, 2), (250, 3), (1000, 11)])
def test_level_law(points, level):
    assert level_for_points(points) == level


@pytest.mark.parametrize("seconds, bonus", [
    (0, 20),
    (60, 20),
    (61, 19),
    (330, 10),
    (599, 0),
    (600, 0),
    (3600, 0),
])
def test_speed_bonus_decreases_with_time(seconds, bonus):
    assert speed_bonus(seconds) == bonus


def test_speed_bonus_monotonic():
    bonuses = [speed_bonus(t) for t in range(0, 700, 5)]
    assert bonuses == sorted(bonuses, reverse=True)
    assert all(0 <= b <= 20 for b in bonuses)


def test_speed_bonus_follows_configured_thresholds():
    rules = ScoringRules(fast_seconds=30, slow_seconds=90)
    assert speed_bonus(30, rules) == 20
    assert speed_bonus(60, rules) == 10
    assert speed_bonus(90, rules) == 0


@pytest.mark.parametrize("streak, bonus", [(0, 0), (1, 5), (3, 15), (5, 25), (12, 25)])
def test_streak_bonus_is_capped(streak, bonus):
    assert streak_bonus(streak) == bonus


def test_streak_law():
    yesterday = TODAY - timedelta(days=1)
    assert next_streak(4, yesterday, TODAY) == 5
    assert next_streak(4, TODAY, TODAY) == 4
    assert next_streak(4, TODAY - timedelta(days=3), TODAY) == 1
    assert next_streak(4, TODAY + timedelta(days=1), TODAY) == 1
    assert next_streak(0, None, TODAY) == 1
    assert next_streak(0, TODAY, TODAY) == 1


def test_first_completion_from_empty_state():
    scored = score_completion(PerformanceState(), 45, TODAY)

    state = scored.state
    assert state.orders_completed == 1
    assert state.average_order_time == 45
    assert state.fastest_order_time == 45
    assert state.daily_streak == 1
    assert state.last_session_date == TODAY
    # 10 base + 20 speed + 5 streak
    assert scored.points_earned == 35
    assert state.points == 35
    assert state.level == 1
    assert scored.new_achievements == ["first_order", "speed_demon"]


def test_running_average_and_fastest():
    state = PerformanceState(
        orders_completed=3,
        average_order_time=300.0,
        fastest_order_time=200,
        daily_streak=2,
        last_session_date=TODAY,
        points=90,
        achievements=("first_order",),
    )
    scored = score_completion(state, 100, TODAY)

    assert scored.state.orders_completed == 4
    assert scored.state.average_order_time == pytest.approx(250.0)
    assert scored.state.fastest_order_time == 100
    assert scored.state.daily_streak == 2
    # 10 + 20 * 500 // 540 + 10
    assert scored.points_earned == 10 + 18 + 10
    assert scored.state.points == 128
    assert scored.state.level == 2


def test_slower_order_keeps_fastest_time():
    state = PerformanceState(orders_completed=1, average_order_time=90.0, fastest_order_time=90)
    scored = score_completion(state, 400, TODAY)
    assert scored.state.fastest_order_time == 90
    assert scored.state.average_order_time == pytest.approx(245.0)


def test_points_never_decrease():
    state = PerformanceState(points=500, level=6)
    for seconds in (0, 120, 599, 10_000):
        scored = score_completion(state, seconds, TODAY)
        assert scored.points_earned >= 10
        assert scored.state.points > state.points
        assert scored.state.level == level_for_points(scored.state.points)


def test_streak_unlocks_three_day_achievement():
    state = PerformanceState(
        orders_completed=5,
        daily_streak=2,
        last_session_date=TODAY - timedelta(days=1),
        achievements=("first_order",),
    )
    scored = score_completion(state, 900, TODAY)
    assert scored.state.daily_streak == 3
    assert scored.new_achievements == ["three_day_streak"]
    assert scored.state.achievements == ("first_order", "three_day_streak")


def test_achievements_never_duplicate():
    context = AchievementContext(
        orders_completed=10, daily_streak=7, fastest_order_time=30, completion_time=30
    )
    owned = [a.value for a in Achievement if a is not Achievement.FIFTY_ORDERS]
    assert new_achievements(context, owned) == []


def test_thresholds_inclusive():
    context = AchievementContext(
        orders_completed=50, daily_streak=7, fastest_order_time=119, completion_time=119
    )
    assert unlocked_achievements(context) == list(Achievement)


def test_speed_demon_judged_on_current_order():
    context = AchievementContext(
        orders_completed=2, daily_streak=1, fastest_order_time=30, completion_time=300
    )
    assert Achievement.SPEED_DEMON not in unlocked_achievements(context)


def test_catalog_lists_every_achievement():
    entries = {entry["id"]: entry["title"] for entry in catalog()}
    assert entries == {
        "first_order": "First Order",
        "ten_orders": "Experienced Chef",
        "fifty_orders": "Master Chef",
        "three_day_streak": "Consistent Cook",
        "seven_day_streak": "Dedicated Chef",
        "speed_demon": "Speed Demon",
    }
