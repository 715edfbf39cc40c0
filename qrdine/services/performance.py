"""
Chef Performance Engine

Scores a chef when they complete an order: running average and fastest
time, daily streak, points, level and achievements.

The scoring itself is pure (score_completion) so it can be reasoned about
and tested without a database. ChefPerformanceEngine wraps it in a single
transaction:

    1. lock the order row and check it is completable
    2. refuse a second completion of the same order
    3. lock (or create) the chef's performance record
    4. score, write every derived field, record the completion
    5. commit, or roll back everything

Points:
    base 10
    + speed bonus: 20 at or below the fast threshold, 0 at or above the
      slow threshold, linear (floored) in between
    + streak bonus: min(streak x 5, 25)

Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.core.exceptions import ConflictError, NotFoundError, ValidationError
from qrdine.models import ChefPerformance, Order, OrderCompletion, OrderStatus, User, UserRole
from qrdine.services.achievements import AchievementContext, new_achievements

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 100
COMPLETABLE_STATUSES = (OrderStatus.PREPARING, OrderStatus.READY)


# =============================================================================
# PURE SCORING
# =============================================================================

@dataclass(frozen=True)
class ScoringRules:
    """Point rules. Thresholds are in seconds."""
    fast_seconds: int = 60
    slow_seconds: int = 600
    base_points: int = 10
    max_speed_bonus: int = 20
    streak_bonus_per_day: int = 5
    max_streak_bonus: int = 25

    @classmethod
    def from_settings(cls) -> "ScoringRules":
        settings = get_settings()
        return cls(
            fast_seconds=settings.speed_bonus_fast_seconds,
            slow_seconds=settings.speed_bonus_slow_seconds,
        )


@dataclass(frozen=True)
class PerformanceState:
    """Snapshot of a performance record's scoring fields."""
    orders_completed: int = 0
    average_order_time: float = 0.0
    fastest_order_time: Optional[int] = None
    daily_streak: int = 0
    last_session_date: Optional[date] = None
    points: int = 0
    level: int = 1
    achievements: tuple = ()

    @classmethod
    def from_record(cls, record: ChefPerformance) -> "PerformanceState":
        return cls(
            orders_completed=record.orders_completed or 0,
            average_order_time=record.average_order_time or 0.0,
            fastest_order_time=record.fastest_order_time,
            daily_streak=record.daily_streak or 0,
            last_session_date=record.last_session_date,
            points=record.points or 0,
            level=record.level or 1,
            achievements=tuple(record.achievements or ()),
        )


@dataclass(frozen=True)
class ScoredCompletion:
    state: PerformanceState
    points_earned: int
    new_achievements: list = field(default_factory=list)


def level_for_points(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def speed_bonus(completion_time: int, rules: ScoringRules = ScoringRules()) -> int:
    """Bonus points for a fast completion, never negative."""
    if completion_time <= rules.fast_seconds:
        return rules.max_speed_bonus
    if completion_time >= rules.slow_seconds:
        return 0
    remaining = rules.slow_seconds - completion_time
    window = rules.slow_seconds - rules.fast_seconds
    return rules.max_speed_bonus * remaining // window


def streak_bonus(streak: int, rules: ScoringRules = ScoringRules()) -> int:
    return min(streak * rules.streak_bonus_per_day, rules.max_streak_bonus)


def next_streak(streak: int, last_session_date: Optional[date], today: date) -> int:
    """
    Streak after working today.

    Yesterday continues the streak, today keeps it (at least 1), anything else
    (a gap, a future date, no previous session) starts over at 1.
    """
    if last_session_date == today:
        return max(streak, 1)
    if last_session_date == today - timedelta(days=1):
        return streak + 1
    return 1


def score_completion(
    state: PerformanceState,
    completion_time: int,
    today: date,
    rules: ScoringRules = ScoringRules(),
) -> ScoredCompletion:
    """Apply one completed order to state."""
    orders_completed = state.orders_completed + 1
    average = (
        state.average_order_time * state.orders_completed + completion_time
    ) / orders_completed
    fastest = (
        completion_time
        if state.fastest_order_time is None
        else min(state.fastest_order_time, completion_time)
    )
    streak = next_streak(state.daily_streak, state.last_session_date, today)

    points_earned = (
        rules.base_points
        + speed_bonus(completion_time, rules)
        + streak_bonus(streak, rules)
    )
    points = state.points + points_earned

    unlocked = new_achievements(
        AchievementContext(
            orders_completed=orders_completed,
            daily_streak=streak,
            fastest_order_time=fastest,
            completion_time=completion_time,
        ),
        state.achievements,
    )
    unlocked_ids = [achievement.value for achievement in unlocked]

    new_state = replace(
        state,
        orders_completed=orders_completed,
        average_order_time=average,
        fastest_order_time=fastest,
        daily_streak=streak,
        last_session_date=today,
        points=points,
        level=level_for_points(points),
        achievements=state.achievements + tuple(unlocked_ids),
    )
    return ScoredCompletion(
        state=new_state,
        points_earned=points_earned,
        new_achievements=unlocked_ids,
    )


# =============================================================================
# TRANSACTIONAL ENGINE
# =============================================================================

@dataclass
class CompletionResult:
    record: ChefPerformance
    points_earned: int
    new_achievements: list


class _RecordCreationRace(Exception):
    """Another transaction created the same chef record first."""


class ChefPerformanceEngine:
    """
    Applies order completions to chef performance records.

    One engine per database session. Updates to one record are serialized
    by the row lock taken in _lock_record; different chefs never contend.
    """

    def __init__(self, db: AsyncSession, rules: Optional[ScoringRules] = None):
        self.db = db
        self.rules = rules or ScoringRules.from_settings()

    async def complete_order(
        self,
        user_id: int,
        restaurant_id: int,
        order_id: int,
        completion_time: int,
        today: Optional[date] = None,
    ) -> CompletionResult:
        """
        Score order_id for the chef and persist the result atomically.

        Raises:
            ValidationError: completion_time is not a non-negative integer,
                or the user is not a chef
            NotFoundError: order or chef missing, or order not completable
            ConflictError: the order was already completed
        """
        if (
            isinstance(completion_time, bool)
            or not isinstance(completion_time, int)
            or completion_time < 0
        ):
            raise ValidationError("completionTime must be a non-negative number of seconds")

        today = today or date.today()

        try:
            return await self._complete_once(user_id, restaurant_id, order_id, completion_time, today)
        except _RecordCreationRace:
            logger.info(f"Chef #{user_id} record created concurrently, retrying completion")
        try:
            return await self._complete_once(user_id, restaurant_id, order_id, completion_time, today)
        except _RecordCreationRace as exc:
            raise ConflictError("Chef performance record is being updated, please retry") from exc

    async def _complete_once(
        self,
        user_id: int,
        restaurant_id: int,
        order_id: int,
        completion_time: int,
        today: date,
    ) -> CompletionResult:
        try:
            order = await self._lock_order(order_id, restaurant_id)

            already_done = await self.db.scalar(
                select(OrderCompletion.id).where(OrderCompletion.order_id == order_id)
            )
            if already_done is not None:
                raise ConflictError(f"Order #{order_id} has already been completed")

            chef = await self.db.get(User, user_id)
            if chef is None:
                raise NotFoundError(f"Chef #{user_id} not found")
            if chef.role != UserRole.CHEF:
                raise ValidationError(f"User #{user_id} is not a chef and cannot score orders")

            record = await self._lock_record(user_id, restaurant_id)
            scored = score_completion(
                PerformanceState.from_record(record), completion_time, today, self.rules
            )
            self._write_state(record, scored.state)

            if order.status == OrderStatus.PREPARING:
                order.status = OrderStatus.READY

            self.db.add(OrderCompletion(
                order_id=order_id,
                user_id=user_id,
                restaurant_id=restaurant_id,
                completion_time=completion_time,
                points_earned=scored.points_earned,
            ))
            await self.db.commit()

        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning(f"Order #{order_id} completed concurrently: {exc.orig}")
            raise ConflictError(f"Order #{order_id} has already been completed") from exc
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Chef #{user_id} completed order #{order_id} in {completion_time}s: "
            f"+{scored.points_earned} pts (total {record.points}, level {record.level})"
            + (f", unlocked {scored.new_achievements}" if scored.new_achievements else "")
        )
        return CompletionResult(
            record=record,
            points_earned=scored.points_earned,
            new_achievements=scored.new_achievements,
        )

    async def _lock_order(self, order_id: int, restaurant_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None or order.restaurant_id != restaurant_id:
            raise NotFoundError(f"Order #{order_id} not found")
        if order.status not in COMPLETABLE_STATUSES:
            raise NotFoundError(
                f"Order #{order_id} is '{order.status.value}' and cannot be completed yet"
            )
        return order

    async def _lock_record(self, user_id: int, restaurant_id: int) -> ChefPerformance:
        result = await self.db.execute(
            select(ChefPerformance)
            .where(
                ChefPerformance.user_id == user_id,
                ChefPerformance.restaurant_id == restaurant_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is not None:
            return record

        record = ChefPerformance(
            user_id=user_id,
            restaurant_id=restaurant_id,
            orders_completed=0,
            average_order_time=0.0,
            daily_streak=0,
            points=0,
            level=1,
            achievements=[],
        )
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise _RecordCreationRace() from exc
        logger.info(f"Created performance record for chef #{user_id} at restaurant #{restaurant_id}")
        return record

    @staticmethod
    def _write_state(record: ChefPerformance, state: PerformanceState) -> None:
        record.orders_completed = state.orders_completed
        record.average_order_time = state.average_order_time
        record.fastest_order_time = state.fastest_order_time
        record.daily_streak = state.daily_streak
        record.last_session_date = state.last_session_date
        record.points = state.points
        record.level = state.level
        # New list so the JSON column is flagged dirty
        record.achievements = list(state.achievements)

    async def get_performance(
        self,
        user_id: int,
        restaurant_id: Optional[int] = None,
    ) -> ChefPerformance:
        """Current record for a chef. Raises NotFoundError if none exists."""
        query = select(ChefPerformance).where(ChefPerformance.user_id == user_id)
        if restaurant_id is not None:
            query = query.where(ChefPerformance.restaurant_id == restaurant_id)
        result = await self.db.execute(query.order_by(ChefPerformance.restaurant_id).limit(1))
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"No performance data for chef #{user_id}")
        return record
