"""
Leaderboard Aggregator

Ranks chef performance records within one restaurant: points descending,
then orders completed descending, then user id ascending so ties always
come out in the same order. Read only.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.core.exceptions import ValidationError
from qrdine.models import ChefPerformance, User

logger = logging.getLogger(__name__)

LEADERBOARD_ORDER = (
    ChefPerformance.points.desc(),
    ChefPerformance.orders_completed.desc(),
    ChefPerformance.user_id.asc(),
)


@dataclass
class LeaderboardEntry:
    rank: int
    record: ChefPerformance
    username: Optional[str] = None


async def get_leaderboard(
    db: AsyncSession,
    restaurant_id: int,
    limit: Optional[int] = None,
) -> list[LeaderboardEntry]:
    """
    Top chefs of a restaurant.

    Rows come from a single SELECT so every entry reflects the same
    committed state.

    Raises:
        ValidationError: limit is not positive
    """
    if limit is None:
        limit = get_settings().leaderboard_default_limit
    if limit <= 0:
        raise ValidationError("limit must be a positive integer")

    result = await db.execute(
        select(ChefPerformance, User.username)
        .outerjoin(User, User.id == ChefPerformance.user_id)
        .where(ChefPerformance.restaurant_id == restaurant_id)
        .order_by(*LEADERBOARD_ORDER)
        .limit(limit)
    )
    entries = [
        LeaderboardEntry(rank=position, record=record, username=username)
        for position, (record, username) in enumerate(result.all(), start=1)
    ]
    logger.debug(f"Leaderboard for restaurant #{restaurant_id}: {len(entries)} entries")
    return entries


async def get_rank(db: AsyncSession, record: ChefPerformance) -> int:
    """1-based leaderboard position of record within its restaurant."""
    ahead = await db.scalar(
        select(func.count(ChefPerformance.id)).where(
            ChefPerformance.restaurant_id == record.restaurant_id,
            or_(
                ChefPerformance.points > record.points,
                and_(
                    ChefPerformance.points == record.points,
                    ChefPerformance.orders_completed > record.orders_completed,
                ),
                and_(
                    ChefPerformance.points == record.points,
                    ChefPerformance.orders_completed == record.orders_completed,
                    ChefPerformance.user_id < record.user_id,
                ),
            ),
        )
    )
    return (ahead or 0) + 1
