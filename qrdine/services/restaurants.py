"""
Restaurant Service

Admin-side management of restaurants, their tables and menus.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.exceptions import ConflictError, NotFoundError, ValidationError
from qrdine.models import MenuItem, Restaurant, Table
from qrdine.schemas import MenuItemCreate, MenuItemUpdate, RestaurantCreate, TableCreate

logger = logging.getLogger(__name__)


async def list_restaurants(db: AsyncSession, active_only: bool = True) -> list[Restaurant]:
    query = select(Restaurant).order_by(Restaurant.id)
    if active_only:
        query = query.where(Restaurant.active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFoundError(f"Restaurant #{restaurant_id} not found")
    return restaurant


async def create_restaurant(db: AsyncSession, data: RestaurantCreate) -> Restaurant:
    restaurant = Restaurant(**data.model_dump())
    db.add(restaurant)
    await db.commit()
    logger.info(f"Restaurant #{restaurant.id} '{restaurant.name}' created")
    return restaurant


async def list_tables(db: AsyncSession, restaurant_id: int) -> list[Table]:
    await get_restaurant(db, restaurant_id)
    result = await db.execute(
        select(Table)
        .where(Table.restaurant_id == restaurant_id)
        .order_by(Table.table_number)
    )
    return list(result.scalars().all())


async def create_table(db: AsyncSession, restaurant_id: int, data: TableCreate) -> Table:
    """Raises ConflictError if the table number is already taken."""
    await get_restaurant(db, restaurant_id)
    existing = await db.scalar(
        select(Table.id).where(
            Table.restaurant_id == restaurant_id,
            Table.table_number == data.table_number,
        )
    )
    if existing is not None:
        raise ConflictError(
            f"Table {data.table_number} already exists in restaurant #{restaurant_id}"
        )

    table = Table(restaurant_id=restaurant_id, **data.model_dump())
    db.add(table)
    await db.commit()
    logger.info(f"Table {table.table_number} added to restaurant #{restaurant_id}")
    return table


async def list_menu(
    db: AsyncSession,
    restaurant_id: int,
    category: Optional[str] = None,
    include_inactive: bool = False,
) -> list[MenuItem]:
    query = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
    if category:
        query = query.where(MenuItem.category == category)
    if not include_inactive:
        query = query.where(MenuItem.active.is_(True))
    result = await db.execute(query.order_by(MenuItem.category, MenuItem.name))
    return list(result.scalars().all())


async def create_menu_item(db: AsyncSession, data: MenuItemCreate) -> MenuItem:
    await get_restaurant(db, data.restaurant_id)
    item = MenuItem(**data.model_dump())
    db.add(item)
    await db.commit()
    logger.info(f"Menu item #{item.id} '{item.name}' added to restaurant #{item.restaurant_id}")
    return item


async def get_menu_item(db: AsyncSession, item_id: int) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError(f"Menu item #{item_id} not found")
    return item


async def update_menu_item(db: AsyncSession, item_id: int, data: MenuItemUpdate) -> MenuItem:
    """Apply the fields present in data. Restaurant ownership never changes."""
    item = await get_menu_item(db, item_id)
    changes = data.model_dump(exclude_unset=True)
    nulls = sorted(field for field, value in changes.items() if value is None)
    if nulls:
        raise ValidationError(f"Fields cannot be null: {', '.join(nulls)}")
    for field, value in changes.items():
        setattr(item, field, value)
    await db.commit()
    logger.info(f"Menu item #{item.id} updated: {sorted(changes)}")
    return item


async def toggle_menu_item(db: AsyncSession, item_id: int) -> MenuItem:
    """Flip availability; inactive items disappear from the customer menu."""
    item = await get_menu_item(db, item_id)
    item.active = not item.active
    await db.commit()
    logger.info(f"Menu item #{item.id} is now {'active' if item.active else 'inactive'}")
    return item
