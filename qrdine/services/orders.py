"""
Order Service

Server side of order placement and the kitchen status workflow:
- create orders from a validated cart, snapshotting line item prices
- fetch and list orders (by restaurant, status or customer phone)
- advance order status forward only
- aggregate simple analytics for the admin dashboard

Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.exceptions import ConflictError, NotFoundError, ValidationError
from qrdine.models import MenuItem, Order, OrderItem, OrderStatus, Restaurant, Table
from qrdine.schemas import OrderCreate
from qrdine.services.order_status import ensure_transition

logger = logging.getLogger(__name__)


async def create_order(db: AsyncSession, order_data: OrderCreate) -> Order:
    """
    Persist a new order.

    The restaurant, the table and every menu item must exist and belong to
    the same restaurant. Prices come from the payload as submitted.

    Raises:
        NotFoundError: restaurant, table or menu item missing
        ValidationError: table or menu item belongs to another restaurant
        ConflictError: the order number was taken concurrently
    """
    restaurant = await db.get(Restaurant, order_data.restaurant_id)
    if restaurant is None or not restaurant.active:
        raise NotFoundError(f"Restaurant #{order_data.restaurant_id} not found")

    table = await db.get(Table, order_data.table_id)
    if table is None:
        raise NotFoundError(f"Table with ID {order_data.table_id} not found")
    if table.restaurant_id != order_data.restaurant_id:
        raise ValidationError(
            f"Table {order_data.table_id} belongs to restaurant {table.restaurant_id}, "
            f"not {order_data.restaurant_id}"
        )

    menu_item_ids = {item.menu_item_id for item in order_data.items}
    result = await db.execute(
        select(MenuItem.id, MenuItem.restaurant_id).where(MenuItem.id.in_(menu_item_ids))
    )
    owners = dict(result.all())
    missing = sorted(menu_item_ids - owners.keys())
    if missing:
        raise NotFoundError(f"Menu items not found: {missing}")
    foreign = sorted(i for i, owner in owners.items() if owner != order_data.restaurant_id)
    if foreign:
        raise ValidationError(
            f"Menu items {foreign} do not belong to restaurant #{order_data.restaurant_id}"
        )

    new_order = Order(
        restaurant_id=order_data.restaurant_id,
        table_id=order_data.table_id,
        customer_name=order_data.customer_name,
        customer_phone=order_data.customer_phone,
        notes=order_data.notes,
        payment_method=order_data.payment_method,
        total_amount=order_data.total_amount,
        status=OrderStatus.PENDING,
        items=[
            OrderItem(
                menu_item_id=item.menu_item_id,
                quantity=item.quantity,
                price=item.price,
            )
            for item in order_data.items
        ],
    )

    try:
        new_order.restaurant_order_number = await _next_order_number(db, order_data.restaurant_id)
        db.add(new_order)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning(f"Order number clash in restaurant #{order_data.restaurant_id}: {exc.orig}")
        raise ConflictError("Order could not be numbered, please retry") from exc
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Order #{new_order.id} created for restaurant #{new_order.restaurant_id} "
        f"(restaurant order #{new_order.restaurant_order_number}, "
        f"{len(new_order.items)} items, total {new_order.total_amount})"
    )
    return new_order


async def _next_order_number(db: AsyncSession, restaurant_id: int) -> int:
    """
    Allocate the next per-restaurant order number.

    The UPDATE holds the restaurant row lock until the caller commits, so
    concurrent placements for one restaurant are numbered one at a time.
    """
    result = await db.execute(
        update(Restaurant)
        .where(Restaurant.id == restaurant_id)
        .values(last_order_number=Restaurant.last_order_number + 1)
        .returning(Restaurant.last_order_number)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one()


async def get_order(db: AsyncSession, order_id: int) -> Order:
    """Raises NotFoundError if the order does not exist."""
    order = await db.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found")
    return order


async def list_orders(
    db: AsyncSession,
    restaurant_id: Optional[int] = None,
    status: Optional[OrderStatus] = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[int, list[Order]]:
    """Newest first. Returns (total matching, page)."""
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    count_query = select(func.count(Order.id))

    if restaurant_id is not None:
        query = query.where(Order.restaurant_id == restaurant_id)
        count_query = count_query.where(Order.restaurant_id == restaurant_id)
    if status is not None:
        query = query.where(Order.status == status)
        count_query = count_query.where(Order.status == status)

    total = await db.scalar(count_query) or 0
    result = await db.execute(query.offset(skip).limit(limit))
    return total, list(result.scalars().all())


async def list_orders_by_phone(db: AsyncSession, phone: str) -> list[Order]:
    """Orders a customer placed with this phone number, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.customer_phone == phone)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())


async def update_order_status(
    db: AsyncSession,
    order_id: int,
    status: OrderStatus,
) -> Order:
    """
    Move an order forward in the kitchen workflow.

    Raises:
        NotFoundError: order missing
        ConflictError: status is not after the current one
    """
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found")

    previous = order.status
    try:
        order.status = ensure_transition(previous, status)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Order #{order_id} status {previous.value} -> {order.status.value}")
    return order


async def order_analytics(db: AsyncSession, restaurant_id: Optional[int] = None) -> dict:
    """Counts per status plus revenue figures, optionally for one restaurant."""
    scope = []
    if restaurant_id is not None:
        scope.append(Order.restaurant_id == restaurant_id)

    result = await db.execute(
        select(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .where(*scope)
        .group_by(Order.status)
    )
    counts = {status: 0 for status in OrderStatus}
    revenue = 0
    for status, count, amount in result.all():
        counts[OrderStatus(status)] = count
        revenue += int(amount)
    total_orders = sum(counts.values())

    today_start = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    today_result = await db.execute(
        select(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .where(Order.created_at >= today_start, *scope)
    )
    today_orders, today_revenue = today_result.one()

    return {
        "restaurant_id": restaurant_id,
        "total_orders": total_orders,
        "pending_orders": counts[OrderStatus.PENDING],
        "preparing_orders": counts[OrderStatus.PREPARING],
        "ready_orders": counts[OrderStatus.READY],
        "total_revenue": revenue,
        "average_order_value": round(revenue / total_orders, 2) if total_orders else 0.0,
        "today_orders": today_orders,
        "today_revenue": int(today_revenue),
    }
