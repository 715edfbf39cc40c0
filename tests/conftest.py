"""
Shared fixtures: an in-memory SQLite database per test and an API client
bound to it. Environment variables are set before qrdine is imported so the
cached settings never point at Postgres.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENV_MODE"] = "development"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qrdine.database import Base, get_db
from qrdine.models import (
    ChefPerformance,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Restaurant,
    Table,
    User,
    UserRole,
)


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def seed(db):
    """Two restaurants, a table each, a small menu and three staff users."""
    roma = Restaurant(name="Trattoria Roma", address="1 Via Roma", phone="555-0100")
    tokyo = Restaurant(name="Tokyo Bento", address="2 Ginza St", phone="555-0200")
    db.add_all([roma, tokyo])
    await db.flush()

    roma_table = Table(restaurant_id=roma.id, table_number=1)
    tokyo_table = Table(restaurant_id=tokyo.id, table_number=1)
    margherita = MenuItem(restaurant_id=roma.id, name="Margherita", price=1200, category="pizza")
    tiramisu = MenuItem(restaurant_id=roma.id, name="Tiramisu", price=650, category="dessert")
    ramen = MenuItem(restaurant_id=tokyo.id, name="Ramen", price=1400, category="noodles")
    chef = User(username="italian_chef", role=UserRole.CHEF, restaurant_id=roma.id)
    second_chef = User(username="pizza_chef", role=UserRole.CHEF, restaurant_id=roma.id)
    admin = User(username="admin", role=UserRole.ADMIN, restaurant_id=None)
    db.add_all([roma_table, tokyo_table, margherita, tiramisu, ramen, chef, second_chef, admin])
    await db.commit()

    return {
        "restaurant": roma,
        "other_restaurant": tokyo,
        "table": roma_table,
        "other_table": tokyo_table,
        "margherita": margherita,
        "tiramisu": tiramisu,
        "ramen": ramen,
        "chef": chef,
        "second_chef": second_chef,
        "admin": admin,
    }


@pytest.fixture
def ids(seed):
    """Primary keys of the seed rows, still usable after a rollback expires them."""
    return {name: row.id for name, row in seed.items()}


@pytest.fixture
def make_order(db, seed, ids):
    """Insert an order directly, bypassing the API."""
    home = (ids["restaurant"], ids["table"], ids["margherita"], seed["margherita"].price)
    away = (ids["other_restaurant"], ids["other_table"], ids["ramen"], seed["ramen"].price)

    async def _make(status=OrderStatus.PREPARING, restaurant_id=None, phone="+15550001111"):
        restaurant_id, table_id, item_id, price = away if restaurant_id == away[0] else home
        restaurant = await db.get(Restaurant, restaurant_id, populate_existing=True)
        restaurant.last_order_number += 1
        order = Order(
            restaurant_id=restaurant_id,
            table_id=table_id,
            restaurant_order_number=restaurant.last_order_number,
            customer_name="Ada",
            customer_phone=phone,
            total_amount=price * 2,
            status=status,
            items=[OrderItem(menu_item_id=item_id, quantity=2, price=price)],
        )
        db.add(order)
        await db.commit()
        return order

    return _make


@pytest.fixture
def make_record(db):
    """Insert a chef performance record with the given stats."""

    async def _make(user_id, restaurant_id, points=0, orders_completed=0, **fields):
        record = ChefPerformance(
            user_id=user_id,
            restaurant_id=restaurant_id,
            points=points,
            level=points // 100 + 1,
            orders_completed=orders_completed,
            average_order_time=fields.pop("average_order_time", 0.0),
            daily_streak=fields.pop("daily_streak", 0),
            achievements=fields.pop("achievements", []),
            **fields,
        )
        db.add(record)
        await db.commit()
        return record

    return _make


@pytest.fixture
def queued_notifications(monkeypatch):
    delay = MagicMock()
    monkeypatch.setattr("qrdine.main.send_order_status_notification.delay", delay)
    return delay


@pytest_asyncio.fixture
async def client(session_maker, seed, queued_notifications):
    from qrdine.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()
