"""
SQLAlchemy Database Models

Multi-restaurant QR ordering:
- Restaurants with their tables, menus and chef accounts
- Orders with snapshotted line items
- Chef performance records and the completed-order ledger

Version: 1.0.0
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from qrdine.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow, in kitchen order."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"


class UserRole(str, enum.Enum):
    CHEF = "chef"
    ADMIN = "admin"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Restaurant(Base):
    """A restaurant owning its own tables, menu and chefs."""
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    address = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    # Last restaurant_order_number handed out; bumped under a row lock
    last_order_number = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Restaurant #{self.id} - {self.name}>"


class Table(Base):
    """Physical table carrying the QR code customers scan."""
    __tablename__ = "tables"
    __table_args__ = (
        Index("tables_restaurant_table_number_idx", "restaurant_id", "table_number"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    table_number = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Table {self.table_number} @ restaurant #{self.restaurant_id}>"


class MenuItem(Base):
    """Menu entry. Price is stored in minor currency units."""
    __tablename__ = "menu_items"
    __table_args__ = (
        Index("menu_items_restaurant_category_idx", "restaurant_id", "category"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False)
    category = Column(String(50), nullable=False)
    image = Column(String(500), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name}>"


class User(Base):
    """Staff account. Admins have no restaurant."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True)
    role = Column(
        Enum(UserRole, values_callable=_enum_values),
        nullable=False,
        default=UserRole.CHEF,
        index=True,
    )
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True, index=True)

    def __repr__(self):
        return f"<User #{self.id} - {self.username} ({self.role.value})>"


class Order(Base):
    """
    Customer order placed from a table.

    total_amount always equals the sum of the line items' price x quantity
    as submitted; prices are snapshotted in OrderItem.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("orders_restaurant_status_idx", "restaurant_id", "status"),
        UniqueConstraint(
            "restaurant_id", "restaurant_order_number", name="orders_restaurant_order_num_uq"
        ),
    )
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    restaurant_order_number = Column(Integer, nullable=False)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(20), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING / PAYMENT
    # =========================================================================
    total_amount = Column(Integer, nullable=False, default=0)
    payment_method = Column(String(20), nullable=False, default="cash")

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, values_callable=_enum_values),
        default=OrderStatus.PENDING,
        nullable=False,
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order #{self.id} - restaurant #{self.restaurant_id} - {self.status.value}>"


class OrderItem(Base):
    """Line item with the unit price captured at order time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class ChefPerformance(Base):
    """
    Gamified kitchen stats for one chef in one restaurant.

    Created on the chef's first completed order and rewritten as a whole
    once per completion. level is always points // 100 + 1.
    """
    __tablename__ = "chef_performance"
    __table_args__ = (
        UniqueConstraint("user_id", "restaurant_id", name="chef_performance_user_restaurant_uq"),
        Index("chef_performance_leaderboard_idx", "restaurant_id", "points"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)

    orders_completed = Column(Integer, nullable=False, default=0)
    average_order_time = Column(Float, nullable=False, default=0.0)  # seconds
    fastest_order_time = Column(Integer, nullable=True)  # seconds
    daily_streak = Column(Integer, nullable=False, default=0)
    last_session_date = Column(Date, nullable=True)

    points = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    achievements = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<ChefPerformance user #{self.user_id} - "
            f"{self.points} pts - level {self.level}>"
        )


class OrderCompletion(Base):
    """
    One row per order a chef has completed.

    The unique order_id is what makes a repeated completion a conflict
    instead of a second scoring.
    """
    __tablename__ = "order_completions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    completion_time = Column(Integer, nullable=False)  # seconds
    points_earned = Column(Integer, nullable=False)
    completed_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<OrderCompletion order #{self.order_id} by user #{self.user_id}>"
