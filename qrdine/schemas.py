"""
Pydantic Schemas for Request/Response Validation

JSON on the wire uses camelCase (restaurantId, totalAmount, newAchievements);
Python code uses snake_case. Every schema accepts both spellings on input.

Version: 1.0.0
"""

from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from qrdine.models import OrderStatus
from qrdine.services.order_status import describe_progress


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# RESTAURANT / TABLE / MENU
# =============================================================================

class RestaurantCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Trattoria Roma"])
    address: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=5, max_length=20)
    active: bool = True


class RestaurantResponse(CamelModel):
    id: int
    name: str
    address: str
    phone: str
    active: bool


class TableCreate(CamelModel):
    table_number: int = Field(..., ge=1, examples=[4])
    active: bool = True


class TableResponse(CamelModel):
    id: int
    restaurant_id: int
    table_number: int
    active: bool


class MenuItemCreate(CamelModel):
    restaurant_id: int
    name: str = Field(..., min_length=1, max_length=100, examples=["Margherita"])
    description: str = Field(default="", max_length=1000)
    price: int = Field(..., ge=0, description="Price in minor currency units", examples=[1299])
    category: str = Field(..., min_length=1, max_length=50, examples=["pizza"])
    image: str = Field(default="", max_length=500)
    active: bool = True


class MenuItemUpdate(CamelModel):
    """Partial menu item update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    image: Optional[str] = Field(None, max_length=500)
    active: Optional[bool] = None


class MenuItemResponse(CamelModel):
    id: int
    restaurant_id: int
    name: str
    description: str
    price: int
    category: str
    image: str
    active: bool


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line item, price snapshotted from the cart."""
    menu_item_id: int = Field(..., examples=[3])
    quantity: int = Field(..., ge=1, examples=[2])
    price: int = Field(..., ge=0, description="Unit price in minor units", examples=[1299])

    @property
    def line_total(self) -> int:
        return self.quantity * self.price


class OrderCreate(CamelModel):
    """Order placement payload sent by the customer's device."""
    restaurant_id: int
    table_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    total_amount: int = Field(..., ge=0)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=500)
    payment_method: str = Field(default="cash", pattern="^(cash|card|upi)$")

    @model_validator(mode="after")
    def check_total(self) -> "OrderCreate":
        expected = sum(item.line_total for item in self.items)
        if expected != self.total_amount:
            raise ValueError(
                f"totalAmount {self.total_amount} does not match line items total {expected}"
            )
        return self


class OrderItemResponse(CamelModel):
    id: int
    menu_item_id: int
    quantity: int
    price: int


class ProgressStepResponse(CamelModel):
    step: str
    complete: bool


class OrderResponse(CamelModel):
    """Order with its derived tracking values."""
    id: int
    restaurant_id: int
    table_id: int
    restaurant_order_number: int
    status: OrderStatus
    total_amount: int
    payment_method: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []
    estimated_wait_minutes: int = 0
    progress: float = 0.0
    steps: List[ProgressStepResponse] = []

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        response = cls.model_validate(order)
        derived = describe_progress(order.status)
        return response.model_copy(update={
            "estimated_wait_minutes": derived["estimated_wait_minutes"],
            "progress": derived["progress"],
            "steps": [ProgressStepResponse(**step) for step in derived["steps"]],
        })


class OrderListResponse(CamelModel):
    total: int
    orders: List[OrderResponse]


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class OrderAnalyticsResponse(CamelModel):
    restaurant_id: Optional[int] = None
    total_orders: int
    pending_orders: int
    preparing_orders: int
    ready_orders: int
    total_revenue: int
    average_order_value: float
    today_orders: int
    today_revenue: int


# =============================================================================
# CHEF PERFORMANCE
# =============================================================================

class CompleteOrderRequest(CamelModel):
    order_id: int
    completion_time: int = Field(..., ge=0, description="Seconds from acceptance to ready")


class ChefPerformanceResponse(CamelModel):
    user_id: int
    restaurant_id: int
    username: Optional[str] = None
    orders_completed: int
    average_order_time: float
    fastest_order_time: Optional[int] = None
    daily_streak: int
    last_session_date: Optional[date] = None
    points: int
    level: int
    level_progress: int = 0
    achievements: List[str] = []

    @classmethod
    def from_record(cls, record, username: Optional[str] = None, **extra):
        data = ChefPerformanceResponse.model_validate(record).model_dump()
        data.update(username=username, level_progress=record.points % 100, **extra)
        return cls(**data)


class CompletionResponse(ChefPerformanceResponse):
    points_earned: int = 0
    rank: Optional[int] = None
    new_achievements: List[str] = []


class LeaderboardEntryResponse(ChefPerformanceResponse):
    rank: int


class AchievementResponse(CamelModel):
    id: str
    title: str
    description: str


# =============================================================================
# MISC
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    notification_service: str
    timestamp: datetime
