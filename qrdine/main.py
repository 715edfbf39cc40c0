"""
FastAPI Application Entry Point

QR Dine - table ordering and kitchen gamification API.

Endpoints:
    - /api/restaurants, /api/menu: restaurant, table and menu management
    - POST /api/orders: Order placement from a table
    - GET /api/orders/{id}: Order tracking with progress data
    - PUT /api/orders/{id}/status: Kitchen status updates
    - POST /api/chef/{user_id}/complete-order: Chef scoring
    - GET /api/restaurant/{id}/leaderboard: Chef leaderboard
    - GET /health: System health check

Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
import redis

from qrdine.core.config import get_settings, setup_logging
from qrdine.core.exceptions import NotFoundError, QRDineError, ValidationError
from qrdine.database import get_db, init_db, engine
from qrdine.models import OrderStatus, User, UserRole
from qrdine.schemas import (
    AchievementResponse,
    ChefPerformanceResponse,
    CompleteOrderRequest,
    CompletionResponse,
    ErrorResponse,
    HealthResponse,
    LeaderboardEntryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    OrderAnalyticsResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    RestaurantCreate,
    RestaurantResponse,
    TableCreate,
    TableResponse,
)
from qrdine.services import orders as order_service
from qrdine.services import restaurants as restaurant_service
from qrdine.services.achievements import catalog
from qrdine.services.leaderboard import get_leaderboard, get_rank
from qrdine.services.notifications import get_notification_service
from qrdine.services.performance import ChefPerformanceEngine
from qrdine.tasks import send_order_status_notification

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

NOTIFY_STATUSES = (OrderStatus.PREPARING, OrderStatus.READY)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    notification_service = get_notification_service()
    logger.info(f"Notification Service: {notification_service.provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Missing or invalid config: {missing}")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "QR code table ordering with live order tracking and "
        "gamified kitchen performance."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def queue_status_notification(order) -> None:
    """Queue a WhatsApp update for the customer, if there is one to send."""
    if order.status not in NOTIFY_STATUSES or not order.customer_phone:
        return
    try:
        send_order_status_notification.delay({
            "order_id": order.id,
            "order_number": order.restaurant_order_number,
            "status": order.status.value,
            "customer_phone": order.customer_phone,
            "customer_name": order.customer_name,
        })
    except Exception as e:
        # The status change is already committed; a broker outage only costs the message
        logger.error(f"Could not queue notification for order #{order.id}: {e}")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    notification_service = get_notification_service()
    notification_status = "healthy" if await notification_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        notification_service=notification_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# RESTAURANT / TABLE / MENU ENDPOINTS
# =============================================================================

@app.get("/api/restaurants", response_model=list[RestaurantResponse], tags=["Restaurants"])
async def list_restaurants(db: AsyncSession = Depends(get_db)) -> list[RestaurantResponse]:
    restaurants = await restaurant_service.list_restaurants(db)
    return [RestaurantResponse.model_validate(r) for r in restaurants]


@app.post(
    "/api/restaurants",
    response_model=RestaurantResponse,
    status_code=201,
    tags=["Restaurants"],
)
async def create_restaurant(
    data: RestaurantCreate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = await restaurant_service.create_restaurant(db, data)
    return RestaurantResponse.model_validate(restaurant)


@app.get(
    "/api/restaurants/{restaurant_id}",
    response_model=RestaurantResponse,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def get_restaurant(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = await restaurant_service.get_restaurant(db, restaurant_id)
    return RestaurantResponse.model_validate(restaurant)


@app.get(
    "/api/restaurants/{restaurant_id}/tables",
    response_model=list[TableResponse],
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def list_tables(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> list[TableResponse]:
    tables = await restaurant_service.list_tables(db, restaurant_id)
    return [TableResponse.model_validate(t) for t in tables]


@app.post(
    "/api/restaurants/{restaurant_id}/tables",
    response_model=TableResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def create_table(
    restaurant_id: int,
    data: TableCreate,
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    table = await restaurant_service.create_table(db, restaurant_id, data)
    return TableResponse.model_validate(table)


@app.get("/api/menu", response_model=list[MenuItemResponse], tags=["Menu"])
async def list_menu(
    restaurant_id: int = Query(..., alias="restaurantId"),
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    """Active menu items of a restaurant, grouped by category."""
    items = await restaurant_service.list_menu(db, restaurant_id, category=category)
    return [MenuItemResponse.model_validate(item) for item in items]


@app.post(
    "/api/menu",
    response_model=MenuItemResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_menu_item(
    data: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await restaurant_service.create_menu_item(db, data)
    return MenuItemResponse.model_validate(item)


@app.put(
    "/api/menu/{item_id}",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def update_menu_item(
    item_id: int,
    data: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    """Edit a menu item; only the fields sent are changed."""
    item = await restaurant_service.update_menu_item(db, item_id, data)
    return MenuItemResponse.model_validate(item)


@app.put(
    "/api/menu/{item_id}/toggle-active",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def toggle_menu_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await restaurant_service.toggle_menu_item(db, item_id)
    return MenuItemResponse.model_validate(item)


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """
    Place an order from a table.

    totalAmount must equal the sum of price x quantity over items; the
    item prices are stored as submitted.
    """
    logger.info(
        f"Creating order for restaurant #{order_data.restaurant_id}, "
        f"table #{order_data.table_id} ({len(order_data.items)} items)"
    )
    order = await order_service.create_order(db, order_data)
    return OrderResponse.from_order(order)


@app.get(
    "/api/orders/analytics",
    response_model=OrderAnalyticsResponse,
    tags=["Orders"],
)
async def order_analytics(
    restaurant_id: Optional[int] = Query(None, alias="restaurantId"),
    db: AsyncSession = Depends(get_db),
) -> OrderAnalyticsResponse:
    """Aggregated order statistics for the admin dashboard."""
    data = await order_service.order_analytics(db, restaurant_id)
    return OrderAnalyticsResponse(**data)


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    restaurant_id: Optional[int] = Query(None, alias="restaurantId"),
    status: Optional[OrderStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Paginated orders, newest first."""
    total, orders = await order_service.list_orders(
        db, restaurant_id=restaurant_id, status=status, skip=skip, limit=limit
    )
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.from_order(order) for order in orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Order with estimated wait, progress and tracker steps."""
    order = await order_service.get_order(db, order_id)
    return OrderResponse.from_order(order)


@app.put(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Advance an order; only forward moves are accepted."""
    order = await order_service.update_order_status(db, order_id, update.status)
    queue_status_notification(order)
    return OrderResponse.from_order(order)


@app.get(
    "/api/customer/orders/phone/{phone_number}",
    response_model=list[OrderResponse],
    tags=["Orders"],
)
async def orders_by_phone(
    phone_number: str,
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    """Order history for a verified customer phone number."""
    orders = await order_service.list_orders_by_phone(db, phone_number)
    return [OrderResponse.from_order(order) for order in orders]


# =============================================================================
# CHEF PERFORMANCE ENDPOINTS
# =============================================================================

@app.post(
    "/api/chef/{user_id}/complete-order",
    response_model=CompletionResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def complete_order(
    user_id: int,
    body: CompleteOrderRequest,
    db: AsyncSession = Depends(get_db),
) -> CompletionResponse:
    """
    Score a completed order for a chef.

    Completing the same order twice answers 409 and leaves the chef's
    stats untouched.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"Chef #{user_id} not found")

    if user.role != UserRole.CHEF or user.restaurant_id is None:
        raise ValidationError(f"User #{user_id} is not a restaurant chef")

    result = await ChefPerformanceEngine(db).complete_order(
        user_id=user_id,
        restaurant_id=user.restaurant_id,
        order_id=body.order_id,
        completion_time=body.completion_time,
    )
    rank = await get_rank(db, result.record)

    return CompletionResponse.from_record(
        result.record,
        username=user.username,
        points_earned=result.points_earned,
        rank=rank,
        new_achievements=result.new_achievements,
    )


@app.get(
    "/api/chef/performance/{user_id}",
    response_model=ChefPerformanceResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def chef_performance(
    user_id: int,
    db: AsyncSession = Depends(get_db),
) -> ChefPerformanceResponse:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"Chef #{user_id} not found")
    record = await ChefPerformanceEngine(db).get_performance(user_id, user.restaurant_id)
    return ChefPerformanceResponse.from_record(record, username=user.username)


@app.get(
    "/api/restaurant/{restaurant_id}/leaderboard",
    response_model=list[LeaderboardEntryResponse],
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def leaderboard(
    restaurant_id: int,
    limit: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[LeaderboardEntryResponse]:
    """Chefs ranked by points, then orders completed."""
    entries = await get_leaderboard(db, restaurant_id, limit)
    return [
        LeaderboardEntryResponse.from_record(entry.record, username=entry.username, rank=entry.rank)
        for entry in entries
    ]


@app.get("/api/achievements", response_model=list[AchievementResponse], tags=["Kitchen"])
async def achievements() -> list[AchievementResponse]:
    return [AchievementResponse(**entry) for entry in catalog()]


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(QRDineError)
async def domain_exception_handler(request: Request, exc: QRDineError) -> JSONResponse:
    """Render domain errors with their own status code."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
