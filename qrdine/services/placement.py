"""
Order Placement Client

Submits a customer's cart to POST /api/orders with bounded retries.

Behavior:
    - The cart is validated locally first; a bad cart raises
      ValidationError without touching the network
    - Up to placement_max_attempts submissions (default 5)
    - Any transport error, non-2xx status, non-JSON body or body without
      an "id" counts as a failed attempt
    - Before attempt n+1 the client waits n x placement_backoff_ms
      (800, 1600, 2400, 3200 ms with the defaults); there is no wait
      after the final attempt
    - When every attempt fails, OrderPlacementError carries the last error
      and a message fit for the customer

Nothing is changed locally until the server confirms the order; clearing
the cart is up to the caller.

Usage:
    async with httpx.AsyncClient(base_url=settings.api_base_url) as client:
        placer = OrderPlacementClient(client)
        placed = await placer.place_order(cart_payload)
        print(placed.order_id)

Version: 1.0.0
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from qrdine.core.config import get_settings
from qrdine.core.exceptions import OrderPlacementError, ValidationError
from qrdine.schemas import OrderCreate

logger = logging.getLogger(__name__)

ORDERS_PATH = "/api/orders"

SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass
class PlacedOrder:
    """Server-confirmed order."""
    order_id: int
    record: dict[str, Any]


class SubmissionFailed(Exception):
    """
    One submission attempt failed.

    Attributes:
        status_code: HTTP status, if a response was received
        server_message: "message" or "detail" from the error body, if any
    """

    def __init__(
        self,
        reason: str,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
    ):
        super().__init__(reason)
        self.status_code = status_code
        self.server_message = server_message


def validate_cart(payload: dict[str, Any]) -> OrderCreate:
    """
    Check a cart payload before submission.

    Raises:
        ValidationError: a required field is missing, the item list is
            empty, an item is malformed or totalAmount does not match
    """
    if not isinstance(payload, dict):
        raise ValidationError("Order payload must be an object")
    if payload.get("restaurantId", payload.get("restaurant_id")) is None:
        raise ValidationError("Restaurant ID is required for order placement")
    if payload.get("tableId", payload.get("table_id")) is None:
        raise ValidationError("Table ID is required for order placement")
    if not payload.get("items"):
        raise ValidationError("No items in cart")

    try:
        return OrderCreate.model_validate(payload)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'order'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValidationError(f"Invalid order: {problems}") from exc


class OrderPlacementClient:
    """
    Places orders against the ordering API.

    Args:
        client: httpx.AsyncClient whose base_url points at the API
        max_attempts: Submission attempts before giving up
        backoff_seconds: Backoff step; wait = attempt number x step
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        settings = get_settings()
        self.client = client
        self.max_attempts = max_attempts or settings.placement_max_attempts
        self.backoff_seconds = (
            backoff_seconds
            if backoff_seconds is not None
            else settings.placement_backoff_ms / 1000
        )
        self.timeout = settings.placement_timeout_seconds
        self._sleep = sleep

    async def place_order(self, payload: dict[str, Any]) -> PlacedOrder:
        """
        Validate and submit payload, retrying transient failures.

        Raises:
            ValidationError: payload rejected locally, nothing was sent
            OrderPlacementError: every attempt failed
        """
        order = validate_cart(payload)
        body = order.model_dump(mode="json", by_alias=True)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            logger.info(f"Attempt {attempt}/{self.max_attempts} to place order...")
            try:
                placed = await self._submit(body)
            except (httpx.HTTPError, SubmissionFailed) as exc:
                last_error = exc
                logger.warning(f"Order placement attempt {attempt} failed: {exc}")
            else:
                logger.info(f"Order #{placed.order_id} placed on attempt {attempt}")
                return placed

            if attempt < self.max_attempts:
                delay = attempt * self.backoff_seconds
                logger.info(f"Retrying order placement in {delay * 1000:.0f}ms...")
                await self._sleep(delay)

        logger.error(f"Order placement failed after {self.max_attempts} attempts: {last_error}")
        raise OrderPlacementError(
            _customer_message(last_error),
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error

    async def _submit(self, body: dict[str, Any]) -> PlacedOrder:
        response = await self.client.post(ORDERS_PATH, json=body, timeout=self.timeout)

        if not response.is_success:
            raise SubmissionFailed(
                f"Server responded with status {response.status_code}",
                status_code=response.status_code,
                server_message=_error_message(response),
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise SubmissionFailed(f"Error parsing server response: {exc}") from exc

        if not isinstance(data, dict) or data.get("id") is None:
            raise SubmissionFailed("Invalid order response format - missing order ID")

        return PlacedOrder(order_id=data["id"], record=data)


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message") or data.get("detail")
    return message if isinstance(message, str) else None


def _customer_message(error: Optional[Exception]) -> Optional[str]:
    """Server-supplied message if there is one; None selects the generic text."""
    if isinstance(error, SubmissionFailed) and error.server_message:
        return error.server_message
    return None
