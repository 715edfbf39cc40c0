"""
Notification Service Abstract Base Class

Defines the interface for customer WhatsApp notifications about order
status. Supports both Mock (development) and Twilio (production)
implementations.

Version: 1.0.0
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from qrdine.models import OrderStatus


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message_id": self.message_id,
            "error_message": self.error_message,
            "provider": self.provider,
        }


def normalize_phone(phone: str) -> str:
    """Digits only, with a leading + for E.164."""
    digits = re.sub(r"\D", "", phone)
    return f"+{digits}"


def build_status_message(
    status: OrderStatus,
    order_number: int,
    customer_name: Optional[str] = None,
) -> Optional[str]:
    """
    Customer-facing text for a status change.

    Returns None for statuses the customer is not notified about.
    """
    if status == OrderStatus.PREPARING:
        return f"Your order #{order_number} is now being prepared by our chef!"
    if status == OrderStatus.READY:
        greeting = f"Hi {customer_name}," if customer_name else "Hi,"
        return f"{greeting}\n\nYour order #{order_number} is ready, please collect your order."
    return None


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send a WhatsApp message."""
        pass

    async def send_order_status_update(
        self,
        order_number: int,
        status: OrderStatus,
        customer_phone: str,
        customer_name: Optional[str] = None,
    ) -> NotificationResult:
        """Tell the customer their order moved to status."""
        message = build_status_message(status, order_number, customer_name)
        if message is None:
            return NotificationResult(
                success=False,
                error_message=f"No customer notification for status '{status.value}'",
                provider=self.provider_name,
            )
        return await self.send_whatsapp(customer_phone, message)

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
