"""
Mock Notification Service

Simulates WhatsApp sending for development.
No actual messages are sent - just logged.

Version: 1.0.0
"""

import asyncio
import random
import uuid
import logging

from qrdine.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    normalize_phone,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development."""

    def __init__(self, failure_rate: float = 0.05, latency: tuple = (0.1, 0.3)):
        self.failure_rate = failure_rate
        self.latency = latency
        self.sent: list[tuple[str, str]] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        """Simulate network latency."""
        await asyncio.sleep(random.uniform(*self.latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Simulate sending a WhatsApp message."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock WhatsApp failed (simulated) to {to_phone}")
            return NotificationResult(
                success=False,
                error_message="Simulated WhatsApp failure",
                provider="mock"
            )

        message_id = f"wa_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append((normalize_phone(to_phone), message))
        logger.info(f"Mock WhatsApp sent to {to_phone}: {message[:50]}... (ID: {message_id})")

        return NotificationResult(
            success=True,
            message_id=message_id,
            provider="mock"
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
