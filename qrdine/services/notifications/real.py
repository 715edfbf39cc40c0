"""
Twilio Notification Service

Production implementation sending customer updates over WhatsApp
through the Twilio Messaging API.

Version: 1.0.0
"""

import logging

from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioException

from qrdine.core.config import get_settings
from qrdine.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    normalize_phone,
)

logger = logging.getLogger(__name__)


class TwilioNotificationService(BaseNotificationService):
    """Production notification service using Twilio WhatsApp."""

    def __init__(self):
        settings = get_settings()

        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token
            )
            self.from_number = settings.twilio_whatsapp_number
        else:
            self.twilio_client = None
            self.from_number = None
            logger.warning("Twilio credentials not configured")

        logger.info("TwilioNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "twilio"

    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send a WhatsApp message via Twilio."""
        if not self.twilio_client or not self.from_number:
            return NotificationResult(
                success=False,
                error_message="Twilio not configured",
                provider="twilio"
            )

        try:
            result = self.twilio_client.messages.create(
                body=message,
                from_=f"whatsapp:{normalize_phone(self.from_number)}",
                to=f"whatsapp:{normalize_phone(to_phone)}",
            )

            logger.info(f"WhatsApp sent to {to_phone}: {result.sid}")

            return NotificationResult(
                success=True,
                message_id=result.sid,
                provider="twilio"
            )

        except TwilioException as e:
            logger.error(f"Twilio error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="twilio"
            )

    async def health_check(self) -> bool:
        """Check the Twilio account is reachable."""
        if not self.twilio_client:
            return False
        try:
            self.twilio_client.api.v2010.accounts(self.twilio_client.username).fetch()
            return True
        except TwilioException as e:
            logger.error(f"Twilio health check failed: {e}")
            return False
