"""
Celery Tasks
Background customer notifications, kept off the request path.
"""

import asyncio
import logging
import time
from datetime import datetime

from qrdine.celery_worker import celery_app
from qrdine.models import OrderStatus
from qrdine.services.notifications import get_notification_service

logger = logging.getLogger(__name__)


class NotificationFailed(Exception):
    """Provider reported a failed send; raised so Celery retries."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationFailed,),
    retry_backoff=True
)
def send_order_status_notification(self, payload: dict) -> dict:
    """
    WhatsApp the customer that their order changed status.

    Args:
        payload: order_id, order_number, status, customer_phone, customer_name

    Returns:
        dict: NotificationResult fields plus task bookkeeping
    """
    task_id = self.request.id
    order_id = payload.get('order_id', 'unknown')
    start_time = time.time()

    logger.info(f"Task {task_id}: notifying customer of order #{order_id} ({payload.get('status')})")

    service = get_notification_service()
    result = asyncio.run(service.send_order_status_update(
        order_number=payload['order_number'],
        status=OrderStatus(payload['status']),
        customer_phone=payload['customer_phone'],
        customer_name=payload.get('customer_name'),
    ))

    elapsed = round(time.time() - start_time, 3)
    if not result.success:
        logger.warning(f"Task {task_id}: order #{order_id} notification failed - {result.error_message}")
        raise NotificationFailed(result.error_message or "notification failed")

    logger.info(f"Task {task_id}: order #{order_id} notified in {elapsed}s")
    return {
        **result.to_dict(),
        'task_id': task_id,
        'processing_time_seconds': elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
