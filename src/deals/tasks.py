"""Celery tasks for the deals module."""
from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def close_expired_deals():
    """
    Run every minute (Celery Beat).
    Settle ACTIVE deals whose end time has passed.
    """
    from deals.services import close_expired_deals as _close_expired_deals

    closed = _close_expired_deals()
    if closed:
        logger.info("Closed %d expired deals", closed)
    return closed
