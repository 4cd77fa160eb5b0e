"""청구서 결제 알림 잡"""

import asyncio
import logging

from scheduler.registry import job

logger = logging.getLogger(__name__)


@job("invoice-reminder", "0 9 * * *", "Send invoice payment reminders")
async def invoice_reminder() -> None:
    logger.info("Sending invoice payment reminders")
    await asyncio.sleep(0)
