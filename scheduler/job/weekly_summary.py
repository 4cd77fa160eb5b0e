"""주간 수익 요약 잡"""

import asyncio
import logging

from scheduler.registry import job

logger = logging.getLogger(__name__)


@job("weekly-summary", "0 8 * * 1", "Calculate and send weekly earnings summaries")
async def weekly_summary() -> None:
    # 매주 월요일 08:00
    logger.info("Sending weekly earnings summaries")
    await asyncio.sleep(0)
