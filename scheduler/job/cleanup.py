"""오래된 로그 정리 / 데이터 보관 잡"""

import asyncio
import logging

from scheduler.registry import job

logger = logging.getLogger(__name__)


@job("cleanup", "0 2 * * 0", "Clean up old logs and archive data")
async def cleanup() -> None:
    # 매주 일요일 02:00
    logger.info("Cleaning up old logs and archiving data")
    await asyncio.sleep(0)
