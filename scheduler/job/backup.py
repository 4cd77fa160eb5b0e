"""데이터베이스 백업 잡"""

import asyncio
import logging

from scheduler.registry import job

logger = logging.getLogger(__name__)


@job("backup", "0 3 * * *", "Create database backups")
async def backup() -> None:
    logger.info("Creating database backup")
    await asyncio.sleep(0)
