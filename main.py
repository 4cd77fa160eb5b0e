"""
통합 진입점

잡 스케줄러와 Admin API를 한 프로세스에서 실행합니다.
두 모듈은 같은 Scheduler 인스턴스를 공유합니다.

사용법:
    python main.py                  # 전체 실행
    python main.py scheduler        # 스케줄러만 (타이머)
    python main.py admin            # Admin API만 (타이머 없이 조회/수동 실행)
    ENABLE_JOBS=true python main.py # 타이머 활성화
"""

import sys
import os

# Windows 인코딩 설정 (cp949 -> UTF-8)
if sys.platform == "win32":
    os.environ["PYTHONUTF8"] = "1"

import asyncio
import signal
import logging

from common.config import load_config
from common.logging import setup_logging
from database.registry import DatabaseRegistry
from scheduler import Scheduler, create_scheduler

logger = logging.getLogger(__name__)


async def run_scheduler(scheduler: Scheduler, stop_event: asyncio.Event):
    """스케줄러 실행 (stop_event까지 대기 후 graceful shutdown)"""
    await scheduler.initialize()
    try:
        await stop_event.wait()
    finally:
        await scheduler.shutdown()


async def run_admin(config: dict, scheduler: Scheduler, stop_event: asyncio.Event):
    """Admin API 실행"""
    import uvicorn
    from admin.main import create_app
    from admin.api.model.config import AdminConfig

    admin_config = AdminConfig.from_config(config)
    uv_config = uvicorn.Config(
        create_app(scheduler=scheduler, config=config),
        host=admin_config.host,
        port=admin_config.port,
        log_level="info",
        log_config=None,
    )
    server = uvicorn.Server(uv_config)

    async def wait_stop():
        await stop_event.wait()
        server.should_exit = True

    asyncio.create_task(wait_stop())
    await server.serve()


async def main(modules: list[str]):
    """메인 함수"""
    config = load_config()

    # 로깅 설정
    logging_config = config.get("logging", {})
    setup_logging(
        level=logging_config.get("level", "INFO"),
        json_format=logging_config.get("json_format", True),
        log_file=logging_config.get("log_file"),
    )

    scheduler = await create_scheduler(config)

    # 종료 이벤트
    stop_event = asyncio.Event()

    # 시그널 핸들러
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    # Windows는 add_signal_handler를 지원하지 않음
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

    # 태스크 생성
    tasks = []
    if "scheduler" in modules:
        tasks.append(asyncio.create_task(run_scheduler(scheduler, stop_event)))
        logger.info("Scheduler started")
    if "admin" in modules:
        tasks.append(asyncio.create_task(run_admin(config, scheduler, stop_event)))
        logger.info("Admin API started")

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled")
    finally:
        await DatabaseRegistry.close_all()
        logger.info("All modules stopped")


if __name__ == "__main__":
    # 인자 파싱
    args = sys.argv[1:]
    valid_modules = {"scheduler", "admin"}

    if args:
        modules = [m for m in args if m in valid_modules]
        if not modules:
            print("Usage: python main.py [scheduler] [admin]")
            sys.exit(1)
    else:
        modules = ["scheduler", "admin"]

    print(f"Starting job scheduler: {', '.join(modules)}")
    try:
        asyncio.run(main(modules))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
