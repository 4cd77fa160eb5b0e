"""
Scheduler: 잡 스케줄러 퍼사드 모듈

레지스트리의 잡을 저장소에 등록하고 타이머를 걸며,
운영자 요청(즉시 실행, 상태/이력 조회, 활성화 변경)을 처리합니다.

실행 방법:
    python -m scheduler.main
    python main.py scheduler
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo

from database.registry import DatabaseRegistry
from scheduler.exception import JobNotFoundError, PersistenceError
from scheduler.executor import Executor
from scheduler.model import ExecutionResult, JobLogEntry, JobSummary, SchedulerConfig, Trigger
from scheduler.registry import JobRegistry
from scheduler.repository import InMemoryJobRepository, JobRepository, SQLiteJobRepository
from scheduler.timer import TimerEngine

logger = logging.getLogger(__name__)


class Scheduler:
    """
    잡 스케줄러

    initialize() 이후 enable_jobs=True면 잡마다 타이머가 돌고,
    False면 아무 것도 등록하지 않습니다 (API 조회/수동 실행은 그대로 동작).
    """

    def __init__(
        self,
        registry: JobRegistry,
        repository: JobRepository,
        config: SchedulerConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self._config = config or SchedulerConfig()
        self._registry = registry
        self._repository = repository
        self._tz = ZoneInfo(self._config.timezone)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._executor = Executor(
            registry,
            repository,
            clock=self._clock,
            tz=self._tz,
            allow_overlap=self._config.allow_overlap,
        )
        self._timer = TimerEngine(self._run_scheduled, tz=self._tz, clock=self._clock)
        self._running = False

    async def initialize(self) -> None:
        """잡 레코드 등록 및 타이머 시작"""
        if self._running:
            logger.warning("Job scheduler is already initialized")
            return

        logger.info("Initializing job scheduler...")

        if not self._config.enable_jobs:
            logger.info("Job scheduling is disabled (set ENABLE_JOBS=true to enable)")
            return

        for definition in self._registry:
            try:
                _, created = await self._repository.upsert_definition(definition.name)
                if created:
                    logger.info(f"Initialized job: {definition.name}")
            except PersistenceError as e:
                # 레코드가 없어도 타이머는 등록 (실행 시 not found로 기록됨)
                logger.error(f"Failed to initialize job record '{definition.name}': {e}")

        handles = self._timer.schedule_all(self._registry)
        for handle in handles:
            logger.info(f"Scheduled job: {handle.job_name} ({handle.definition.schedule})")

        self._running = True
        logger.info(
            f"Job scheduler initialized successfully "
            f"({len(handles)}/{len(self._registry)} jobs, timezone={self._config.timezone})"
        )

    async def stop(self) -> None:
        """타이머 해제 (실행 중인 잡은 끝까지 진행)"""
        logger.info("Stopping job scheduler...")

        handles = self._timer.cancel_all()
        for handle in handles:
            logger.info(f"Stopped job: {handle.job_name}")

        # 타이머 루프 종료 대기 (잡 실행 태스크와는 별개)
        timer_tasks = [h.task for h in handles if h.task is not None]
        if timer_tasks:
            await asyncio.gather(*timer_tasks, return_exceptions=True)

        self._running = False
        logger.info("Job scheduler stopped")

    async def shutdown(self) -> None:
        """stop() 후 실행 중인 잡 완료 대기 (프로세스 종료용)"""
        await self.stop()
        await self._timer.wait_inflight(self._config.shutdown_timeout_seconds)

    async def run_job_now(self, job_name: str) -> ExecutionResult:
        """
        즉시 실행 (enable_jobs와 무관)

        Raises:
            JobNotFoundError: 등록되지 않은 잡
            TaskFailureError: 잡 본문 실패
            JobAlreadyRunningError: allow_overlap=False이고 실행 중
            PersistenceError: 잡 상태 조회 실패
        """
        self._registry.get(job_name)
        logger.info(f"Manual trigger for job: {job_name}")
        return await self._executor.execute(job_name, Trigger.MANUAL)

    async def get_job_statuses(self) -> list[JobSummary]:
        """모든 잡 상태 + 최근 실행 이력"""
        summaries = await self._repository.list_with_recent_logs(self._config.recent_logs_limit)

        result = []
        for summary in summaries:
            if summary.job_name in self._registry:
                definition = self._registry.get(summary.job_name)
                summary = summary.model_copy(
                    update={"schedule": definition.schedule, "description": definition.description}
                )
            result.append(summary)
        return result

    async def get_job_logs(self, job_name: str, limit: int | None = None) -> list[JobLogEntry]:
        """
        잡 실행 이력 (최신순)

        Args:
            limit: 최대 개수 (None이면 default_logs_limit)

        Raises:
            ValueError: limit이 1 미만
            JobNotFoundError: 레코드가 없는 잡
        """
        if limit is None:
            limit = self._config.default_logs_limit
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        return await self._repository.list_logs(job_name, limit)

    async def enable_job(self, job_name: str) -> None:
        await self._set_enabled(job_name, True)

    async def disable_job(self, job_name: str) -> None:
        await self._set_enabled(job_name, False)

    async def _set_enabled(self, job_name: str, enabled: bool) -> None:
        # 타이머는 유지, 다음 틱에서 실행기가 플래그를 확인
        updated = await self._repository.set_enabled(job_name, enabled)
        if not updated:
            raise JobNotFoundError(job_name)
        logger.info(f"Job {'enabled' if enabled else 'disabled'}: {job_name}")

    async def _run_scheduled(self, job_name: str) -> None:
        await self._executor.execute(job_name, Trigger.SCHEDULED)

    async def ping(self) -> None:
        """저장소 연결 확인"""
        await self._repository.ping()

    @property
    def is_running(self) -> bool:
        """타이머 동작 여부"""
        return self._running

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def timer(self) -> TimerEngine:
        return self._timer

    @property
    def executor(self) -> Executor:
        return self._executor


async def create_scheduler(config: dict[str, Any]) -> Scheduler:
    """
    설정으로 Scheduler 생성 (저장소가 sqlite면 DB 초기화 포함)

    Args:
        config: database.yaml / scheduler.yaml을 합친 설정
    """
    scheduler_config = SchedulerConfig.from_config(config)

    repository: JobRepository
    if scheduler_config.repository == "memory":
        repository = InMemoryJobRepository()
    else:
        await DatabaseRegistry.init_from_config(config, [scheduler_config.database])
        DatabaseRegistry.set_default(scheduler_config.database)
        repository = SQLiteJobRepository()

    return Scheduler(JobRegistry.default(), repository, scheduler_config)


if __name__ == "__main__":
    import signal

    from common.config import load_config
    from common.logging import setup_logging

    async def main():
        # 설정 로드 (프로젝트 루트 기준)
        config = load_config(Path(__file__).parent.parent / "config")

        logging_config = config.get("logging", {})
        setup_logging(
            level=logging_config.get("level", "INFO"),
            json_format=logging_config.get("json_format", False),
        )

        scheduler = await create_scheduler(config)
        stop_event = asyncio.Event()

        # Graceful Shutdown 시그널 핸들러
        loop = asyncio.get_running_loop()

        def signal_handler():
            logger.info("Received shutdown signal")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        try:
            await scheduler.initialize()
            await stop_event.wait()
        finally:
            await scheduler.shutdown()
            await DatabaseRegistry.close_all()

    asyncio.run(main())
