"""
잡 실행기 모듈

TimerEngine(정기 실행)과 수동 실행이 같은 경로로 잡 한 건을 실행합니다.

상태 전이:
    idle/success/error --(enabled)--> running --(task 성공)--> success
                                      running --(task 실패)--> error
    (disabled) -> 변경 없음, 실행 이력 없음

같은 잡의 동시 실행은 기본적으로 막지 않습니다(allow_overlap=True).
겹친 실행은 jobs 레코드를 나중에 쓴 쪽이 덮어쓰고, 실행 이력은 둘 다 남습니다.
"""

import logging
import time
from datetime import datetime, timezone, tzinfo
from typing import Awaitable, Callable

from common.logging import job_context
from scheduler.estimator import estimate_next_run
from scheduler.exception import (
    JobAlreadyRunningError,
    JobNotFoundError,
    PersistenceError,
    TaskFailureError,
)
from scheduler.model import ExecutionResult, JobRecord, JobStatus, LogStatus, Outcome, Trigger
from scheduler.registry import JobDefinition, JobRegistry
from scheduler.repository import JobRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Executor:
    """잡 실행기"""

    def __init__(
        self,
        registry: JobRegistry,
        repository: JobRepository,
        *,
        clock: Clock | None = None,
        tz: tzinfo = timezone.utc,
        allow_overlap: bool = True,
    ):
        self._registry = registry
        self._repository = repository
        self._clock = clock or utcnow
        self._tz = tz
        self._allow_overlap = allow_overlap
        self._inflight: dict[str, int] = {}

    async def execute(self, job_name: str, trigger: Trigger = Trigger.SCHEDULED) -> ExecutionResult:
        """
        잡 1회 실행

        Args:
            job_name: 레지스트리에 등록된 잡 이름
            trigger: SCHEDULED(타이머) 또는 MANUAL(운영자)

        Returns:
            ExecutionResult

        Raises:
            JobNotFoundError: 레지스트리 또는 저장소에 잡이 없음 (저장소 쓰기 없음)
            TaskFailureError: MANUAL 실행에서 잡 본문이 실패한 경우
            JobAlreadyRunningError: MANUAL 실행이고 allow_overlap=False인데 이미 실행 중
            PersistenceError: MANUAL 실행에서 상태 조회 실패 (잡 본문은 실행하지 않음)
        """
        definition = self._registry.get(job_name)

        # 1. 현재 상태 조회
        try:
            record = await self._repository.find_by_name(job_name)
        except PersistenceError as e:
            logger.error(f"Failed to load job record, skipping execution: job={job_name}, error={e}")
            if trigger == Trigger.MANUAL:
                raise
            return ExecutionResult(
                job_name=job_name, trigger=trigger, outcome=Outcome.SKIPPED, recorded=False
            )

        if record is None:
            raise JobNotFoundError(job_name)

        # 2. 활성화 확인 (락 없이 조회 시점 값 기준)
        if not record.is_enabled:
            logger.info(f"Job {job_name} is disabled, skipping")
            return ExecutionResult(job_name=job_name, trigger=trigger, outcome=Outcome.SKIPPED)

        # 3. 같은 잡 중복 실행 감지
        running = self._inflight.get(job_name, 0)
        if running:
            logger.warning(
                f"Overlap detected: job={job_name}, trigger={trigger.value}, in_flight={running}"
            )
            if not self._allow_overlap:
                if trigger == Trigger.MANUAL:
                    raise JobAlreadyRunningError(job_name)
                logger.info(f"Job {job_name} is still running, skipping scheduled run")
                return ExecutionResult(job_name=job_name, trigger=trigger, outcome=Outcome.SKIPPED)

        self._inflight[job_name] = running + 1
        try:
            with job_context(job_name, trigger.value):
                return await self._run(definition, record, trigger)
        finally:
            remaining = self._inflight.get(job_name, 1) - 1
            if remaining > 0:
                self._inflight[job_name] = remaining
            else:
                self._inflight.pop(job_name, None)

    async def _run(self, definition: JobDefinition, record: JobRecord, trigger: Trigger) -> ExecutionResult:
        job_name = definition.name
        started = time.perf_counter()

        recorded = await self._persist(
            job_name, "mark running",
            lambda: self._repository.update_status(job_name, JobStatus.RUNNING, last_run=self._clock()),
        )

        logger.info(f"Starting job: {job_name} (trigger={trigger.value})")

        try:
            await definition.task()
        except Exception as e:
            duration_ms = self._elapsed_ms(started)
            message = str(e) or e.__class__.__name__

            recorded &= await self._finish(record, definition, LogStatus.ERROR, duration_ms, message)
            logger.error(f"Job failed: {job_name} ({duration_ms}ms): {message}")

            result = ExecutionResult(
                job_name=job_name,
                trigger=trigger,
                outcome=Outcome.ERROR,
                duration_ms=duration_ms,
                error=message,
                recorded=recorded,
            )
            if trigger == Trigger.MANUAL:
                raise TaskFailureError(job_name, message, result) from e
            return result

        duration_ms = self._elapsed_ms(started)
        recorded &= await self._finish(record, definition, LogStatus.SUCCESS, duration_ms, None)
        logger.info(f"Job completed successfully: {job_name} ({duration_ms}ms)")

        return ExecutionResult(
            job_name=job_name,
            trigger=trigger,
            outcome=Outcome.SUCCESS,
            duration_ms=duration_ms,
            recorded=recorded,
        )

    async def _finish(
        self,
        record: JobRecord,
        definition: JobDefinition,
        status: LogStatus,
        duration_ms: int,
        error: str | None,
    ) -> bool:
        """최종 상태 기록 후 실행 이력 추가 (순서 유지)"""
        job_status = JobStatus.SUCCESS if status == LogStatus.SUCCESS else JobStatus.ERROR
        next_run = self._estimate_next_run(definition)

        status_ok = await self._persist(
            definition.name, f"mark {job_status.value}",
            lambda: self._repository.update_status(
                definition.name, job_status, next_run=next_run, last_error=error
            ),
        )
        log_ok = await self._persist(
            definition.name, "append log",
            lambda: self._repository.append_log(
                record.id, status, duration_ms, created_at=self._clock(), error=error
            ),
        )
        return status_ok and log_ok

    async def _persist(self, job_name: str, action: str, operation: Callable[[], Awaitable]) -> bool:
        """저장소 쓰기 (실패해도 실행은 계속)"""
        try:
            await operation()
            return True
        except PersistenceError as e:
            logger.error(f"Failed to {action} for job {job_name}: {e}")
        except Exception as e:
            logger.error(f"Unexpected repository error ({action}) for job {job_name}: {e}", exc_info=True)
        return False

    def _estimate_next_run(self, definition: JobDefinition) -> datetime:
        estimate = estimate_next_run(definition.schedule, self._clock().astimezone(self._tz))
        if estimate.fallback:
            logger.warning(
                f"Failed to parse cron expression '{definition.schedule}' for job "
                f"{definition.name} ({estimate.reason}), using default"
            )
        return estimate.run_at

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return max(0, int((time.perf_counter() - started) * 1000))

    def inflight_count(self, job_name: str) -> int:
        """현재 실행 중인 같은 잡 수"""
        return self._inflight.get(job_name, 0)
