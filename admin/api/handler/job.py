"""잡 제어 비즈니스 로직 핸들러"""

import logging

from admin.api.model.job import (
    JobLogResponse,
    JobStatusResponse,
    MessageResponse,
    RunJobResponse,
)
from scheduler import Scheduler
from scheduler.model import JobSummary

logger = logging.getLogger(__name__)


class JobHandler:
    """Scheduler 퍼사드를 API 응답 모델로 변환하는 핸들러"""

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler

    @staticmethod
    def _summary_to_response(summary: JobSummary) -> JobStatusResponse:
        return JobStatusResponse(
            name=summary.job_name,
            status=summary.status,
            is_enabled=summary.is_enabled,
            schedule=summary.schedule,
            description=summary.description,
            last_run=summary.last_run,
            next_run=summary.next_run,
            last_error=summary.last_error,
            recent_logs=[JobLogResponse.model_validate(log) for log in summary.recent_logs],
        )

    async def get_list(self) -> list[JobStatusResponse]:
        """모든 잡 상태 조회"""
        summaries = await self._scheduler.get_job_statuses()
        return [self._summary_to_response(s) for s in summaries]

    async def run(self, job_name: str) -> RunJobResponse:
        """
        즉시 실행

        Raises:
            JobNotFoundError, TaskFailureError, JobAlreadyRunningError, PersistenceError
        """
        result = await self._scheduler.run_job_now(job_name)
        return RunJobResponse(
            message=f"Job {job_name} triggered successfully",
            job_name=result.job_name,
            trigger=result.trigger,
            outcome=result.outcome,
            duration_ms=result.duration_ms,
            recorded=result.recorded,
        )

    async def get_logs(self, job_name: str, limit: int) -> list[JobLogResponse]:
        """실행 이력 조회 (최신순)"""
        logs = await self._scheduler.get_job_logs(job_name, limit)
        return [JobLogResponse.model_validate(log) for log in logs]

    async def enable(self, job_name: str) -> MessageResponse:
        await self._scheduler.enable_job(job_name)
        return MessageResponse(message=f"Job {job_name} enabled")

    async def disable(self, job_name: str) -> MessageResponse:
        await self._scheduler.disable_job(job_name)
        return MessageResponse(message=f"Job {job_name} disabled")
