"""
메모리 잡 저장소

SQLite 저장소와 같은 계약을 dict로 구현합니다. 테스트와 DB 없는 실행(repository: memory)에 사용합니다.
"""

import itertools
from datetime import datetime

from scheduler.exception import JobNotFoundError
from scheduler.model import JobLogEntry, JobRecord, JobStatus, JobSummary, LogStatus
from scheduler.repository.base import JobRepository


class InMemoryJobRepository(JobRepository):
    """프로세스 메모리에 잡 상태와 실행 이력을 보관"""

    def __init__(self):
        self._jobs: dict[str, JobRecord] = {}
        self._logs: list[JobLogEntry] = []
        self._job_ids = itertools.count(1)
        self._log_ids = itertools.count(1)

    async def find_by_name(self, job_name: str) -> JobRecord | None:
        record = self._jobs.get(job_name)
        return record.model_copy() if record else None

    async def upsert_definition(self, job_name: str) -> tuple[JobRecord, bool]:
        if job_name in self._jobs:
            return self._jobs[job_name].model_copy(), False
        record = JobRecord(id=next(self._job_ids), job_name=job_name)
        self._jobs[job_name] = record
        return record.model_copy(), True

    async def update_status(
        self,
        job_name: str,
        status: JobStatus,
        *,
        last_run: datetime | None = None,
        next_run: datetime | None = None,
        last_error: str | None = None,
    ) -> None:
        record = self._jobs.get(job_name)
        if record is None:
            return

        changes: dict = {'status': status}
        if last_run is not None:
            changes['last_run'] = last_run
        if next_run is not None:
            changes['next_run'] = next_run
        if status != JobStatus.RUNNING:
            changes['last_error'] = last_error
        self._jobs[job_name] = record.model_copy(update=changes)

    async def set_enabled(self, job_name: str, enabled: bool) -> bool:
        record = self._jobs.get(job_name)
        if record is None:
            return False
        self._jobs[job_name] = record.model_copy(update={'is_enabled': enabled})
        return True

    async def append_log(
        self,
        job_id: int,
        status: LogStatus,
        duration_ms: int,
        created_at: datetime,
        error: str | None = None,
    ) -> JobLogEntry:
        entry = JobLogEntry(
            id=next(self._log_ids),
            job_id=job_id,
            status=status,
            duration_ms=duration_ms,
            error=error,
            created_at=created_at,
        )
        self._logs.append(entry)
        return entry

    def _logs_for(self, job_id: int, limit: int) -> list[JobLogEntry]:
        entries = [e for e in self._logs if e.job_id == job_id]
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return entries[:limit]

    async def list_with_recent_logs(self, limit: int = 5) -> list[JobSummary]:
        records = sorted(self._jobs.values(), key=lambda r: r.id)
        return [
            JobSummary(**record.model_dump(), recent_logs=self._logs_for(record.id, limit))
            for record in records
        ]

    async def list_logs(self, job_name: str, limit: int) -> list[JobLogEntry]:
        record = self._jobs.get(job_name)
        if record is None:
            raise JobNotFoundError(job_name)
        return self._logs_for(record.id, limit)
