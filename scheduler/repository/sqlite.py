"""
SQLite 잡 저장소

aiosql로 scheduler/sql/jobs.sql을 로드하고, 메서드마다 하나의 트랜잭션에서 실행합니다.
목록 조회(접미사 없는 쿼리)는 aiosql이 async generator로 돌려주므로 async for로 읽습니다.
시각은 UTC ISO-8601 문자열로 저장하여 문자열 정렬이 시간 순서와 같도록 합니다.
"""

import functools
import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosql
from aiosql.queries import Queries

from database import (
    DatabaseError,
    get_connection,
    get_db,
    transactional,
    transactional_readonly,
)
from scheduler.exception import JobNotFoundError, PersistenceError
from scheduler.model import JobLogEntry, JobRecord, JobStatus, JobSummary, LogStatus
from scheduler.repository.base import JobRepository

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent.parent / 'sql' / 'jobs.sql'


def _to_db(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds')


def _utcnow() -> str:
    return _to_db(datetime.now(timezone.utc))


def _repository_operation(func):
    """DB 오류를 PersistenceError로 변환"""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except (DatabaseError, aiosql.SQLLoadException, aiosql.SQLParseException, RuntimeError) as e:
            raise PersistenceError(func.__name__, f"{func.__name__} failed: {e}") from e
    return wrapper


class SQLiteJobRepository(JobRepository):
    """SQLite(aiosqlite + aiosql) 기반 잡 저장소"""

    def __init__(self):
        self._queries = None

    def _get_queries(self) -> Queries:
        if self._queries is None:
            db = get_db()
            self._queries = db.get_queries('scheduler')
            if self._queries is None:
                self._queries = db.load_queries('scheduler', str(SQL_PATH))
        return self._queries

    @_repository_operation
    @transactional_readonly
    async def find_by_name(self, job_name: str) -> JobRecord | None:
        ctx = get_connection()
        row = await self._get_queries().get_job_by_name(ctx.connection, job_name=job_name)
        return JobRecord.model_validate(dict(row)) if row else None

    @_repository_operation
    @transactional
    async def upsert_definition(self, job_name: str) -> tuple[JobRecord, bool]:
        queries = self._get_queries()
        ctx = get_connection()

        affected = await queries.insert_job_if_absent(ctx.connection, job_name=job_name)
        row = await queries.get_job_by_name(ctx.connection, job_name=job_name)
        return JobRecord.model_validate(dict(row)), affected > 0

    @_repository_operation
    @transactional
    async def update_status(
        self,
        job_name: str,
        status: JobStatus,
        *,
        last_run: datetime | None = None,
        next_run: datetime | None = None,
        last_error: str | None = None,
    ) -> None:
        ctx = get_connection()
        affected = await self._get_queries().update_job_status(
            ctx.connection,
            job_name=job_name,
            status=status.value,
            last_run=_to_db(last_run),
            next_run=_to_db(next_run),
            last_error=last_error,
            updated_at=_utcnow(),
        )
        if affected == 0:
            logger.warning(f"Status update matched no job record: {job_name}")

    @_repository_operation
    @transactional
    async def set_enabled(self, job_name: str, enabled: bool) -> bool:
        ctx = get_connection()
        affected = await self._get_queries().set_job_enabled(
            ctx.connection,
            job_name=job_name,
            is_enabled=1 if enabled else 0,
            updated_at=_utcnow(),
        )
        return affected > 0

    @_repository_operation
    @transactional
    async def append_log(
        self,
        job_id: int,
        status: LogStatus,
        duration_ms: int,
        created_at: datetime,
        error: str | None = None,
    ) -> JobLogEntry:
        queries = self._get_queries()
        ctx = get_connection()
        await queries.insert_job_log(
            ctx.connection,
            job_id=job_id,
            status=status.value,
            duration_ms=duration_ms,
            error=error,
            created_at=_to_db(created_at),
        )
        log_id = await queries.last_insert_id(ctx.connection)
        return JobLogEntry(
            id=log_id,
            job_id=job_id,
            status=status,
            duration_ms=duration_ms,
            error=error,
            created_at=created_at,
        )

    @_repository_operation
    @transactional_readonly
    async def list_with_recent_logs(self, limit: int = 5) -> list[JobSummary]:
        queries = self._get_queries()
        ctx = get_connection()

        job_rows = [row async for row in queries.get_all_jobs(ctx.connection)]
        log_rows = queries.get_recent_logs_per_job(ctx.connection, limit=limit)

        logs_by_job: dict[int, list[JobLogEntry]] = {}
        async for row in log_rows:
            entry = JobLogEntry.model_validate(dict(row))
            logs_by_job.setdefault(entry.job_id, []).append(entry)

        return [
            JobSummary(**dict(row), recent_logs=logs_by_job.get(row['id'], []))
            for row in job_rows
        ]

    @_repository_operation
    @transactional_readonly
    async def list_logs(self, job_name: str, limit: int) -> list[JobLogEntry]:
        queries = self._get_queries()
        ctx = get_connection()

        job_row = await queries.get_job_by_name(ctx.connection, job_name=job_name)
        if not job_row:
            raise JobNotFoundError(job_name)

        rows = queries.get_logs_by_job(ctx.connection, job_id=job_row["id"], limit=limit)
        return [JobLogEntry.model_validate(dict(row)) async for row in rows]

    @_repository_operation
    @transactional_readonly
    async def ping(self) -> None:
        ctx = get_connection()
        await self._get_queries().ping(ctx.connection)
