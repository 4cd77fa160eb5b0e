"""
잡 저장소 인터페이스

Executor와 Scheduler는 이 인터페이스만 사용합니다.
구현체는 모든 저장소 오류를 PersistenceError로 변환해야 합니다.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from scheduler.model import JobLogEntry, JobRecord, JobStatus, JobSummary, LogStatus


class JobRepository(ABC):
    """잡 상태(jobs) / 실행 이력(job_logs) 저장소"""

    @abstractmethod
    async def find_by_name(self, job_name: str) -> JobRecord | None:
        """잡 이름으로 현재 상태 조회"""
        pass

    @abstractmethod
    async def upsert_definition(self, job_name: str) -> tuple[JobRecord, bool]:
        """
        잡 레코드가 없으면 idle / enabled 상태로 생성

        Returns:
            (레코드, 새로 생성됐는지 여부)
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        job_name: str,
        status: JobStatus,
        *,
        last_run: datetime | None = None,
        next_run: datetime | None = None,
        last_error: str | None = None,
    ) -> None:
        """
        상태 전이 기록

        last_run / next_run은 None이면 기존 값 유지.
        last_error는 running 전이에서는 유지, success/error 전이에서는 그대로 기록(None이면 삭제).
        """
        pass

    @abstractmethod
    async def set_enabled(self, job_name: str, enabled: bool) -> bool:
        """활성화 플래그 변경 (레코드가 없으면 False)"""
        pass

    @abstractmethod
    async def append_log(
        self,
        job_id: int,
        status: LogStatus,
        duration_ms: int,
        created_at: datetime,
        error: str | None = None,
    ) -> JobLogEntry:
        """실행 이력 추가 (append-only)"""
        pass

    @abstractmethod
    async def list_with_recent_logs(self, limit: int = 5) -> list[JobSummary]:
        """모든 잡 + 잡별 최근 실행 이력 (최신순)"""
        pass

    @abstractmethod
    async def list_logs(self, job_name: str, limit: int) -> list[JobLogEntry]:
        """
        잡의 최근 실행 이력 (최신순, 최대 limit개)

        Raises:
            JobNotFoundError: 레코드가 없는 경우
        """
        pass

    async def ping(self) -> None:
        """저장소 연결 확인 (readiness)"""
        return None
