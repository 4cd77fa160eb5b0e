"""
잡 상태 / 실행 이력 모델 정의
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """잡 현재 상태"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class LogStatus(str, Enum):
    """실행 이력 상태 (완료된 실행만 기록)"""
    SUCCESS = "success"
    ERROR = "error"


class Trigger(str, Enum):
    """실행 주체"""
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class Outcome(str, Enum):
    """실행 시도 결과"""
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class JobLogEntry(BaseModel):
    """잡 실행 이력 엔티티 (불변)"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int | None = None
    job_id: int
    status: LogStatus
    duration_ms: int = Field(ge=0)
    error: str | None = None
    created_at: datetime


class JobRecord(BaseModel):
    """잡 현재 상태 엔티티 (잡 이름당 1개)"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_name: str
    status: JobStatus = JobStatus.IDLE
    is_enabled: bool = True
    last_run: datetime | None = None
    next_run: datetime | None = None  # 참고용 추정치
    last_error: str | None = None


class JobSummary(JobRecord):
    """상태 조회용: 레코드 + 스케줄 정보 + 최근 실행 이력"""
    schedule: str | None = None
    description: str | None = None
    recent_logs: list[JobLogEntry] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    """
    실행 시도 결과

    outcome은 잡 본문의 성공 여부, recorded는 저장소 기록 성공 여부입니다.
    감사 로그 기록에 실패해도 성공한 실행은 성공으로 남습니다.
    """
    job_name: str
    trigger: Trigger
    outcome: Outcome
    duration_ms: int = 0
    error: str | None = None
    recorded: bool = True
