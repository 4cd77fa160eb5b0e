"""잡 상태 / 실행 이력 API 모델 정의"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from scheduler.model import JobStatus, LogStatus, Outcome, Trigger


class JobLogResponse(BaseModel):
    """잡 실행 이력 응답 모델"""
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    status: LogStatus
    duration_ms: int
    error: str | None = None
    created_at: datetime


class JobStatusResponse(BaseModel):
    """잡 현재 상태 응답 모델"""
    name: str
    status: JobStatus
    is_enabled: bool
    schedule: str | None = None
    description: str | None = None
    last_run: datetime | None = None
    next_run: datetime | None = None
    last_error: str | None = None
    recent_logs: list[JobLogResponse] = Field(default_factory=list)


class RunJobResponse(BaseModel):
    """즉시 실행 응답"""
    message: str
    job_name: str
    trigger: Trigger
    outcome: Outcome
    duration_ms: int
    recorded: bool


class MessageResponse(BaseModel):
    """단순 메시지 응답"""
    message: str
