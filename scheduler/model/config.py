"""
Scheduler 설정 모델
"""

import os
from typing import Any, Literal

from pydantic import BaseModel, Field


class SchedulerConfig(BaseModel):
    """Scheduler 설정"""
    database: str = Field(default="default", description="database.yaml에 정의된 DB 이름")
    enable_jobs: bool = Field(default=False, description="False면 타이머를 등록하지 않음")
    timezone: str = Field(default="UTC", description="크론 평가 및 next_run 추정 기준 시간대")
    allow_overlap: bool = Field(default=True, description="같은 잡의 동시 실행 허용 여부")
    recent_logs_limit: int = Field(default=5, ge=1, le=50)
    default_logs_limit: int = Field(default=10, ge=1, le=100)
    shutdown_timeout_seconds: int = Field(default=30, ge=0, le=600)
    repository: Literal["sqlite", "memory"] = "sqlite"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "SchedulerConfig":
        """
        scheduler.yaml 내용으로 생성 (ENABLE_JOBS 환경변수가 우선)

        ENABLE_JOBS는 'true'일 때만 활성화, 그 외 값은 모두 비활성화로 처리합니다.
        """
        values = dict(config.get("scheduler", {}) or {})
        env_value = os.environ.get("ENABLE_JOBS")
        if env_value is not None:
            values["enable_jobs"] = env_value.strip().lower() == "true"
        return cls(**values)
