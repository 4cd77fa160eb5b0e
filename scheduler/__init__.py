"""Scheduler 모듈 - 크론 기반 백그라운드 잡 실행"""

from scheduler.main import Scheduler, create_scheduler
from scheduler.registry import JobDefinition, JobRegistry
from scheduler.model import ExecutionResult, SchedulerConfig, Trigger
from scheduler.exception import (
    SchedulerError,
    JobNotFoundError,
    TaskFailureError,
    JobAlreadyRunningError,
    PersistenceError,
)

__all__ = [
    "Scheduler",
    "create_scheduler",
    "JobDefinition",
    "JobRegistry",
    "ExecutionResult",
    "SchedulerConfig",
    "Trigger",
    "SchedulerError",
    "JobNotFoundError",
    "TaskFailureError",
    "JobAlreadyRunningError",
    "PersistenceError",
]
