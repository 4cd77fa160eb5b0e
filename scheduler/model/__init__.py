"""Scheduler 모델 패키지"""

from scheduler.model.config import SchedulerConfig
from scheduler.model.job import (
    ExecutionResult,
    JobLogEntry,
    JobRecord,
    JobStatus,
    JobSummary,
    LogStatus,
    Outcome,
    Trigger,
)

__all__ = [
    'SchedulerConfig',
    'ExecutionResult',
    'JobLogEntry',
    'JobRecord',
    'JobStatus',
    'JobSummary',
    'LogStatus',
    'Outcome',
    'Trigger',
]
