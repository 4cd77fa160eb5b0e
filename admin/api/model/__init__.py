"""Admin API 모델 패키지"""

from admin.api.model.common import HealthResponse
from admin.api.model.config import AdminConfig, CorsConfig
from admin.api.model.job import (
    JobLogResponse,
    JobStatusResponse,
    MessageResponse,
    RunJobResponse,
)

__all__ = [
    'HealthResponse',
    'AdminConfig',
    'CorsConfig',
    'JobLogResponse',
    'JobStatusResponse',
    'MessageResponse',
    'RunJobResponse',
]
