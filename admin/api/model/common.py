"""공통 모델 정의"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """liveness 응답"""
    status: str
    scheduler: str
    version: str
