"""Admin API 라우터 (잡 제어 API 통합)"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from admin.api.handler.job import JobHandler
from admin.api.model.common import HealthResponse
from admin.api.model.job import (
    JobLogResponse,
    JobStatusResponse,
    MessageResponse,
    RunJobResponse,
)
from scheduler.exception import (
    JobAlreadyRunningError,
    JobNotFoundError,
    SchedulerError,
    TaskFailureError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR = "Internal server error"


def get_job_handler(request: Request) -> JobHandler:
    """app.state.scheduler로 핸들러 생성"""
    return JobHandler(request.app.state.scheduler)


# ============================================
# JOB API
# ============================================

@router.get("/jobs", response_model=list[JobStatusResponse], tags=["Job"])
async def get_jobs(handler: JobHandler = Depends(get_job_handler)):
    """모든 잡 상태 + 최근 실행 이력 조회"""
    try:
        return await handler.get_list()
    except SchedulerError as e:
        logger.error(f"Failed to get job statuses: {e}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/jobs/{name}/run", response_model=RunJobResponse, tags=["Job"])
async def run_job(name: str, handler: JobHandler = Depends(get_job_handler)):
    """잡 즉시 실행 (완료까지 대기)"""
    try:
        return await handler.run(name)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskFailureError as e:
        raise HTTPException(status_code=500, detail=e.error)
    except JobAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SchedulerError as e:
        logger.error(f"Failed to run job {name}: {e}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.get("/jobs/{name}/logs", response_model=list[JobLogResponse], tags=["Job"])
async def get_job_logs(
    name: str,
    limit: int = Query(default=10, ge=1, le=100, description="조회 개수"),
    handler: JobHandler = Depends(get_job_handler),
):
    """잡 실행 이력 조회 (최신순)"""
    try:
        return await handler.get_logs(name, limit)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SchedulerError as e:
        logger.error(f"Failed to get logs for job {name}: {e}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/jobs/{name}/enable", response_model=MessageResponse, tags=["Job"])
async def enable_job(name: str, handler: JobHandler = Depends(get_job_handler)):
    """잡 활성화 (이미 활성화된 경우에도 성공)"""
    try:
        return await handler.enable(name)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SchedulerError as e:
        logger.error(f"Failed to enable job {name}: {e}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/jobs/{name}/disable", response_model=MessageResponse, tags=["Job"])
async def disable_job(name: str, handler: JobHandler = Depends(get_job_handler)):
    """잡 비활성화 (타이머는 유지, 다음 틱부터 건너뜀)"""
    try:
        return await handler.disable(name)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SchedulerError as e:
        logger.error(f"Failed to disable job {name}: {e}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


# ============================================
# Health Check
# ============================================

@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """서버 상태 확인 (liveness)"""
    scheduler = request.app.state.scheduler
    return HealthResponse(
        status="healthy",
        scheduler="running" if scheduler.is_running else "stopped",
        version="1.0.0",
    )


@router.get("/ready", tags=["Health"])
async def ready_check(request: Request):
    """저장소 연결 상태 확인 (readiness)"""
    try:
        await request.app.state.scheduler.ping()
        return {"status": "ready", "database": "ok"}
    except SchedulerError as e:
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
