"""Admin API 서버 진입점"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin.api.model.config import AdminConfig
from admin.api.router.api import router
from common.config import load_config
from database.registry import DatabaseRegistry
from scheduler import Scheduler, create_scheduler

logger = logging.getLogger(__name__)


def create_app(scheduler: Scheduler | None = None, config: dict | None = None) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        scheduler: 외부에서 만든 Scheduler (생명주기는 호출자가 관리)
        config: 합쳐진 설정 (None이면 config/ 디렉토리에서 로드)
    """
    config = config if config is not None else load_config()
    admin_config = AdminConfig.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 생명주기 관리"""
        if scheduler is not None:
            app.state.scheduler = scheduler
            yield
            return

        # 시작 시
        owned = await create_scheduler(config)
        app.state.scheduler = owned
        await owned.initialize()
        logger.info("Job scheduler ready")

        yield

        # 종료 시
        await owned.shutdown()
        await DatabaseRegistry.close_all()
        logger.info("Database closed")

    app = FastAPI(
        title="Earnings Job Scheduler API",
        description="백그라운드 잡 상태 조회 / 수동 실행 API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # lifespan 없이 호출되는 경우(테스트 클라이언트 등)를 위해 미리 설정
    if scheduler is not None:
        app.state.scheduler = scheduler

    # CORS 설정
    cors = admin_config.cors
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
    )

    # API 라우터 등록
    app.include_router(router)

    return app


if __name__ == "__main__":
    import uvicorn

    from common.logging import setup_logging

    config = load_config()
    admin_config = AdminConfig.from_config(config)
    logging_config = config.get('logging', {})
    setup_logging(
        level=logging_config.get('level', 'INFO'),
        json_format=logging_config.get('json_format', False),
    )

    uvicorn.run(
        create_app(config=config),
        host=admin_config.host,
        port=admin_config.port,
    )
