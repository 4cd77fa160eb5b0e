"""
JSON 구조화 로깅 설정

잡 실행 중에 남긴 로그에는 job / trigger 필드가 붙습니다.
실행기가 job_context()로 현재 잡을 지정하고, 잡 본문은 평소처럼 logger만 사용합니다.

    {"timestamp": "...", "level": "ERROR", "logger": "scheduler.job.backup",
     "service": "earnings-jobs", "job": "backup", "trigger": "manual", "message": "..."}
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "earnings-jobs"

_job_context: ContextVar[tuple[str, str] | None] = ContextVar("job_context", default=None)


@contextmanager
def job_context(job_name: str, trigger: str) -> Iterator[None]:
    """이 블록(과 그 안에서 만든 태스크)의 로그에 잡 이름/트리거 부착"""
    token = _job_context.set((job_name, trigger))
    try:
        yield
    finally:
        _job_context.reset(token)


class JobContextFilter(logging.Filter):
    """레코드에 job / trigger 속성 추가 (잡 밖에서는 '-')"""

    def filter(self, record: logging.LogRecord) -> bool:
        current = _job_context.get()
        record.job, record.trigger = current if current else ("-", "-")
        return True


class CustomJsonFormatter(JsonFormatter):
    """JSON 로그 포매터"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = SERVICE_NAME

        job = getattr(record, 'job', '-')
        if job != '-':
            log_record['job'] = job
            log_record['trigger'] = record.trigger
        else:
            log_record.pop('job', None)
            log_record.pop('trigger', None)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None
) -> None:
    """
    로깅 설정

    Args:
        level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON 포맷 사용 여부 (False면 텍스트 포맷, 잡 이름은 대괄호로 표시)
        log_file: 로그 파일 경로 (None이면 stdout만 사용)
    """
    if json_format:
        formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(job)s/%(trigger)s] %(message)s'
        )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    job_filter = JobContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(job_filter)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True  # 기존 설정 덮어쓰기
    )

    # 외부 라이브러리 로그 레벨 조정
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('aiosqlite').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
