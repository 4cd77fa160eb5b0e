"""
잡 레지스트리

잡 본문 모듈은 @job 데코레이터로 자신을 등록하고, 프로세스 시작 시
JobRegistry가 등록된 정의를 읽기 전용 테이블로 고정합니다.
"""

import importlib
import logging
import pkgutil
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Iterator

from scheduler.exception import DuplicateJobError, JobNotFoundError

__all__ = [
    'Task',
    'RecurrenceSpec',
    'JobDefinition',
    'JobRegistry',
    'job',
    'get_registered_jobs',
    'load_jobs',
]

logger = logging.getLogger(__name__)

# 인자 없이 호출되는 비동기 잡 본문
Task = Callable[[], Awaitable[None]]

@dataclass(frozen=True)
class RecurrenceSpec:
    """
    크론 5필드 (분, 시, 일, 월, 요일)

    각 필드는 고정 정수, "any"(None), 또는 범위/간격 표현식 원문(str)입니다.
    """
    minute: int | str | None
    hour: int | str | None
    day_of_month: int | str | None
    month: int | str | None
    day_of_week: int | str | None

    @classmethod
    def parse(cls, expression: str) -> "RecurrenceSpec":
        """
        Raises:
            ValueError: 필드가 5개 미만인 경우
        """
        parts = expression.split()
        if len(parts) < 5:
            raise ValueError(f"Expected 5 cron fields, got {len(parts)}: '{expression}'")
        return cls(*(_parse_field(part) for part in parts[:5]))

    def __str__(self) -> str:
        fields = (self.minute, self.hour, self.day_of_month, self.month, self.day_of_week)
        return ' '.join('*' if f is None else str(f) for f in fields)


def _parse_field(raw: str) -> int | str | None:
    if raw == '*':
        return None
    if raw.isdigit():
        return int(raw)
    return raw


@dataclass(frozen=True)
class JobDefinition:
    """잡 정의 (레지스트리 생성 후 불변)"""
    name: str
    schedule: str
    task: Task = field(compare=False, repr=False)
    description: str = ""

    @property
    def recurrence(self) -> RecurrenceSpec:
        return RecurrenceSpec.parse(self.schedule)


# 모듈 레벨 정의 모음 (@job 데코레이터가 채움)
_definitions: dict[str, JobDefinition] = {}


def job(name: str, schedule: str, description: str = ""):
    """잡 본문 등록 데코레이터"""
    def decorator(func: Task) -> Task:
        if name in _definitions:
            raise DuplicateJobError(name)
        _definitions[name] = JobDefinition(
            name=name,
            schedule=schedule,
            task=func,
            description=description,
        )
        return func
    return decorator


def get_registered_jobs() -> dict[str, JobDefinition]:
    """@job으로 등록된 정의 목록 반환 (테스트용)"""
    return _definitions.copy()


def load_jobs() -> None:
    """잡 본문 모듈 로드 (데코레이터 등록을 위해, 하위 폴더 재귀 탐색)"""
    # 패키지 속성이 아닌 모듈 경로로 가져옴 (scheduler.job 이름은 데코레이터와 혼동되기 쉬움)
    job_pkg = importlib.import_module("scheduler.job")

    def load_recursive(package, prefix: str):
        for _, module_name, is_pkg in pkgutil.iter_modules(package.__path__):
            full_name = f"{prefix}.{module_name}"
            module = importlib.import_module(full_name)
            logger.debug(f"Loaded job module: {full_name}")
            if is_pkg:
                load_recursive(module, full_name)

    load_recursive(job_pkg, "scheduler.job")


class JobRegistry:
    """잡 이름 -> 정의 테이블 (읽기 전용)"""

    def __init__(self, definitions: Iterable[JobDefinition]):
        table: dict[str, JobDefinition] = {}
        for definition in definitions:
            if definition.name in table:
                raise DuplicateJobError(definition.name)
            table[definition.name] = definition
        self._jobs = MappingProxyType(table)

    @classmethod
    def default(cls) -> "JobRegistry":
        """scheduler.job 하위의 잡 본문을 모두 로드하여 레지스트리 생성"""
        load_jobs()
        registry = cls(_definitions.values())
        logger.info(f"Job registry loaded: {', '.join(registry.names())}")
        return registry

    def get(self, name: str) -> JobDefinition:
        """
        Raises:
            JobNotFoundError: 등록되지 않은 이름
        """
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotFoundError(name) from None

    def names(self) -> list[str]:
        return list(self._jobs.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __iter__(self) -> Iterator[JobDefinition]:
        return iter(self._jobs.values())

    def __len__(self) -> int:
        return len(self._jobs)
