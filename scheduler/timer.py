"""
타이머 엔진 모듈

잡마다 asyncio 태스크 하나가 크론 표현식의 다음 실행 시점까지 대기하다가
dispatch 콜백을 호출합니다. 실행은 별도 태스크로 분리되므로 느린 잡이
다음 틱이나 다른 잡의 타이머를 막지 않습니다.

놓친 틱(프로세스 정지, 이벤트 루프 지연 등)은 보충 실행하지 않습니다.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Awaitable, Callable, Iterable

from croniter import croniter

from scheduler.exception import JobRegistrationError
from scheduler.registry import JobDefinition

logger = logging.getLogger(__name__)

Dispatch = Callable[[str], Awaitable[Any]]


@dataclass
class RecurringHandle:
    """등록된 반복 타이머 (cancel()로 해제)"""
    definition: JobDefinition
    stop_event: asyncio.Event = field(repr=False)
    task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def job_name(self) -> str:
        return self.definition.name

    @property
    def active(self) -> bool:
        return not self.stop_event.is_set() and self.task is not None and not self.task.done()


class TimerEngine:
    """크론 기반 반복 타이머"""

    def __init__(
        self,
        dispatch: Dispatch,
        *,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
        max_sleep_seconds: float = 60,
        misfire_grace_seconds: float = 60,
    ):
        """
        Args:
            dispatch: 잡 이름을 받아 실행하는 코루틴 함수
            tz: 크론 표현식을 해석할 타임존
            clock: 현재 시각 (aware datetime, 테스트에서 주입)
            max_sleep_seconds: 한 번에 대기하는 최대 시간 (벽시계 변화 재확인 주기)
            misfire_grace_seconds: 예정 시각을 이만큼 넘기면 그 틱은 건너뜀
        """
        self._dispatch = dispatch
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._max_sleep = max_sleep_seconds
        self._misfire_grace = misfire_grace_seconds
        self._handles: list[RecurringHandle] = []
        self._inflight: set[asyncio.Task] = set()

    def schedule(self, definition: JobDefinition) -> RecurringHandle:
        """
        반복 타이머 등록 (실행 중인 이벤트 루프 필요)

        Raises:
            JobRegistrationError: 5필드 크론 표현식이 아닌 경우
        """
        self._validate(definition)

        handle = RecurringHandle(definition=definition, stop_event=asyncio.Event())
        handle.task = asyncio.create_task(self._run(handle), name=f"timer:{definition.name}")
        self._handles.append(handle)

        logger.debug(f"Scheduled job: {definition.name} ({definition.schedule})")
        return handle

    def schedule_all(self, definitions: Iterable[JobDefinition]) -> list[RecurringHandle]:
        """여러 잡 등록 (잘못된 정의는 로그만 남기고 건너뜀)"""
        handles = []
        for definition in definitions:
            try:
                handles.append(self.schedule(definition))
            except JobRegistrationError as e:
                logger.error(f"Failed to schedule job '{definition.name}': {e}")
        return handles

    def cancel(self, handle: RecurringHandle) -> None:
        """타이머 해제 (실행 중인 잡은 건드리지 않음)"""
        handle.stop_event.set()
        if handle in self._handles:
            self._handles.remove(handle)

    def cancel_all(self) -> list[RecurringHandle]:
        """모든 타이머 해제 후 해제된 핸들 반환"""
        handles = list(self._handles)
        for handle in handles:
            self.cancel(handle)
        return handles

    @property
    def handles(self) -> list[RecurringHandle]:
        return list(self._handles)

    @property
    def inflight_count(self) -> int:
        """타이머가 시작해 아직 끝나지 않은 실행 수"""
        return len(self._inflight)

    async def wait_inflight(self, timeout: float) -> bool:
        """
        실행 중인 잡 완료 대기 (graceful shutdown)

        Returns:
            True: 모두 완료, False: 타임아웃으로 남은 실행을 취소함
        """
        if not self._inflight:
            return True

        logger.info(f"Waiting for {len(self._inflight)} running jobs...")

        try:
            await asyncio.wait_for(
                asyncio.gather(*self._inflight, return_exceptions=True),
                timeout=timeout
            )
            logger.info("All running jobs completed")
            return True
        except asyncio.TimeoutError:
            logger.warning(
                f"Shutdown timeout ({timeout}s), {len(self._inflight)} jobs still running"
            )
            for task in list(self._inflight):
                task.cancel()
            return False

    def _validate(self, definition: JobDefinition) -> None:
        expression = definition.schedule
        # croniter는 초 단위 6필드도 허용하므로 필드 수를 따로 확인
        if len(expression.split()) != 5 or not croniter.is_valid(expression):
            raise JobRegistrationError(definition.name, expression)

    def _now(self) -> datetime:
        return self._clock().astimezone(self._tz)

    async def _run(self, handle: RecurringHandle) -> None:
        """잡 하나의 타이머 루프"""
        definition = handle.definition
        cron = croniter(definition.schedule, self._now())
        fire_at = cron.get_next(datetime)

        while not handle.stop_event.is_set():
            delay = (fire_at - self._now()).total_seconds()

            if delay > 0:
                if await self._sleep(handle.stop_event, min(delay, self._max_sleep)):
                    break
                continue

            if -delay > self._misfire_grace:
                logger.warning(
                    f"Missed scheduled run: job={definition.name}, "
                    f"scheduled_time={fire_at.isoformat()}, late={-delay:.1f}s"
                )
                cron = croniter(definition.schedule, self._now())
            else:
                self._fire(definition.name, fire_at)

            fire_at = cron.get_next(datetime)

        logger.debug(f"Timer stopped: {definition.name}")

    async def _sleep(self, stop_event: asyncio.Event, seconds: float) -> bool:
        """인터럽트 가능한 sleep (중단되면 True)"""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    def _fire(self, job_name: str, scheduled_time: datetime) -> None:
        logger.debug(f"Timer fired: job={job_name}, scheduled_time={scheduled_time.isoformat()}")
        task = asyncio.create_task(self._execute(job_name), name=f"job:{job_name}")
        self._inflight.add(task)
        task.add_done_callback(self._on_task_done)

    async def _execute(self, job_name: str) -> None:
        try:
            await self._dispatch(job_name)
        except Exception as e:
            logger.error(f"Unexpected error executing job {job_name}: {e}", exc_info=True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        """실행 태스크 완료 콜백"""
        self._inflight.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Task exception: {task.exception()}")
