"""
Scheduler 퍼사드 테스트

테스트 항목:
1. ENABLE_JOBS 비활성화 시 레코드/타이머를 만들지 않음
2. 활성화 시 잡마다 레코드 생성 + 타이머 등록, 재호출은 무시
3. 레코드 생성 실패해도 타이머는 등록
4. stop: 타이머 해제, 실행 중인 잡은 끝까지 진행
5. run_job_now / get_job_statuses / get_job_logs
6. enable_job / disable_job (없는 잡은 JobNotFoundError, 재활성화는 성공)
7. SchedulerConfig: ENABLE_JOBS는 'true'일 때만 활성화

실행: python -m pytest test/scheduler_test.py -v
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.registry import DatabaseRegistry
from scheduler import Scheduler, create_scheduler
from scheduler.exception import JobNotFoundError, PersistenceError, TaskFailureError
from scheduler.model import JobStatus, LogStatus, Outcome, SchedulerConfig, Trigger
from scheduler.registry import JobDefinition, JobRegistry
from scheduler.repository import InMemoryJobRepository, SQLiteJobRepository

# 테스트용 로깅 설정
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

NOW = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


class Jobs:
    """테스트용 잡 본문 모음"""

    def __init__(self):
        self.calls: list[str] = []
        self.release = asyncio.Event()
        self.release.set()

    async def backup(self):
        self.calls.append("backup")
        await self.release.wait()

    async def cleanup(self):
        self.calls.append("cleanup")

    async def broken(self):
        self.calls.append("broken")
        raise RuntimeError("template not found")

    def registry(self) -> JobRegistry:
        return JobRegistry([
            JobDefinition("backup", "0 3 * * *", self.backup, "Create database backups"),
            JobDefinition("cleanup", "0 2 * * 0", self.cleanup, "Clean up old logs"),
            JobDefinition("broken", "0 9 * * *", self.broken, "Always fails"),
        ])


class FailingUpsertRepository(InMemoryJobRepository):
    """특정 잡의 레코드 생성만 실패"""

    def __init__(self, failing_job: str):
        super().__init__()
        self.failing_job = failing_job

    async def upsert_definition(self, job_name):
        if job_name == self.failing_job:
            raise PersistenceError("upsert_definition", "database is locked")
        return await super().upsert_definition(job_name)


@pytest.fixture
def jobs():
    return Jobs()


@pytest_asyncio.fixture
async def scheduler(jobs):
    """활성화된 Scheduler (메모리 저장소)"""
    instance = Scheduler(
        jobs.registry(),
        InMemoryJobRepository(),
        SchedulerConfig(enable_jobs=True),
        clock=lambda: NOW,
    )
    await instance.initialize()
    yield instance
    jobs.release.set()
    await instance.shutdown()


class TestInitialize:
    """초기화"""

    @pytest.mark.asyncio
    async def test_disabled_creates_nothing(self, jobs):
        repository = InMemoryJobRepository()
        instance = Scheduler(jobs.registry(), repository, SchedulerConfig(enable_jobs=False))

        await instance.initialize()

        assert instance.is_running is False
        assert instance.timer.handles == []
        assert await repository.list_with_recent_logs() == []

        # 레코드가 없으므로 수동 실행도 not found
        with pytest.raises(JobNotFoundError):
            await instance.run_job_now("backup")
        assert jobs.calls == []

    @pytest.mark.asyncio
    async def test_enabled_registers_all(self, scheduler):
        assert scheduler.is_running is True
        assert sorted(h.job_name for h in scheduler.timer.handles) == ["backup", "broken", "cleanup"]

        statuses = await scheduler.get_job_statuses()
        assert len(statuses) == 3
        assert all(s.status == JobStatus.IDLE and s.is_enabled for s in statuses)

    @pytest.mark.asyncio
    async def test_second_initialize_ignored(self, scheduler, caplog):
        with caplog.at_level(logging.WARNING, logger="scheduler.main"):
            await scheduler.initialize()

        assert len(scheduler.timer.handles) == 3
        assert any("already initialized" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_upsert_failure_still_schedules(self, jobs):
        repository = FailingUpsertRepository("cleanup")
        instance = Scheduler(jobs.registry(), repository, SchedulerConfig(enable_jobs=True))

        await instance.initialize()
        try:
            assert len(instance.timer.handles) == 3
            assert await repository.find_by_name("cleanup") is None
            assert await repository.find_by_name("backup") is not None
        finally:
            await instance.stop()


class TestStop:
    """정지"""

    @pytest.mark.asyncio
    async def test_stop_cancels_timers(self, scheduler):
        handles = scheduler.timer.handles

        await scheduler.stop()

        assert scheduler.is_running is False
        assert scheduler.timer.handles == []
        assert all(h.task.done() for h in handles)

    @pytest.mark.asyncio
    async def test_stop_does_not_interrupt_running_job(self, scheduler, jobs):
        jobs.release.clear()
        run = asyncio.create_task(scheduler.run_job_now("backup"))
        while "backup" not in jobs.calls:
            await asyncio.sleep(0)

        await scheduler.stop()
        jobs.release.set()

        result = await run
        assert result.outcome == Outcome.SUCCESS
        assert len(await scheduler.get_job_logs("backup")) == 1

    @pytest.mark.asyncio
    async def test_reinitialize_after_stop(self, scheduler):
        await scheduler.stop()
        await scheduler.initialize()

        assert scheduler.is_running is True
        assert len(scheduler.timer.handles) == 3


class TestRunJobNow:
    """수동 실행"""

    @pytest.mark.asyncio
    async def test_success(self, scheduler, jobs):
        result = await scheduler.run_job_now("cleanup")

        assert result.outcome == Outcome.SUCCESS
        assert result.trigger == Trigger.MANUAL
        assert jobs.calls == ["cleanup"]

        statuses = {s.job_name: s for s in await scheduler.get_job_statuses()}
        assert statuses["cleanup"].status == JobStatus.SUCCESS
        assert statuses["cleanup"].last_run == NOW

    @pytest.mark.asyncio
    async def test_unknown_job(self, scheduler):
        with pytest.raises(JobNotFoundError):
            await scheduler.run_job_now("nonexistent")

    @pytest.mark.asyncio
    async def test_task_failure(self, scheduler):
        with pytest.raises(TaskFailureError) as exc_info:
            await scheduler.run_job_now("broken")

        assert exc_info.value.error == "template not found"
        logs = await scheduler.get_job_logs("broken")
        assert logs[0].status == LogStatus.ERROR

    @pytest.mark.asyncio
    async def test_disabled_job_skipped(self, scheduler, jobs):
        await scheduler.disable_job("cleanup")

        result = await scheduler.run_job_now("cleanup")

        assert result.outcome == Outcome.SKIPPED
        assert jobs.calls == []


class TestQueries:
    """상태 / 이력 조회"""

    @pytest.mark.asyncio
    async def test_statuses_include_schedule(self, scheduler):
        statuses = {s.job_name: s for s in await scheduler.get_job_statuses()}

        assert statuses["backup"].schedule == "0 3 * * *"
        assert statuses["backup"].description == "Create database backups"

    @pytest.mark.asyncio
    async def test_recent_logs_limited(self, scheduler):
        for _ in range(7):
            await scheduler.run_job_now("cleanup")

        statuses = {s.job_name: s for s in await scheduler.get_job_statuses()}
        assert len(statuses["cleanup"].recent_logs) == 5
        assert statuses["backup"].recent_logs == []

    @pytest.mark.asyncio
    async def test_logs_default_limit(self, scheduler):
        for _ in range(12):
            await scheduler.run_job_now("cleanup")

        assert len(await scheduler.get_job_logs("cleanup")) == 10
        assert len(await scheduler.get_job_logs("cleanup", limit=3)) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1])
    async def test_logs_limit_below_one(self, scheduler, limit):
        for _ in range(12):
            await scheduler.run_job_now("cleanup")

        with pytest.raises(ValueError):
            await scheduler.get_job_logs("cleanup", limit)

    @pytest.mark.asyncio
    async def test_logs_limit_one(self, scheduler):
        for _ in range(3):
            await scheduler.run_job_now("cleanup")

        assert len(await scheduler.get_job_logs("cleanup", 1)) == 1

    @pytest.mark.asyncio
    async def test_logs_unknown_job(self, scheduler):
        with pytest.raises(JobNotFoundError):
            await scheduler.get_job_logs("nonexistent")


class TestEnableDisable:
    """활성화 변경"""

    @pytest.mark.asyncio
    async def test_disable_then_enable(self, scheduler):
        await scheduler.disable_job("backup")
        statuses = {s.job_name: s for s in await scheduler.get_job_statuses()}
        assert statuses["backup"].is_enabled is False

        await scheduler.enable_job("backup")
        statuses = {s.job_name: s for s in await scheduler.get_job_statuses()}
        assert statuses["backup"].is_enabled is True

    @pytest.mark.asyncio
    async def test_enable_already_enabled(self, scheduler):
        await scheduler.enable_job("backup")
        await scheduler.enable_job("backup")

    @pytest.mark.asyncio
    async def test_unknown_job(self, scheduler):
        with pytest.raises(JobNotFoundError):
            await scheduler.enable_job("nonexistent")
        with pytest.raises(JobNotFoundError):
            await scheduler.disable_job("nonexistent")

    @pytest.mark.asyncio
    async def test_disabled_job_skipped_on_tick(self, scheduler, jobs):
        """타이머는 유지되고 다음 틱에서 건너뜀"""
        await scheduler.disable_job("backup")

        result = await scheduler.executor.execute("backup", Trigger.SCHEDULED)

        assert result.outcome == Outcome.SKIPPED
        assert jobs.calls == []
        assert "backup" in [h.job_name for h in scheduler.timer.handles]


class TestSchedulerConfig:
    """설정 로드"""

    @pytest.mark.parametrize("value, expected", [
        ("true", True),
        ("TRUE", True),
        (" true ", True),
        ("1", False),
        ("yes", False),
        ("false", False),
        ("", False),
    ])
    def test_enable_jobs_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("ENABLE_JOBS", value)
        config = SchedulerConfig.from_config({"scheduler": {"enable_jobs": not expected}})
        assert config.enable_jobs is expected

    def test_yaml_value_without_env(self, monkeypatch):
        monkeypatch.delenv("ENABLE_JOBS", raising=False)
        assert SchedulerConfig.from_config({"scheduler": {"enable_jobs": True}}).enable_jobs is True
        assert SchedulerConfig.from_config({}).enable_jobs is False

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENABLE_JOBS", raising=False)
        config = SchedulerConfig.from_config({})
        assert config.timezone == "UTC"
        assert config.allow_overlap is True
        assert config.default_logs_limit == 10
        assert config.recent_logs_limit == 5


class TestCreateScheduler:
    """설정으로 생성"""

    @pytest.mark.asyncio
    async def test_memory_repository(self, monkeypatch):
        monkeypatch.delenv("ENABLE_JOBS", raising=False)
        instance = await create_scheduler({"scheduler": {"repository": "memory"}})

        assert len(instance.registry) == 5
        assert instance.is_running is False

    @pytest.mark.asyncio
    async def test_sqlite_repository(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ENABLE_JOBS", "true")
        DatabaseRegistry.clear()
        config = {
            "databases": {"jobs": {"type": "sqlite", "path": str(tmp_path / "jobs.db")}},
            "scheduler": {"database": "jobs"},
        }

        instance = await create_scheduler(config)
        try:
            await instance.initialize()
            statuses = await instance.get_job_statuses()
            assert {s.job_name for s in statuses} == {
                "weekly-summary", "invoice-reminder", "cleanup", "backup", "analytics-aggregation",
            }

            result = await instance.run_job_now("backup")
            assert result.outcome == Outcome.SUCCESS
            assert result.recorded is True
            logs = await instance.get_job_logs("backup")
            assert len(logs) == 1
        finally:
            await instance.shutdown()
            await DatabaseRegistry.close_all()
            DatabaseRegistry.clear()
