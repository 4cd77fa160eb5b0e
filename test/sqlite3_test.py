"""
SQLite3 데이터베이스 계층 테스트

잡 저장소가 기대는 부분만 확인합니다.

테스트 항목:
1. 초기화 시 jobs / job_logs 스키마 생성, 풀 크기
2. @transactional: 커밋, 예외 시 롤백, 중첩 호출은 같은 연결에 참여
3. 읽기 전용 트랜잭션(query_only)에서 쓰기 시도는 ReadOnlyTransactionError
4. SQLite 제약 위반은 QueryExecutionError
5. 풀 소진 타임아웃, 닫힌 풀, 유휴 연결 재연결
6. trace_sql 옵션으로 실행 SQL 디버그 로그
7. DatabaseRegistry 조회

실행: python -m pytest test/sqlite3_test.py -v
"""

import asyncio
import logging
import sys
from pathlib import Path

import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).parent.parent))

from database import (
    transactional,
    transactional_readonly,
    get_connection,
    get_db,
    ConnectionPoolExhaustedError,
    DatabaseError,
    DatabaseNotFoundError,
    QueryExecutionError,
    ReadOnlyTransactionError,
)
from database.registry import DatabaseRegistry

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

INSERT_JOB = "INSERT INTO jobs (job_name) VALUES (?)"


def db_config(path: Path, **options) -> dict:
    return {
        'databases': {
            'default': {
                'type': 'sqlite',
                'path': str(path),
                'pool': {'pool_size': 2, 'pool_timeout': 1.0},
                'options': options,
            }
        }
    }


async def count_jobs(name: str) -> int:
    async with get_db().transaction(readonly=True) as ctx:
        async with ctx.connection.execute("SELECT COUNT(*) FROM jobs WHERE job_name = ?", (name,)) as cur:
            row = await cur.fetchone()
    return row[0]


@pytest_asyncio.fixture
async def database(tmp_path):
    DatabaseRegistry.clear()
    await DatabaseRegistry.init_from_config(db_config(tmp_path / 'jobs.db'))
    yield get_db()
    await DatabaseRegistry.close_all()


class TestSchema:
    """스키마 / 풀 초기화"""

    @pytest.mark.asyncio
    async def test_tables_and_defaults(self, database):
        assert database.pool.size == 2
        assert database.pool.available == 2

        async with database.transaction() as ctx:
            await ctx.connection.execute(INSERT_JOB, ("backup",))

        async with database.transaction(readonly=True) as ctx:
            async with ctx.connection.execute("SELECT * FROM jobs WHERE job_name = 'backup'") as cur:
                row = await cur.fetchone()
        assert row['status'] == 'idle'
        assert row['is_enabled'] == 1
        assert database.pool.available == 2

    @pytest.mark.asyncio
    async def test_reinitialize_keeps_rows(self, tmp_path):
        """IF NOT EXISTS: 재시작해도 기존 잡 유지"""
        DatabaseRegistry.clear()
        await DatabaseRegistry.init_from_config(db_config(tmp_path / 'jobs.db'))
        async with get_db().transaction() as ctx:
            await ctx.connection.execute(INSERT_JOB, ("cleanup",))
        await DatabaseRegistry.close_all()

        await DatabaseRegistry.init_from_config(db_config(tmp_path / 'jobs.db'))
        try:
            assert await count_jobs("cleanup") == 1
        finally:
            await DatabaseRegistry.close_all()


class TestTransactional:
    """트랜잭션 데코레이터"""

    @pytest.mark.asyncio
    async def test_commit(self, database):
        @transactional
        async def register(name: str):
            await get_connection().connection.execute(INSERT_JOB, (name,))

        await register("invoice-reminder")
        assert await count_jobs("invoice-reminder") == 1

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, database):
        @transactional
        async def register_and_fail():
            await get_connection().connection.execute(INSERT_JOB, ("weekly-summary",))
            raise ValueError("abort")

        with pytest.raises(ValueError):
            await register_and_fail()
        assert await count_jobs("weekly-summary") == 0
        assert database.pool.available == 2

    @pytest.mark.asyncio
    async def test_nested_call_joins_transaction(self, database):
        contexts = []

        @transactional
        async def inner():
            contexts.append(get_connection())

        @transactional
        async def outer():
            contexts.append(get_connection())
            await inner()

        await outer()
        assert contexts[0] is contexts[1]
        assert database.pool.available == 2

    @pytest.mark.asyncio
    async def test_readonly_blocks_write(self, database):
        @transactional_readonly
        async def sneaky_write():
            await get_connection().connection.execute(INSERT_JOB, ("backup",))

        with pytest.raises(ReadOnlyTransactionError):
            await sneaky_write()
        assert await count_jobs("backup") == 0

    @pytest.mark.asyncio
    async def test_readonly_flag_cleared_after_transaction(self, database):
        """query_only는 해당 트랜잭션에만 적용 (풀 연결 재사용 후 쓰기 가능)"""
        for _ in range(database.pool.size):
            async with database.transaction(readonly=True):
                pass

        @transactional
        async def register():
            await get_connection().connection.execute(INSERT_JOB, ("analytics-aggregation",))

        await register()
        assert await count_jobs("analytics-aggregation") == 1

    @pytest.mark.asyncio
    async def test_constraint_violation_wrapped(self, database):
        @transactional
        async def insert_bad_status():
            await get_connection().connection.execute(
                "INSERT INTO jobs (job_name, status) VALUES (?, ?)", ("backup", "PENDING")
            )

        with pytest.raises(QueryExecutionError):
            await insert_bad_status()

    @pytest.mark.asyncio
    async def test_get_connection_outside_transaction(self, database):
        with pytest.raises(RuntimeError, match="No active transaction"):
            get_connection()


class TestPool:
    """커넥션풀"""

    @pytest.mark.asyncio
    async def test_exhaustion_timeout(self, database):
        pool = database.pool
        held = [await pool.acquire() for _ in range(pool.size)]
        assert all(conn.in_use for conn in held)

        with pytest.raises(ConnectionPoolExhaustedError):
            await pool.acquire(timeout=0.1)

        for conn in held:
            await pool.release(conn)
        assert pool.available == pool.size

    @pytest.mark.asyncio
    async def test_waits_for_release(self, database):
        pool = database.pool
        held = [await pool.acquire() for _ in range(pool.size)]

        async def release_later():
            await asyncio.sleep(0.1)
            await pool.release(held[0])

        releaser = asyncio.create_task(release_later())
        conn = await pool.acquire(timeout=1.0)
        assert conn is held[0]

        await releaser
        for c in [conn, *held[1:]]:
            await pool.release(c)

    @pytest.mark.asyncio
    async def test_idle_connection_reopened(self, tmp_path):
        DatabaseRegistry.clear()
        config = db_config(tmp_path / 'jobs.db')
        config['databases']['default']['pool'].update(pool_size=1, max_idle_time=0)
        await DatabaseRegistry.init_from_config(config)
        try:
            pool = get_db().pool
            first = await pool.acquire()
            old_connection = first.connection
            await pool.release(first)
            await asyncio.sleep(0.01)

            again = await pool.acquire()
            assert again.connection is not old_connection
            await pool.release(again)
        finally:
            await DatabaseRegistry.close_all()

    @pytest.mark.asyncio
    async def test_closed_pool(self, database):
        pool = database.pool
        await pool.close()

        with pytest.raises(DatabaseError):
            await pool.acquire()


class TestSqlTrace:
    """SQL 추적 로그"""

    @pytest.mark.asyncio
    async def test_trace_sql(self, tmp_path, caplog):
        DatabaseRegistry.clear()
        await DatabaseRegistry.init_from_config(db_config(tmp_path / 'jobs.db', trace_sql=True))
        try:
            with caplog.at_level(logging.DEBUG, logger="database.sqlite3.connection"):
                await count_jobs("backup")
            assert any("[SQL]" in r.message and "FROM jobs" in r.message for r in caplog.records)
        finally:
            await DatabaseRegistry.close_all()


class TestRegistry:
    """DatabaseRegistry"""

    @pytest.mark.asyncio
    async def test_lookup(self, database):
        assert get_db('default') is database
        assert DatabaseRegistry.names() == ['default']

        with pytest.raises(DatabaseNotFoundError):
            get_db('archive')

    @pytest.mark.asyncio
    async def test_unknown_database_in_config(self):
        DatabaseRegistry.clear()
        with pytest.raises(DatabaseNotFoundError):
            await DatabaseRegistry.init_from_config({'databases': {}}, ['missing'])


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
