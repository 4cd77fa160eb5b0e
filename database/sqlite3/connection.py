"""
SQLite3 비동기 커넥션풀 모듈

잡 저장소가 쓰는 aiosqlite 연결을 풀로 관리합니다.
쿼리는 aiosql이 트랜잭션 컨텍스트의 연결 위에서 직접 실행하므로,
이 모듈은 연결 수명, 트랜잭션 경계, 스키마 생성만 담당합니다.
"""

import asyncio
import logging
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiosqlite
import aiosql
from aiosql.queries import Queries

from database.base import BaseDatabase
from database.context import set_connection, clear_connection
from database.exception import (
    ConnectionPoolExhaustedError,
    DatabaseError,
    TransactionError,
)

logger = logging.getLogger(__name__)

INIT_SQL_PATH = Path(__file__).parent / 'sql' / 'init.sql'

# init.sql 스키마 쿼리 (실행 순서대로)
INIT_QUERIES = ('create_jobs_table', 'create_job_logs_table', 'create_indexes')


@dataclass
class PoolConfig:
    """커넥션풀 설정"""
    pool_size: int = 5
    pool_timeout: float = 30.0
    max_idle_time: float = 300.0


@dataclass
class SqliteOptions:
    """SQLite 연결 옵션"""
    busy_timeout: int = 5000
    journal_mode: str = 'WAL'
    synchronous: str = 'NORMAL'
    cache_size: int = -2000
    foreign_keys: bool = True
    trace_sql: bool = False


@dataclass
class PooledConnection:
    """풀에서 관리되는 연결 (last_used_at은 monotonic 초)"""
    connection: aiosqlite.Connection
    last_used_at: float = field(default_factory=time.monotonic)
    in_use: bool = False


def _trace_sql(statement: str) -> None:
    logger.debug(f"[SQL] {' '.join(statement.split())}")


class TransactionContext:
    """
    SQLite 트랜잭션 컨텍스트

    읽기 전용 트랜잭션은 PRAGMA query_only로 쓰기를 막습니다.
    aiosql 쿼리는 connection 속성을 그대로 받아 실행합니다.
    """

    def __init__(self, connection: aiosqlite.Connection, readonly: bool = False):
        self._connection = connection
        self._readonly = readonly
        self._in_transaction = False

    @property
    def connection(self) -> aiosqlite.Connection:
        return self._connection

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    async def begin(self) -> None:
        try:
            if self._readonly:
                await self._connection.execute("PRAGMA query_only = ON")
                await self._connection.execute("BEGIN DEFERRED")
            else:
                # 상태 갱신끼리 SQLITE_BUSY로 교착하지 않도록 쓰기 잠금을 먼저 잡음
                await self._connection.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            await self._reset_query_only()
            raise TransactionError(f"Failed to begin transaction: {e}") from e
        self._in_transaction = True

    async def commit(self) -> None:
        try:
            await self._connection.commit()
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to commit transaction: {e}") from e
        finally:
            self._in_transaction = False
            await self._reset_query_only()

    async def rollback(self) -> None:
        try:
            await self._connection.rollback()
        finally:
            self._in_transaction = False
            await self._reset_query_only()

    async def _reset_query_only(self) -> None:
        if self._readonly:
            await self._connection.execute("PRAGMA query_only = OFF")


class AsyncConnectionPool:
    """
    비동기 SQLite 커넥션풀

    유휴 연결은 큐에 보관하고, 꺼낼 때 max_idle_time을 넘긴 연결은 새로 엽니다.
    """

    def __init__(
        self,
        db_path: str,
        pool_config: PoolConfig | None = None,
        sqlite_options: SqliteOptions | None = None
    ):
        self._db_path = Path(db_path)
        self._pool_config = pool_config or PoolConfig()
        self._sqlite_options = sqlite_options or SqliteOptions()

        self._connections: list[PooledConnection] = []
        self._idle: asyncio.Queue[PooledConnection] = asyncio.Queue()
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("Connection pool already initialized")
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(self._pool_config.pool_size):
            pooled = PooledConnection(connection=await self._connect())
            self._connections.append(pooled)
            self._idle.put_nowait(pooled)

        self._initialized = True
        logger.info(
            f"Connection pool initialized: {self._db_path} "
            f"(size={self._pool_config.pool_size}, timeout={self._pool_config.pool_timeout}s)"
        )

    async def _connect(self) -> aiosqlite.Connection:
        """PRAGMA를 적용한 새 연결 (isolation_level=None: BEGIN을 직접 관리)"""
        opts = self._sqlite_options
        conn = await aiosqlite.connect(
            self._db_path,
            timeout=opts.busy_timeout / 1000.0,
            isolation_level=None,
        )
        conn.row_factory = aiosqlite.Row

        await conn.execute(f"PRAGMA busy_timeout={opts.busy_timeout}")
        await conn.execute(f"PRAGMA journal_mode={opts.journal_mode}")
        await conn.execute(f"PRAGMA synchronous={opts.synchronous}")
        await conn.execute(f"PRAGMA cache_size={opts.cache_size}")
        await conn.execute(f"PRAGMA foreign_keys={'ON' if opts.foreign_keys else 'OFF'}")
        if opts.trace_sql:
            await conn.set_trace_callback(_trace_sql)
        return conn

    async def acquire(self, timeout: float | None = None) -> PooledConnection:
        """
        유휴 연결 획득

        Raises:
            DatabaseError: 초기화 전이거나 닫힌 풀
            ConnectionPoolExhaustedError: timeout 안에 반환된 연결이 없음
        """
        if not self._initialized or self._closed:
            raise DatabaseError(f"Connection pool for {self._db_path} is not open")

        timeout = timeout or self._pool_config.pool_timeout
        try:
            pooled = await asyncio.wait_for(self._idle.get(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionPoolExhaustedError(
                f"Connection pool exhausted. Timeout after {timeout}s"
            )

        idle_for = time.monotonic() - pooled.last_used_at
        if idle_for > self._pool_config.max_idle_time:
            try:
                await pooled.connection.close()
                pooled.connection = await self._connect()
                logger.debug(f"Reopened connection idle for {idle_for:.0f}s")
            except sqlite3.Error:
                self._idle.put_nowait(pooled)
                raise

        pooled.in_use = True
        return pooled

    async def release(self, pooled: PooledConnection) -> None:
        pooled.in_use = False
        pooled.last_used_at = time.monotonic()
        if not self._closed:
            self._idle.put_nowait(pooled)

    async def close(self) -> None:
        self._closed = True
        for pooled in self._connections:
            try:
                await pooled.connection.close()
            except sqlite3.Error as e:
                logger.error(f"Error closing connection: {e}")
        self._connections.clear()
        logger.info("Connection pool closed")

    @property
    def size(self) -> int:
        return len(self._connections)

    @property
    def available(self) -> int:
        return self._idle.qsize()


class ManagedTransaction:
    """트랜잭션 컨텍스트 매니저 (정상 종료 시 커밋, 예외 시 롤백)"""

    def __init__(self, db: 'SQLiteDatabase', readonly: bool = False):
        self._db = db
        self._readonly = readonly
        self._pooled: PooledConnection | None = None
        self._ctx: TransactionContext | None = None

    async def __aenter__(self) -> TransactionContext:
        self._pooled = await self._db.pool.acquire()
        self._ctx = TransactionContext(self._pooled.connection, self._readonly)

        try:
            await self._ctx.begin()
        except TransactionError:
            await self._db.pool.release(self._pooled)
            raise

        set_connection(self._db.name, self._ctx)
        return self._ctx

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type:
                await self._ctx.rollback()
            else:
                await self._ctx.commit()
        finally:
            clear_connection(self._db.name)
            await self._db.pool.release(self._pooled)


class SQLiteDatabase(BaseDatabase):
    """SQLite 데이터베이스 (커넥션풀 + aiosql 쿼리 세트)"""

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name)
        self._config = config
        self._pool: AsyncConnectionPool | None = None
        self._queries: dict[str, Queries] = {}

    @classmethod
    async def create(cls, name: str, config: dict[str, Any]) -> 'SQLiteDatabase':
        db = cls(name, config)
        await db._initialize()
        return db

    async def _initialize(self) -> None:
        pool_cfg = self._config.get('pool', {})
        opts = self._config.get('options', {})

        self._pool = AsyncConnectionPool(
            db_path=self._config.get('path', f'./data/{self.name}.db'),
            pool_config=PoolConfig(
                pool_size=pool_cfg.get('pool_size', 5),
                pool_timeout=pool_cfg.get('pool_timeout', 30.0),
                max_idle_time=pool_cfg.get('max_idle_time', 300.0),
            ),
            sqlite_options=SqliteOptions(
                busy_timeout=opts.get('busy_timeout', 5000),
                journal_mode=opts.get('journal_mode', 'WAL'),
                synchronous=opts.get('synchronous', 'NORMAL'),
                cache_size=opts.get('cache_size', -2000),
                foreign_keys=opts.get('foreign_keys', True),
                trace_sql=opts.get('trace_sql', False),
            ),
        )
        await self._pool.initialize()
        await self._create_schema()

        logger.info(f"SQLiteDatabase '{self.name}' initialized successfully")

    async def _create_schema(self) -> None:
        """jobs / job_logs 테이블 생성 (IF NOT EXISTS)"""
        queries = aiosql.from_path(INIT_SQL_PATH, "aiosqlite")
        # executescript는 자체적으로 커밋하므로 트랜잭션 밖에서 실행
        pooled = await self.pool.acquire()
        try:
            for query_name in INIT_QUERIES:
                await getattr(queries, query_name)(pooled.connection)
        finally:
            await self.pool.release(pooled)

    def transaction(self, readonly: bool = False) -> ManagedTransaction:
        return ManagedTransaction(self, readonly)

    @property
    def pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise DatabaseError(f"Database '{self.name}' not initialized")
        return self._pool

    def load_queries(self, name: str, sql_path: str | Path) -> Queries:
        """aiosql로 SQL 파일 로드 (쿼리 이름마다 파라미터 목록 필수)"""
        queries = aiosql.from_path(sql_path, "aiosqlite")
        self._queries[name] = queries
        return queries

    def get_queries(self, name: str) -> Queries | None:
        return self._queries.get(name)

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
        logger.info(f"SQLiteDatabase '{self.name}' closed")
