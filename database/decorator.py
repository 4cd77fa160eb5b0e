"""
트랜잭션 데코레이터

사용 예시:
    @transactional
    async def mark_running(job_name):
        ctx = get_connection()
        await queries.update_job_status(ctx.connection, job_name=job_name, ...)

    @transactional_readonly('archive')
    async def read_from_other_db(...):
        ctx = get_connection('archive')
"""

import functools
import logging
import sqlite3
from typing import Any, Callable

from database.context import find_connection
from database.exception import DatabaseError, QueryExecutionError, ReadOnlyTransactionError
from database.registry import DatabaseRegistry

logger = logging.getLogger(__name__)


def get_db(name: str | None = None):
    """등록된 데이터베이스 인스턴스 반환"""
    return DatabaseRegistry.get(name)


def get_connection(name: str | None = None):
    """
    현재 태스크에서 열린 트랜잭션 컨텍스트 반환

    Raises:
        RuntimeError: @transactional 바깥에서 호출한 경우
    """
    key = name or DatabaseRegistry.default_name()
    ctx = find_connection(key)
    if ctx is None:
        raise RuntimeError(f"No active transaction for database '{key}'. Use @transactional.")
    return ctx


def _make_decorator(readonly: bool, db_name: str | None) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = db_name or DatabaseRegistry.default_name()

            # 이미 열린 트랜잭션이 있으면 그대로 참여
            if find_connection(key) is not None:
                return await func(*args, **kwargs)

            db = DatabaseRegistry.get(key)
            try:
                async with db.transaction(readonly=readonly):
                    return await func(*args, **kwargs)
            except DatabaseError:
                raise
            except sqlite3.Error as e:
                # PRAGMA query_only 위반
                if readonly and "readonly" in str(e):
                    raise ReadOnlyTransactionError(
                        f"{func.__qualname__} tried to write in a readonly transaction"
                    ) from e
                raise QueryExecutionError(f"{func.__qualname__} failed: {e}") from e
        return wrapper
    return decorator


def transactional(arg: Callable | str | None = None):
    """쓰기 트랜잭션 데코레이터 (@transactional 또는 @transactional('db_name'))"""
    if callable(arg):
        return _make_decorator(False, None)(arg)
    return _make_decorator(False, arg)


def transactional_readonly(arg: Callable | str | None = None):
    """읽기 전용 트랜잭션 데코레이터"""
    if callable(arg):
        return _make_decorator(True, None)(arg)
    return _make_decorator(True, arg)
