"""
비동기 데이터베이스 패키지

사용 예시:
    from database import transactional, get_connection
    from database.registry import DatabaseRegistry

    await DatabaseRegistry.init_from_config(config)

    @transactional
    async def mark_running(job_name):
        ctx = get_connection()
        await queries.update_job_status(ctx.connection, job_name=job_name, ...)
"""

from database.decorator import (
    transactional,
    transactional_readonly,
    get_connection,
    get_db,
)
from database.exception import (
    DatabaseError,
    ConnectionPoolExhaustedError,
    TransactionError,
    QueryExecutionError,
    ReadOnlyTransactionError,
    DatabaseNotFoundError,
)

__all__ = [
    'transactional',
    'transactional_readonly',
    'get_connection',
    'get_db',
    'DatabaseError',
    'ConnectionPoolExhaustedError',
    'TransactionError',
    'QueryExecutionError',
    'ReadOnlyTransactionError',
    'DatabaseNotFoundError',
]
