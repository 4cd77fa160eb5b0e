"""
트랜잭션 컨텍스트 저장소

contextvars를 사용하여 현재 태스크에서 열려 있는 트랜잭션을 DB 이름별로 보관합니다.
asyncio 태스크마다 컨텍스트가 복사되므로 동시에 실행되는 잡끼리 연결이 섞이지 않습니다.
"""

from contextvars import ContextVar
from typing import Any

_connections: ContextVar[dict[str, Any] | None] = ContextVar('db_connections', default=None)


def set_connection(db_name: str, ctx: Any) -> None:
    """현재 컨텍스트에 트랜잭션 등록"""
    current = dict(_connections.get() or {})
    current[db_name] = ctx
    _connections.set(current)


def clear_connection(db_name: str) -> None:
    """현재 컨텍스트에서 트랜잭션 제거"""
    current = dict(_connections.get() or {})
    current.pop(db_name, None)
    _connections.set(current)


def find_connection(db_name: str) -> Any | None:
    """현재 컨텍스트의 트랜잭션 조회 (없으면 None)"""
    return (_connections.get() or {}).get(db_name)
