"""
DatabaseRegistry: 이름 기반 데이터베이스 관리

database.yaml 예시:
    databases:
      default:
        type: sqlite
        path: ./data/jobs.db
        pool:
          pool_size: 5
"""

import logging
from typing import Any

from database.base import BaseDatabase
from database.exception import DatabaseError, DatabaseNotFoundError

logger = logging.getLogger(__name__)


class DatabaseRegistry:
    """초기화된 데이터베이스 인스턴스 보관소 (클래스 레벨)"""

    _databases: dict[str, BaseDatabase] = {}
    _default: str = 'default'

    @classmethod
    async def init_from_config(cls, config: dict[str, Any], names: list[str] | None = None) -> None:
        """
        설정에서 데이터베이스 초기화

        Args:
            config: database.yaml 내용 (databases 키 포함)
            names: 초기화할 DB 이름 목록 (None이면 전체)
        """
        databases = config.get('databases', {})
        targets = names if names is not None else list(databases.keys())

        for name in targets:
            if name in cls._databases:
                logger.debug(f"Database '{name}' already initialized, skipping")
                continue

            db_config = databases.get(name)
            if db_config is None:
                raise DatabaseNotFoundError(name)

            db_type = db_config.get('type', 'sqlite')
            if db_type != 'sqlite':
                raise DatabaseError(f"Unsupported database type '{db_type}' for '{name}'")

            from database.sqlite3 import SQLiteDatabase
            cls._databases[name] = await SQLiteDatabase.create(name, db_config)
            logger.info(f"Database '{name}' registered (type={db_type})")

    @classmethod
    def register(cls, db: BaseDatabase) -> None:
        """이미 생성된 인스턴스 등록"""
        cls._databases[db.name] = db

    @classmethod
    def get(cls, name: str | None = None) -> BaseDatabase:
        """이름으로 데이터베이스 조회 (None이면 기본 DB)"""
        key = name or cls._default
        if key not in cls._databases:
            raise DatabaseNotFoundError(key)
        return cls._databases[key]

    @classmethod
    def set_default(cls, name: str) -> None:
        """@transactional 기본 대상 DB 변경"""
        cls._default = name

    @classmethod
    def default_name(cls) -> str:
        return cls._default

    @classmethod
    def names(cls) -> list[str]:
        return list(cls._databases.keys())

    @classmethod
    async def close_all(cls) -> None:
        """모든 데이터베이스 연결 종료"""
        for name, db in list(cls._databases.items()):
            try:
                await db.close()
            except Exception as e:
                logger.error(f"Error closing database '{name}': {e}")
        cls._databases.clear()

    @classmethod
    def clear(cls) -> None:
        """레지스트리 초기화 (테스트용, 연결은 닫지 않음)"""
        cls._databases.clear()
        cls._default = 'default'
