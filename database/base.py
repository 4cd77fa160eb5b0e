"""데이터베이스 공통 인터페이스"""

from abc import ABC, abstractmethod
from typing import Any


class BaseDatabase(ABC):
    """비동기 데이터베이스 기본 클래스"""

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def transaction(self, readonly: bool = False) -> Any:
        """트랜잭션 컨텍스트 매니저 반환 (async with)"""
        pass

    @abstractmethod
    def load_queries(self, name: str, sql_path: str) -> Any:
        """SQL 파일을 로드하여 이름으로 캐시"""
        pass

    @abstractmethod
    def get_queries(self, name: str) -> Any | None:
        """캐시된 쿼리 세트 반환"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """연결 종료"""
        pass
