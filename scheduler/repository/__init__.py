"""잡 저장소 패키지"""

from scheduler.repository.base import JobRepository
from scheduler.repository.memory import InMemoryJobRepository
from scheduler.repository.sqlite import SQLiteJobRepository

__all__ = ['JobRepository', 'InMemoryJobRepository', 'SQLiteJobRepository']
