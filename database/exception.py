"""
Database 관련 예외 클래스 정의
"""


class DatabaseError(Exception):
    """Database 기본 예외"""
    pass


class ConnectionPoolExhaustedError(DatabaseError):
    """커넥션풀에서 연결을 얻지 못함"""
    pass


class TransactionError(DatabaseError):
    """트랜잭션 시작/커밋/롤백 실패"""
    pass


class QueryExecutionError(DatabaseError):
    """쿼리 실행 실패"""
    def __init__(self, message: str, sql: str | None = None):
        self.sql = sql
        self.message = message
        super().__init__(self.message)


class ReadOnlyTransactionError(DatabaseError):
    """읽기 전용(query_only) 트랜잭션에서 쓰기 시도"""
    pass


class DatabaseNotFoundError(DatabaseError):
    """레지스트리에 등록되지 않은 DB 이름"""
    def __init__(self, name: str):
        self.name = name
        self.message = f"Database '{name}' is not registered"
        super().__init__(self.message)
