"""
Scheduler 관련 예외 클래스 정의
"""


class SchedulerError(Exception):
    """Scheduler 기본 예외"""
    pass


class JobNotFoundError(SchedulerError):
    """레지스트리 또는 저장소에 없는 잡 이름"""
    def __init__(self, job_name: str):
        self.job_name = job_name
        self.message = f"Job not found: {job_name}"
        super().__init__(self.message)


class DuplicateJobError(SchedulerError):
    """같은 이름의 잡이 이미 등록됨"""
    def __init__(self, job_name: str):
        self.job_name = job_name
        self.message = f"Job '{job_name}' is already registered"
        super().__init__(self.message)


class JobRegistrationError(SchedulerError):
    """크론 표현식이 잘못되어 타이머 등록 실패"""
    def __init__(self, job_name: str, schedule: str, message: str = None):
        self.job_name = job_name
        self.schedule = schedule
        self.message = message or f"Invalid schedule '{schedule}' for job '{job_name}'"
        super().__init__(self.message)


class TaskFailureError(SchedulerError):
    """
    잡 본문(task)이 예외를 던짐

    수동 실행(run-now) 호출자에게만 전파됩니다. result에 실행 결과가 담깁니다.
    """
    def __init__(self, job_name: str, error: str, result=None):
        self.job_name = job_name
        self.error = error
        self.result = result
        self.message = f"Job '{job_name}' failed: {error}"
        super().__init__(self.message)


class JobAlreadyRunningError(SchedulerError):
    """allow_overlap=False 상태에서 실행 중인 잡을 다시 실행하려 함"""
    def __init__(self, job_name: str):
        self.job_name = job_name
        self.message = f"Job '{job_name}' is already running"
        super().__init__(self.message)


class PersistenceError(SchedulerError):
    """잡 저장소 읽기/쓰기 실패"""
    def __init__(self, operation: str, message: str = None):
        self.operation = operation
        self.message = message or f"Repository operation '{operation}' failed"
        super().__init__(self.message)
