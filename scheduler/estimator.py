"""
next_run 추정기

크론 표현식의 시/분만 보고 "오늘 HH:MM, 이미 지났으면 내일 HH:MM"을 계산합니다.
요일/일/월 조건은 보지 않으므로 화면 표시와 감사용 참고값일 뿐이며,
잡이 실행될 시점은 TimerEngine(croniter)이 결정합니다.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

FALLBACK_DELAY = timedelta(hours=24)


@dataclass(frozen=True)
class NextRunEstimate:
    """추정 결과 (fallback=True면 reason에 사유)"""
    run_at: datetime
    fallback: bool = False
    reason: str | None = None


def estimate_next_run(expression: str, now: datetime) -> NextRunEstimate:
    """
    다음 실행 시각 추정 (예외를 던지지 않음)

    Args:
        expression: 크론 표현식 (분 시 일 월 요일)
        now: 기준 시각 (시간대 포함 권장, 결과도 같은 시간대)

    Returns:
        NextRunEstimate: 파싱 실패 시 now + 24h, fallback=True
    """
    parts = expression.split()
    if len(parts) < 5:
        return NextRunEstimate(
            run_at=now + FALLBACK_DELAY,
            fallback=True,
            reason=f"expected 5 fields, got {len(parts)}",
        )

    try:
        minute = int(parts[0])
        hour = int(parts[1])
        candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    except ValueError as e:
        return NextRunEstimate(
            run_at=now + FALLBACK_DELAY,
            fallback=True,
            reason=f"hour/minute not usable: {e}",
        )

    if candidate <= now:
        candidate += timedelta(days=1)

    return NextRunEstimate(run_at=candidate)
