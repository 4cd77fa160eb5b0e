"""
next_run 추정기 테스트

테스트 항목:
1. 오늘 예정 시각이 남아 있으면 오늘, 지났으면 내일
2. 기준 시각과 같은 시각은 내일로 넘김
3. 시/분이 숫자가 아닌 표현식은 now + 24h (fallback)
4. 필드 부족 / 범위 초과 값도 예외 없이 fallback
5. 요일 조건은 무시 (주간 잡도 일 단위로 추정)

실행: python -m pytest test/estimator_test.py -v
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from scheduler.estimator import FALLBACK_DELAY, estimate_next_run


def at(hour: int, minute: int, second: int = 0, day: int = 19) -> datetime:
    return datetime(2026, 10, day, hour, minute, second, tzinfo=timezone.utc)


class TestEstimateNextRun:
    """정상 추정"""

    def test_later_today(self):
        estimate = estimate_next_run("0 9 * * *", at(8, 0))
        assert estimate.run_at == at(9, 0)
        assert estimate.fallback is False
        assert estimate.reason is None

    def test_already_passed_rolls_to_tomorrow(self):
        estimate = estimate_next_run("0 2 * * *", at(10, 0))
        assert estimate.run_at == at(2, 0, day=20)

    def test_exact_time_rolls_to_tomorrow(self):
        estimate = estimate_next_run("30 14 * * *", at(14, 30))
        assert estimate.run_at == at(14, 30, day=20)

    def test_seconds_are_truncated(self):
        estimate = estimate_next_run("15 12 * * *", at(12, 14, 59))
        assert estimate.run_at == at(12, 15)

    def test_day_of_week_ignored(self):
        """월요일 08:00 잡도 다음 08:00으로 추정 (2026-10-19는 월요일)"""
        estimate = estimate_next_run("0 8 * * 1", at(9, 0))
        assert estimate.run_at == at(8, 0, day=20)
        assert estimate.fallback is False

    def test_keeps_timezone_of_now(self):
        seoul = ZoneInfo("Asia/Seoul")
        now = datetime(2026, 10, 19, 23, 0, tzinfo=seoul)
        estimate = estimate_next_run("0 0 * * *", now)
        assert estimate.run_at == datetime(2026, 10, 20, 0, 0, tzinfo=seoul)
        assert estimate.run_at.tzinfo is seoul


class TestFallback:
    """추정 불가 표현식"""

    @pytest.mark.parametrize("expression", [
        "*/5 * * * *",
        "0 */2 * * *",
        "0-30 9 * * *",
        "0 9,18 * * *",
    ])
    def test_non_numeric_fields(self, expression):
        now = at(10, 0)
        estimate = estimate_next_run(expression, now)
        assert estimate.fallback is True
        assert estimate.run_at == now + FALLBACK_DELAY
        assert estimate.reason

    @pytest.mark.parametrize("expression", ["", "0 9", "0 9 * *"])
    def test_too_few_fields(self, expression):
        now = at(10, 0)
        estimate = estimate_next_run(expression, now)
        assert estimate.fallback is True
        assert estimate.run_at == now + timedelta(hours=24)

    def test_out_of_range_values(self):
        now = at(10, 0)
        estimate = estimate_next_run("75 9 * * *", now)
        assert estimate.fallback is True
        assert estimate.run_at == now + FALLBACK_DELAY

    def test_fallback_delay_is_one_day(self):
        assert FALLBACK_DELAY == timedelta(hours=24)
