"""
개인 최고 기록(PB) / 목표 평가

단위 문자열로 비교 방향 결정:
- 시간 단위 (seconds, minutes, hours, min, sec, time) → 낮을수록 좋음
- 그 외 (kg, m, reps, points, 알 수 없는 단위) → 높을수록 좋음
"""
import math
import uuid
from datetime import datetime
from typing import List, Optional, Union

from loguru import logger

from app.config import now
from database.supabase_client import TrainingDB

from .collaborators import CatalogService
from .errors import ConflictError, ValidationError
from .models import (
    Goal,
    GoalCreate,
    GoalStatus,
    LeaderboardEntry,
    PersonalRecord,
    ResultEvaluation,
)

TIME_UNIT_KEYWORDS = ("second", "minute", "hour", "time")
TIME_UNIT_EXACT = {"sec", "secs", "min", "mins", "hr", "hrs"}

# 동시 갱신 충돌 시 다시 읽고 재시도하는 횟수
PB_UPDATE_ATTEMPTS = 3


def is_lower_better(unit: Optional[str]) -> bool:
    if not unit:
        return False
    key = unit.strip().lower()
    return key in TIME_UNIT_EXACT or any(word in key for word in TIME_UNIT_KEYWORDS)


def is_better(value: float, best: float, lower_is_better: bool) -> bool:
    """엄격한 개선만 True (동점은 갱신 안 함)"""
    return value < best if lower_is_better else value > best


def reaches_target(value: float, target: float, lower_is_better: bool) -> bool:
    return value <= target if lower_is_better else value >= target


def _finite(value: float, raw) -> float:
    if not math.isfinite(value):
        raise ValueError(f"유효하지 않은 숫자입니다: {raw}")
    return value


def parse_time_value(raw: str) -> float:
    """
    시간 문자열 → 초

    "1:23.45" → 83.45, "1:23" → 83.0, "83.45" → 83.45
    """
    text = raw.strip()
    if ":" in text:
        parts = text.split(":")
        if len(parts) != 2:
            raise ValueError(f"시간 형식이 올바르지 않습니다: {text} (MM:SS 또는 MM:SS.ms)")
        try:
            minutes, seconds = float(parts[0]), float(parts[1])
        except ValueError:
            raise ValueError(f"시간 형식이 올바르지 않습니다: {text} (MM:SS 또는 MM:SS.ms)")
        return _finite(_finite(minutes, text) * 60 + _finite(seconds, text), text)
    try:
        return _finite(float(text), text)
    except ValueError:
        raise ValueError(f"시간 값이 올바르지 않습니다: {text}")


def parse_performance_value(raw: Union[str, float, int, None], unit: Optional[str]) -> float:
    """측정값 파싱 (시간 단위는 MM:SS 형식 허용)"""
    if raw is None:
        raise ValueError("측정값을 입력해주세요")
    if isinstance(raw, (int, float)):
        return _finite(float(raw), raw)
    if not raw.strip():
        raise ValueError("측정값을 입력해주세요")
    if is_lower_better(unit):
        return parse_time_value(raw)
    try:
        value = float(raw.strip())
    except ValueError:
        raise ValueError(f"숫자가 아닙니다: {raw.strip()}")
    return _finite(value, raw.strip())


def format_time_value(seconds: Optional[float]) -> str:
    """초 → "M:SS.ss" (1분 미만은 "SS.ss")"""
    if seconds is None:
        return ""
    minutes = int(seconds // 60)
    remaining = seconds - minutes * 60
    if minutes > 0:
        return f"{minutes}:{remaining:05.2f}"
    return f"{remaining:.2f}"


class PBGoalEvaluator:
    def __init__(self, db: TrainingDB, catalog: CatalogService):
        self.db = db
        self.catalog = catalog

    async def _resolve_unit(self, category_id: str, unit: Optional[str]) -> str:
        if unit is not None:
            return unit
        category = await self.catalog.get_category(category_id)
        return category.unit

    async def apply_result(
        self,
        athlete_id: str,
        category_id: str,
        value: Union[str, float],
        unit: Optional[str] = None,
        test_id: Optional[str] = None,
    ) -> ResultEvaluation:
        """
        측정 결과 반영

        1. PB 없음 → 생성 / 엄격히 더 좋음 → 교체 / 같거나 나쁨 → 유지
        2. 이 선수+카테고리의 active 목표 중 달성한 것 → completed (되돌리지 않음)
        """
        unit = await self._resolve_unit(category_id, unit)
        try:
            parsed = parse_performance_value(value, unit)
        except ValueError as e:
            raise ValidationError(str(e), field="value", value=value) from e

        lower = is_lower_better(unit)
        evaluation = ResultEvaluation(
            athlete_id=athlete_id,
            category_id=category_id,
            value=parsed,
            lower_is_better=lower,
        )
        recorded_at = now()

        await self._update_personal_best(evaluation, test_id, recorded_at)
        evaluation.goals_completed = await self._complete_goals(evaluation, test_id, recorded_at)
        return evaluation

    async def _update_personal_best(
        self, evaluation: ResultEvaluation, test_id: Optional[str], recorded_at: datetime
    ) -> None:
        athlete_id, category_id = evaluation.athlete_id, evaluation.category_id
        data = {
            "value": evaluation.value,
            "recorded_at": recorded_at.isoformat(),
            "test_id": test_id,
        }

        for _ in range(PB_UPDATE_ATTEMPTS):
            row = await self.db.get_personal_record(athlete_id, category_id)

            if row is None:
                try:
                    await self.db.insert_personal_record({
                        "id": str(uuid.uuid4()),
                        "athlete_id": athlete_id,
                        "category_id": category_id,
                        **data,
                    })
                except ConflictError:
                    # 다른 요청이 먼저 생성 → 다시 읽어서 비교
                    continue
                evaluation.pb_created = True
                evaluation.pb_updated = True
                logger.info(f"PB 생성: athlete={athlete_id} category={category_id} {evaluation.value}")
                return

            current = PersonalRecord(**row)
            evaluation.previous_best = current.value
            if not is_better(evaluation.value, current.value, evaluation.lower_is_better):
                return

            if await self.db.replace_personal_record(current.id, current.value, data):
                evaluation.pb_updated = True
                logger.info(
                    f"PB 갱신: athlete={athlete_id} category={category_id} "
                    f"{current.value} → {evaluation.value}"
                )
                return
            # 그 사이 다른 값으로 바뀜 → 다시 읽기

        raise ConflictError(
            f"개인 기록 갱신 경합이 계속됩니다: athlete={athlete_id} category={category_id}"
        )

    async def _complete_goals(
        self, evaluation: ResultEvaluation, test_id: Optional[str], recorded_at: datetime
    ) -> List[str]:
        completed: List[str] = []
        rows = await self.db.list_active_goals(evaluation.athlete_id, evaluation.category_id)
        for goal in (Goal(**row) for row in rows):
            if not reaches_target(evaluation.value, goal.target_value, evaluation.lower_is_better):
                continue
            changed = await self.db.complete_goal(goal.id, {
                "status": GoalStatus.completed.value,
                "completed_value": evaluation.value,
                "completed_test_id": test_id,
                "completed_date": recorded_at.isoformat(),
            })
            if changed:
                completed.append(goal.id)
                logger.info(f"목표 달성: goal={goal.id} athlete={goal.athlete_id} {evaluation.value}")
        return completed

    async def create_goal(self, request: GoalCreate) -> Goal:
        await self.catalog.get_category(request.category_id)
        row = await self.db.insert_goal({
            "id": str(uuid.uuid4()),
            "athlete_id": request.athlete_id,
            "category_id": request.category_id,
            "target_value": request.target_value,
            "target_date": request.target_date.isoformat() if request.target_date else None,
            "status": GoalStatus.active.value,
        })
        return Goal(**row)

    async def leaderboard(
        self, category_id: str, unit: Optional[str] = None, limit: int = 10
    ) -> List[LeaderboardEntry]:
        """카테고리 PB 순위 (단위 방향 기준, 동점은 같은 순위)"""
        unit = await self._resolve_unit(category_id, unit)
        lower = is_lower_better(unit)
        records = [PersonalRecord(**row) for row in await self.db.list_personal_records(category_id)]
        records.sort(key=lambda r: (r.value if lower else -r.value, r.recorded_at))

        entries: List[LeaderboardEntry] = []
        for position, record in enumerate(records[:limit], start=1):
            rank = position
            if entries and entries[-1].value == record.value:
                rank = entries[-1].rank
            entries.append(LeaderboardEntry(
                rank=rank,
                athlete_id=record.athlete_id,
                value=record.value,
                recorded_at=record.recorded_at,
                test_id=record.test_id,
            ))
        return entries
