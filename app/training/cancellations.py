"""
훈련 취소 관리

- 단일 취소: 어떤 날짜든 가능
- 기간 일괄 취소: 템플릿 활성 요일만, 주말 제외 옵션
- 그룹 삭제: type + reason이 같은 일괄 취소 전체
"""
import uuid
from datetime import date
from typing import Dict, List, Optional, Tuple

from loguru import logger

from app.config import now
from database.supabase_client import TrainingDB

from .calendar import iter_dates
from .errors import NotFoundError, ValidationError
from .models import (
    WEEKEND_DAYS,
    BulkCancellationResult,
    Cancellation,
    CancellationGroup,
    CancellationType,
    WeeklyTemplate,
    day_of_week,
)
from .schedule import ScheduleTemplateStore


def _require(value: Optional[str], field: str, label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label}을(를) 입력해주세요", field=field)
    return str(value).strip()


def bulk_cancellation_dates(
    template: WeeklyTemplate, start: date, end: date, skip_weekends: bool
) -> List[date]:
    """일괄 취소 대상 날짜: 템플릿 활성 요일만 (skip_weekends면 토/일 제외)"""
    dates = []
    for current in iter_dates(start, end):
        if not template.is_enabled(current):
            continue
        if skip_weekends and day_of_week(current) in WEEKEND_DAYS:
            continue
        dates.append(current)
    return dates


class CancellationRegistry:
    def __init__(self, db: TrainingDB, templates: ScheduleTemplateStore):
        self.db = db
        self.templates = templates

    def _row(
        self,
        club_id: str,
        cancel_date: date,
        reason: str,
        cancellation_type: CancellationType,
        actor: str,
        is_bulk: bool,
        batch_id: Optional[str] = None,
    ) -> dict:
        return {
            "id": str(uuid.uuid4()),
            "club_id": club_id,
            "date": cancel_date.isoformat(),
            "reason": reason,
            "type": CancellationType(cancellation_type).value,
            "created_by": actor,
            "created_at": now().isoformat(),
            "is_bulk": is_bulk,
            "batch_id": batch_id,
        }

    async def add_single(
        self,
        club_id: str,
        cancel_date: date,
        reason: str,
        cancellation_type: CancellationType,
        actor: str,
    ) -> Cancellation:
        """하루 취소"""
        reason = _require(reason, "reason", "취소 사유")
        actor = _require(actor, "actor", "작성자")

        rows = await self.db.insert_cancellations([
            self._row(club_id, cancel_date, reason, cancellation_type, actor, is_bulk=False)
        ])
        cancellation = Cancellation(**rows[0])
        logger.info(f"훈련 취소: club={club_id} {cancel_date} ({cancellation.type.value}) by {actor}")
        return cancellation

    async def add_bulk_range(
        self,
        club_id: str,
        start: date,
        end: date,
        reason: str,
        cancellation_type: CancellationType,
        actor: str,
        skip_weekends: bool = True,
    ) -> BulkCancellationResult:
        """
        기간 일괄 취소

        대상 날짜가 하나도 없으면 ValidationError (조용히 0건 성공 처리하지 않음)
        """
        if start is None or end is None:
            raise ValidationError("시작일과 종료일을 입력해주세요", field="start_date")
        reason = _require(reason, "reason", "취소 사유")
        actor = _require(actor, "actor", "작성자")
        if start > end:
            raise ValidationError("시작일이 종료일보다 늦을 수 없습니다", field="start_date")

        # 요청 시점의 템플릿 기준
        template = await self.templates.get_template(club_id)
        dates = bulk_cancellation_dates(template, start, end, skip_weekends)
        if not dates:
            raise ValidationError("선택한 기간에 취소할 훈련일이 없습니다", field="start_date")

        batch_id = str(uuid.uuid4())
        rows = await self.db.insert_cancellations([
            self._row(club_id, d, reason, cancellation_type, actor, is_bulk=True, batch_id=batch_id)
            for d in dates
        ])
        cancellations = [Cancellation(**row) for row in rows]
        logger.info(
            f"일괄 취소: club={club_id} {start}~{end} {len(cancellations)}일 "
            f"({CancellationType(cancellation_type).value}: {reason})"
        )
        return BulkCancellationResult(
            created=len(cancellations),
            batch_id=batch_id,
            dates=dates,
            cancellations=cancellations,
        )

    async def list(
        self, club_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Cancellation]:
        rows = await self.db.list_cancellations(club_id, start, end)
        return [Cancellation(**row) for row in rows]

    async def list_groups(self, club_id: str) -> List[CancellationGroup]:
        """일괄 취소를 type + reason 기준으로 묶어서 반환"""
        grouped: Dict[Tuple[str, str], List[Cancellation]] = {}
        for c in await self.list(club_id):
            if c.is_bulk:
                grouped.setdefault((c.type.value, c.reason), []).append(c)

        groups = [
            CancellationGroup(
                type=key[0],
                reason=key[1],
                count=len(items),
                start_date=min(c.date for c in items),
                end_date=max(c.date for c in items),
                cancellation_ids=[c.id for c in items],
            )
            for key, items in grouped.items()
        ]
        return sorted(groups, key=lambda g: g.start_date)

    async def remove(self, club_id: str, cancellation_id: str) -> Cancellation:
        """취소 철회 (해당 날짜는 다시 활성)"""
        rows = await self.db.delete_cancellation(club_id, cancellation_id)
        if not rows:
            raise NotFoundError(f"취소 기록을 찾을 수 없습니다: {cancellation_id}", field="cancellation_id")
        logger.info(f"훈련 취소 철회: club={club_id} {rows[0]['date']}")
        return Cancellation(**rows[0])

    async def remove_group(
        self, club_id: str, cancellation_type: CancellationType, reason: str
    ) -> int:
        """
        type + reason이 같은 일괄 취소 전체 삭제

        서로 다른 일괄 작업이라도 type/reason이 같으면 함께 삭제됩니다.
        """
        reason = _require(reason, "reason", "취소 사유")
        rows = await self.db.delete_cancellation_group(
            club_id, CancellationType(cancellation_type).value, reason
        )
        if not rows:
            raise NotFoundError(f"일괄 취소 그룹을 찾을 수 없습니다: {reason}", field="reason")
        logger.info(f"일괄 취소 그룹 삭제: club={club_id} {reason} {len(rows)}건")
        return len(rows)
