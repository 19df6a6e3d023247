"""
주간 훈련 템플릿 저장소
"""
from typing import List

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from app.config import get_settings, now
from database.supabase_client import TrainingDB

from .errors import ValidationError
from .models import WeeklyTemplate, WeeklyTemplateEntry


def default_template(club_id: str) -> WeeklyTemplate:
    """저장된 템플릿이 없을 때: 7일 모두 비활성, 기본 시간"""
    settings = get_settings()
    return WeeklyTemplate(
        club_id=club_id,
        entries=[
            WeeklyTemplateEntry(
                day_of_week=day,
                enabled=False,
                start_time=settings.DEFAULT_START_TIME,
                end_time=settings.DEFAULT_END_TIME,
            )
            for day in range(7)
        ],
    )


class ScheduleTemplateStore:
    def __init__(self, db: TrainingDB):
        self.db = db

    async def get_template(self, club_id: str) -> WeeklyTemplate:
        """
        현재 템플릿 조회

        세션 생성처럼 템플릿 기본값을 쓰는 작업은 매번 새로 읽어야 합니다.
        """
        row = await self.db.get_schedule(club_id)
        if not row:
            return default_template(club_id)
        return WeeklyTemplate(
            club_id=club_id,
            entries=row.get("schedule") or [],
            updated_at=row.get("updated_at"),
            updated_by=row.get("updated_by"),
        )

    async def save_template(
        self, club_id: str, entries: List[WeeklyTemplateEntry], actor: str
    ) -> WeeklyTemplate:
        """템플릿 전체 교체 (이력 없음)"""
        try:
            template = WeeklyTemplate(
                club_id=club_id, entries=entries, updated_at=now(), updated_by=actor
            )
        except PydanticValidationError as e:
            raise ValidationError(f"주간 템플릿이 올바르지 않습니다: {e.errors()[0]['msg']}", field="entries") from e

        await self.db.save_schedule({
            "club_id": club_id,
            "schedule": [e.model_dump(mode="json") for e in template.entries],
            "updated_at": template.updated_at.isoformat(),
            "updated_by": actor,
        })
        logger.info(f"주간 템플릿 저장: club={club_id} 활성 요일={template.enabled_days()} by {actor}")
        return template
