"""
훈련 세션 생성 (필요할 때만)

날짜별 세션은 (club_id, session_date) 유일 인덱스로 하루 하나만 존재.
동시 생성 시 먼저 저장된 세션을 다시 읽어서 반환.
"""
import uuid
from datetime import date
from typing import List, Optional

from loguru import logger

from app.config import now
from database.supabase_client import TrainingDB

from .collaborators import CatalogService
from .errors import ConflictError, NotFoundError, ValidationError
from .models import TrainingSession, WeeklyTemplateEntry
from .schedule import ScheduleTemplateStore


def session_title(entry: WeeklyTemplateEntry, program_name: Optional[str]) -> str:
    """세션 제목: "<프로그램명> - <요일>" """
    return f"{program_name or 'Training'} - {entry.day_name}"


class SessionMaterializer:
    def __init__(self, db: TrainingDB, templates: ScheduleTemplateStore, catalog: CatalogService):
        self.db = db
        self.templates = templates
        self.catalog = catalog

    async def get(self, session_id: str) -> TrainingSession:
        row = await self.db.get_session(session_id)
        if not row:
            raise NotFoundError(f"세션을 찾을 수 없습니다: {session_id}", field="session_id")
        return TrainingSession(**row)

    async def find(self, club_id: str, session_date: date) -> Optional[TrainingSession]:
        row = await self.db.get_session_by_date(club_id, session_date)
        return TrainingSession(**row) if row else None

    async def list_in_range(self, club_id: str, start: date, end: date) -> List[TrainingSession]:
        rows = await self.db.list_sessions(club_id, start=start, end=end)
        return [TrainingSession(**row) for row in rows]

    async def list_before(self, club_id: str, before: date) -> List[TrainingSession]:
        """before 날짜 이전(미포함) 세션"""
        rows = await self.db.list_sessions(club_id, before=before)
        return [TrainingSession(**row) for row in rows]

    async def ensure_session(self, club_id: str, session_date: date, actor: str) -> TrainingSession:
        """
        세션 조회 또는 생성 (멱등)

        1. 해당 날짜 세션이 있으면 그대로 반환
        2. 없으면 현재 템플릿의 기본 프로그램/시간으로 생성 (actor = coach_id)
        3. 동시 생성으로 유일 인덱스 충돌 시 먼저 저장된 세션 반환

        템플릿 비활성 요일이나 취소된 날짜는 생성하지 않음 (ValidationError)
        """
        existing = await self.find(club_id, session_date)
        if existing:
            return existing

        # 페이지 로딩 시점이 아닌 지금 시점의 템플릿
        template = await self.templates.get_template(club_id)
        entry = template.entry_for(session_date)
        if not entry.enabled:
            raise ValidationError(
                f"{session_date}({entry.day_name})은 훈련일이 아닙니다", field="date"
            )
        if await self.db.list_cancellations(club_id, session_date, session_date):
            raise ValidationError(f"{session_date} 훈련은 취소되었습니다", field="date")

        program_name = None
        if entry.default_program_id:
            program = await self.catalog.get_program(entry.default_program_id)
            if program:
                program_name = program.name
            else:
                logger.warning(
                    f"기본 프로그램 없음 (무시): club={club_id} program={entry.default_program_id}"
                )

        data = {
            "id": str(uuid.uuid4()),
            "club_id": club_id,
            "session_date": session_date.isoformat(),
            "program_id": entry.default_program_id if program_name else None,
            "title": session_title(entry, program_name),
            "start_time": entry.start_time,
            "end_time": entry.end_time,
            "coach_id": actor,
            "location": "",
            "created_at": now().isoformat(),
        }

        try:
            row = await self.db.insert_session(data)
        except ConflictError:
            winner = await self.find(club_id, session_date)
            if winner is None:
                raise
            logger.info(f"세션 동시 생성 감지, 기존 세션 사용: {winner.id} ({session_date})")
            return winner

        session = TrainingSession(**row)
        logger.info(f"세션 생성: club={club_id} {session_date} '{session.title}' ({session.id})")
        return session
