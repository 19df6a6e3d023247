"""
Training Engine Services

저장소 하나를 공유하는 서비스 묶음
"""
from functools import lru_cache
from typing import Optional

from database.supabase_client import TrainingDB

from .attendance import AttendanceTracker
from .calendar import CalendarService
from .cancellations import CancellationRegistry
from .collaborators import CatalogService, MembershipService
from .performance import PBGoalEvaluator
from .reconciliation import ReconciliationSweeper
from .schedule import ScheduleTemplateStore
from .sessions import SessionMaterializer


class TrainingServices:
    """훈련 엔진 서비스 컨테이너"""

    def __init__(self, db: Optional[TrainingDB] = None):
        self.db = db or TrainingDB()

        # 외부 데이터
        self.membership = MembershipService(self.db)
        self.catalog = CatalogService(self.db)

        # 일정
        self.templates = ScheduleTemplateStore(self.db)
        self.cancellations = CancellationRegistry(self.db, self.templates)
        self.sessions = SessionMaterializer(self.db, self.templates, self.catalog)

        # 출석 / 정리
        self.attendance = AttendanceTracker(self.db, self.sessions, self.membership)
        self.sweeper = ReconciliationSweeper(self.db, self.sessions, self.membership)

        # 기록
        self.performance = PBGoalEvaluator(self.db, self.catalog)

        self.calendar = CalendarService(
            self.templates,
            self.cancellations,
            self.sessions,
            self.attendance,
            self.membership,
        )


@lru_cache()
def get_services() -> TrainingServices:
    """FastAPI 의존성 (테스트에서는 dependency_overrides로 교체)"""
    return TrainingServices()
