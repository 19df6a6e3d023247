"""
Calendar Projector

주간 템플릿 + 취소 기록 + 생성된 세션 → 날짜별 상태

project()는 순수 함수 (I/O 없음, today는 호출자가 전달)
CalendarService는 저장소에서 입력을 모아 project()를 호출
"""
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import ValidationError
from .models import (
    Cancellation,
    DayKind,
    DayStatus,
    DayStatusType,
    SessionSummary,
    UpcomingTrainingDay,
    WeeklyTemplate,
    day_of_week,
)

GRID_DAYS = 42  # 6주 x 7일
UPCOMING_HORIZON_DAYS = 366


def month_grid_range(year: int, month: int) -> Tuple[date, date]:
    """월 캘린더 6x7 그리드 범위 (일요일 시작, 앞뒤 달 날짜 포함)"""
    if not 1 <= month <= 12:
        raise ValidationError(f"월은 1~12 사이여야 합니다: {month}", field="month", value=month)
    first = date(year, month, 1)
    start = first - timedelta(days=day_of_week(first))
    return start, start + timedelta(days=GRID_DAYS - 1)


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _index_cancellations(cancellations: Iterable[Cancellation]) -> Dict[date, Cancellation]:
    # 같은 날짜 중복 취소는 먼저 만든 것 하나만 사용
    by_date: Dict[date, Cancellation] = {}
    for c in sorted(cancellations, key=lambda c: c.created_at):
        by_date.setdefault(c.date, c)
    return by_date


def _index_sessions(sessions: Iterable[SessionSummary]) -> Dict[date, SessionSummary]:
    return {s.session.session_date: s for s in sessions}


def project(
    template: WeeklyTemplate,
    cancellations: Iterable[Cancellation],
    sessions: Iterable[SessionSummary],
    start: date,
    end: date,
    today: date,
    month: Optional[int] = None,
) -> List[DayStatus]:
    """
    날짜 범위의 각 날짜를 정확히 한 번씩 분류

    - 템플릿 비활성 → none
    - 활성 + 취소 → cancelled (세션이 있어도 취소가 우선)
    - 활성 + 취소 아님 + today 이전/당일 → past-active
    - 활성 + 취소 아님 + today 이후 → future-active

    비교는 날짜 단위로만 합니다.
    """
    if start > end:
        raise ValidationError("시작일이 종료일보다 늦을 수 없습니다", field="start")

    cancel_by_date = _index_cancellations(cancellations)
    session_by_date = _index_sessions(sessions)

    days: List[DayStatus] = []
    for current in iter_dates(start, end):
        entry = template.entry_for(current)
        in_month = month is None or current.month == month

        if not entry.enabled:
            days.append(DayStatus(
                date=current,
                day_of_week=entry.day_of_week,
                status=DayStatusType.none,
                kind=DayKind.unscheduled,
                template_entry=entry,
                in_month=in_month,
            ))
            continue

        cancellation = cancel_by_date.get(current)
        if cancellation:
            days.append(DayStatus(
                date=current,
                day_of_week=entry.day_of_week,
                status=DayStatusType.cancelled,
                kind=DayKind.cancelled,
                is_scheduled=True,
                is_cancelled=True,
                template_entry=entry,
                cancellation=cancellation,
                in_month=in_month,
            ))
            continue

        summary = session_by_date.get(current)
        if summary is None:
            kind = DayKind.active
        elif summary.has_valid_attendance:
            kind = DayKind.session_recorded
        else:
            kind = DayKind.session_pending

        days.append(DayStatus(
            date=current,
            day_of_week=entry.day_of_week,
            status=DayStatusType.past_active if current <= today else DayStatusType.future_active,
            kind=kind,
            is_scheduled=True,
            template_entry=entry,
            session_id=summary.session.id if summary else None,
            has_valid_attendance=summary.has_valid_attendance if summary else False,
            attendance_count=summary.attendance_count if summary else 0,
            in_month=in_month,
        ))

    return days


def project_month(
    template: WeeklyTemplate,
    cancellations: Iterable[Cancellation],
    sessions: Iterable[SessionSummary],
    year: int,
    month: int,
    today: date,
) -> List[DayStatus]:
    """월 그리드(42일) 투영"""
    start, end = month_grid_range(year, month)
    return project(template, cancellations, sessions, start, end, today, month=month)


def upcoming_training_days(
    template: WeeklyTemplate,
    cancellations: Iterable[Cancellation],
    sessions: Iterable[SessionSummary],
    today: date,
    limit: int,
) -> List[UpcomingTrainingDay]:
    """오늘 포함 다가오는 훈련일 (취소된 날 제외)"""
    if limit <= 0 or not template.enabled_days():
        return []

    cancel_by_date = _index_cancellations(cancellations)
    session_by_date = _index_sessions(sessions)

    upcoming: List[UpcomingTrainingDay] = []
    for current in iter_dates(today, today + timedelta(days=UPCOMING_HORIZON_DAYS)):
        entry = template.entry_for(current)
        if not entry.enabled or current in cancel_by_date:
            continue
        summary = session_by_date.get(current)
        upcoming.append(UpcomingTrainingDay(
            date=current,
            day_of_week=entry.day_of_week,
            day_name=entry.day_name,
            start_time=entry.start_time,
            end_time=entry.end_time,
            program_id=entry.default_program_id,
            session_id=summary.session.id if summary else None,
        ))
        if len(upcoming) >= limit:
            break
    return upcoming


# =============================================
# Calendar Service
# =============================================

class CalendarService:
    """저장소에서 투영 입력을 모으는 읽기 서비스"""

    def __init__(self, templates, cancellations, sessions, attendance, membership):
        self.templates = templates
        self.cancellations = cancellations
        self.sessions = sessions
        self.attendance = attendance
        self.membership = membership

    async def _load(self, club_id: str, start: date, end: date):
        template = await self.templates.get_template(club_id)
        cancellations = await self.cancellations.list(club_id, start, end)
        sessions = await self.sessions.list_in_range(club_id, start, end)
        # 회원 목록은 요청당 한 번만 조회
        snapshot = await self.membership.snapshot(club_id)
        summaries = await self.attendance.summaries(sessions, snapshot)
        return template, cancellations, summaries

    async def get_month(self, club_id: str, year: int, month: int, today: date) -> List[DayStatus]:
        start, end = month_grid_range(year, month)
        template, cancellations, summaries = await self._load(club_id, start, end)
        return project_month(template, cancellations, summaries, year, month, today)

    async def get_range(self, club_id: str, start: date, end: date, today: date) -> List[DayStatus]:
        if start > end:
            raise ValidationError("시작일이 종료일보다 늦을 수 없습니다", field="start")
        template, cancellations, summaries = await self._load(club_id, start, end)
        return project(template, cancellations, summaries, start, end, today)

    async def get_upcoming(self, club_id: str, today: date, limit: int) -> List[UpcomingTrainingDay]:
        end = today + timedelta(days=UPCOMING_HORIZON_DAYS)
        template, cancellations, summaries = await self._load(club_id, today, end)
        return upcoming_training_days(template, cancellations, summaries, today, limit)
