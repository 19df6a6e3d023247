"""
Training Engine Router

클럽 훈련 일정 / 출석 / 기록 API
- 캘린더 (월 그리드, 다가오는 훈련일)
- 주간 템플릿
- 훈련 취소 (단일, 기간 일괄, 그룹 삭제)
- 세션 생성, 출석부, 출석 입력
- 탈퇴 회원 기록 정리
- PB / 목표 / 순위
"""

from datetime import date
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, Query

from app.config import get_settings, today
from .dependencies import (
    ClubMemberContext,
    get_current_club_member,
    require_admin,
    require_coach,
)
from .errors import NotFoundError
from .models import (
    AthleteAttendanceStats,
    AttendanceBulkUpdate,
    BulkCancellationCreate,
    BulkCancellationResult,
    BulkUpsertResult,
    Cancellation,
    CancellationCreate,
    CancellationGroup,
    CancellationType,
    DayStatus,
    EnsureSessionRequest,
    Goal,
    GoalCreate,
    LeaderboardEntry,
    OrphanReport,
    ResultEvaluation,
    ResultSubmission,
    RosterRow,
    SweepResult,
    TemplateUpdate,
    TrainingSession,
    UpcomingTrainingDay,
    WeeklyTemplate,
)
from .service import TrainingServices, get_services

router = APIRouter(prefix="/training", tags=["Training"])


def get_today() -> date:
    """요청 기준 오늘 (요청당 한 번 계산)"""
    return today()


async def _club_session(
    services: TrainingServices, session_id: str, member: ClubMemberContext
) -> TrainingSession:
    session = await services.sessions.get(session_id)
    if session.club_id != member.club_id:
        # 다른 클럽 세션은 존재 자체를 노출하지 않음
        raise NotFoundError(f"세션을 찾을 수 없습니다: {session_id}", field="session_id")
    return session


# =============================================
# Calendar
# =============================================

@router.get("/calendar/upcoming", response_model=List[UpcomingTrainingDay])
async def get_upcoming_days(
    limit: Optional[int] = Query(None, ge=1, le=100),
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
    current_date: date = Depends(get_today),
):
    """다가오는 훈련일 (오늘 포함, 취소일 제외)"""
    return await services.calendar.get_upcoming(
        member.club_id, current_date, limit or get_settings().UPCOMING_DAYS_LIMIT
    )


@router.get("/calendar", response_model=List[DayStatus])
async def get_calendar_range(
    start_date: date,
    end_date: date,
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
    current_date: date = Depends(get_today),
):
    """임의 기간 캘린더 (시작일 > 종료일이면 422)"""
    return await services.calendar.get_range(member.club_id, start_date, end_date, current_date)


@router.get("/calendar/{year}/{month}", response_model=List[DayStatus])
async def get_calendar_month(
    year: int,
    month: int,
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
    current_date: date = Depends(get_today),
):
    """
    월 캘린더 (42일 그리드)

    날짜별 status: none / cancelled / past-active / future-active
    """
    return await services.calendar.get_month(member.club_id, year, month, current_date)


# =============================================
# Weekly Template
# =============================================

@router.get("/template", response_model=WeeklyTemplate)
async def get_template(
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
):
    return await services.templates.get_template(member.club_id)


@router.put("/template", response_model=WeeklyTemplate)
async def save_template(
    request: TemplateUpdate,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """주간 템플릿 전체 교체"""
    return await services.templates.save_template(member.club_id, request.entries, member.member_id)


# =============================================
# Cancellations
# =============================================

@router.get("/cancellations", response_model=List[Cancellation])
async def list_cancellations(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
):
    return await services.cancellations.list(member.club_id, start_date, end_date)


@router.get("/cancellations/groups", response_model=List[CancellationGroup])
async def list_cancellation_groups(
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
):
    """일괄 취소 그룹 (type + reason 기준)"""
    return await services.cancellations.list_groups(member.club_id)


@router.post("/cancellations", response_model=Cancellation, status_code=201)
async def cancel_day(
    request: CancellationCreate,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    return await services.cancellations.add_single(
        member.club_id, request.date, request.reason, request.type, member.member_id
    )


@router.post("/cancellations/bulk", response_model=BulkCancellationResult, status_code=201)
async def cancel_range(
    request: BulkCancellationCreate,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """
    기간 일괄 취소

    취소할 훈련일이 없으면 422
    """
    return await services.cancellations.add_bulk_range(
        member.club_id,
        request.start_date,
        request.end_date,
        request.reason,
        request.type,
        member.member_id,
        skip_weekends=request.skip_weekends,
    )


@router.delete("/cancellations/groups")
async def remove_cancellation_group(
    type: CancellationType,
    reason: str,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    deleted = await services.cancellations.remove_group(member.club_id, type, reason)
    return {"success": True, "deleted": deleted}


@router.delete("/cancellations/{cancellation_id}")
async def remove_cancellation(
    cancellation_id: str,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """취소 철회"""
    cancellation = await services.cancellations.remove(member.club_id, cancellation_id)
    return {"success": True, "date": cancellation.date}


# =============================================
# Sessions & Attendance
# =============================================

@router.post("/sessions", response_model=TrainingSession)
async def ensure_session(
    request: EnsureSessionRequest,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """해당 날짜 세션 조회, 없으면 템플릿 기본값으로 생성"""
    return await services.sessions.ensure_session(member.club_id, request.date, member.member_id)


@router.get("/sessions/{session_id}/roster", response_model=List[RosterRow])
async def get_roster(
    session_id: str,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """출석부 (미체크 회원 포함, 탈퇴 회원 표시)"""
    await _club_session(services, session_id, member)
    return await services.attendance.roster(session_id)


@router.put("/sessions/{session_id}/attendance", response_model=BulkUpsertResult)
async def save_attendance(
    session_id: str,
    request: AttendanceBulkUpdate,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    await _club_session(services, session_id, member)
    return await services.attendance.bulk_upsert(session_id, request.entries, member.member_id)


@router.delete("/sessions/{session_id}/attendance/{athlete_id}")
async def remove_attendance_record(
    session_id: str,
    athlete_id: str,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """출석 기록 삭제 (탈퇴 회원 기록 정리)"""
    await _club_session(services, session_id, member)
    await services.attendance.remove_record(session_id, athlete_id)
    return {"success": True}


# =============================================
# Reconciliation
# =============================================

@router.get("/sweep/preview", response_model=List[OrphanReport])
async def preview_sweep(
    member: ClubMemberContext = Depends(require_admin),
    services: TrainingServices = Depends(get_services),
    current_date: date = Depends(get_today),
):
    return await services.sweeper.inspect(member.club_id, current_date)


@router.post("/sweep", response_model=SweepResult)
async def sweep_orphans(
    member: ClubMemberContext = Depends(require_admin),
    services: TrainingServices = Depends(get_services),
    current_date: date = Depends(get_today),
):
    """지난 세션의 탈퇴 회원 기록 정리"""
    return await services.sweeper.sweep_orphans(member.club_id, current_date)


# =============================================
# Stats / Performance
# =============================================

@router.get("/stats/attendance", response_model=Dict[str, AthleteAttendanceStats])
async def get_attendance_stats(
    athlete_id: Optional[List[str]] = Query(None),
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
    current_date: date = Depends(get_today),
):
    """선수별 출석 통계 (athlete_id 미지정 시 전체 회원)"""
    if not athlete_id:
        members = await services.membership.list_active_members(member.club_id)
        athlete_id = [m.athlete_id for m in members]
    return await services.attendance.athlete_stats(member.club_id, athlete_id, current_date)


@router.post("/results", response_model=ResultEvaluation)
async def submit_result(
    request: ResultSubmission,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    """측정 결과 반영 (PB 갱신, 목표 달성 처리)"""
    return await services.performance.apply_result(
        request.athlete_id,
        request.category_id,
        request.value,
        unit=request.unit,
        test_id=request.test_id,
    )


@router.post("/goals", response_model=Goal, status_code=201)
async def create_goal(
    request: GoalCreate,
    member: ClubMemberContext = Depends(require_coach),
    services: TrainingServices = Depends(get_services),
):
    return await services.performance.create_goal(request)


@router.get("/leaderboard/{category_id}", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    category_id: str,
    limit: int = Query(10, ge=1, le=100),
    member: ClubMemberContext = Depends(get_current_club_member),
    services: TrainingServices = Depends(get_services),
):
    return await services.performance.leaderboard(category_id, limit=limit)
