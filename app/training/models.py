"""
Training Engine Models

Pydantic 모델 정의
- 주간 템플릿, 훈련 취소, 훈련 세션, 출석
- 캘린더 투영 결과
- 개인 최고 기록(PB), 목표
"""

import re
from datetime import date, datetime
from typing import Optional, List, Union
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator


# 0 = 일요일 ... 6 = 토요일
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEKEND_DAYS = {0, 6}

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def day_of_week(value: date) -> int:
    """달력 날짜 → 요일 번호 (0 = 일요일)"""
    return (value.weekday() + 1) % 7


# =============================================
# Enums
# =============================================

class ClubRole(str, Enum):
    """클럽 내 역할"""
    owner = "owner"       # 클럽 대표
    admin = "admin"       # 관리자
    coach = "coach"       # 코치
    athlete = "athlete"   # 선수
    parent = "parent"     # 학부모


class CancellationType(str, Enum):
    """훈련 취소 유형"""
    vacation = "vacation"         # 휴가/방학
    maintenance = "maintenance"   # 시설 보수
    weather = "weather"           # 기상 악화
    other = "other"               # 기타


class AttendanceStatus(str, Enum):
    """출석 상태"""
    unmarked = ""                 # 미체크 (absent와 구분)
    present = "present"           # 출석
    late = "late"                 # 지각
    absent = "absent"             # 결석


class DayStatusType(str, Enum):
    """캘린더 날짜 상태"""
    none = "none"                       # 일반 날짜 (훈련 없음)
    cancelled = "cancelled"             # 훈련 취소
    past_active = "past-active"         # 지난/오늘 훈련 (출석 입력 가능)
    future_active = "future-active"     # 예정 훈련 (취소 가능)


class DayKind(str, Enum):
    """날짜 상태의 근거 (다섯 가지 중 정확히 하나)"""
    unscheduled = "unscheduled"               # 템플릿 비활성
    cancelled = "cancelled"                   # 활성 + 취소
    active = "active"                         # 활성, 세션 없음
    session_pending = "session_pending"       # 세션 있음, 유효 출석 없음
    session_recorded = "session_recorded"     # 세션 있음, 유효 출석 있음


class GoalStatus(str, Enum):
    """목표 상태"""
    active = "active"
    completed = "completed"


# =============================================
# Weekly Template
# =============================================

class WeeklyTemplateEntry(BaseModel):
    """주간 템플릿 요일 항목"""
    day_of_week: int = Field(..., ge=0, le=6)
    enabled: bool = False
    start_time: str = "09:00"
    end_time: str = "10:30"
    default_program_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        if not _TIME_PATTERN.match(v):
            raise ValueError(f"시간 형식은 HH:MM 이어야 합니다: {v}")
        return v

    @field_validator("default_program_id", mode="before")
    @classmethod
    def _none_program(cls, v):
        # 원본 데이터는 프로그램 없음을 "none"으로 저장
        if v in ("", "none"):
            return None
        return v

    @model_validator(mode="after")
    def _check_range(self):
        if self.enabled and self.start_time >= self.end_time:
            raise ValueError(
                f"{DAY_NAMES[self.day_of_week]}: 시작 시간이 종료 시간보다 빨라야 합니다"
            )
        return self

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]


class WeeklyTemplate(BaseModel):
    """클럽 주간 훈련 템플릿 (요일별 7개 항목)"""
    club_id: str
    entries: List[WeeklyTemplateEntry]
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @field_validator("entries")
    @classmethod
    def _check_week(cls, v: List[WeeklyTemplateEntry]) -> List[WeeklyTemplateEntry]:
        days = sorted(e.day_of_week for e in v)
        if days != list(range(7)):
            raise ValueError("주간 템플릿은 요일별로 정확히 하나씩 7개 항목이 필요합니다")
        return sorted(v, key=lambda e: e.day_of_week)

    def entry_for(self, value: date) -> WeeklyTemplateEntry:
        return self.entries[day_of_week(value)]

    def is_enabled(self, value: date) -> bool:
        return self.entry_for(value).enabled

    def enabled_days(self) -> List[int]:
        return [e.day_of_week for e in self.entries if e.enabled]


class TemplateUpdate(BaseModel):
    """주간 템플릿 저장 요청"""
    entries: List[WeeklyTemplateEntry]


# =============================================
# Cancellations
# =============================================

class Cancellation(BaseModel):
    """훈련 취소 기록"""
    id: str
    club_id: str
    date: date
    reason: str
    type: CancellationType = CancellationType.other
    created_by: str
    created_at: datetime
    is_bulk: bool = False
    batch_id: Optional[str] = None  # 참고용, 그룹 삭제는 type+reason 기준


class CancellationCreate(BaseModel):
    """단일 취소 요청"""
    date: date
    reason: str
    type: CancellationType = CancellationType.other


class BulkCancellationCreate(BaseModel):
    """기간 일괄 취소 요청"""
    start_date: date
    end_date: date
    reason: str
    type: CancellationType = CancellationType.vacation
    skip_weekends: bool = True


class BulkCancellationResult(BaseModel):
    """일괄 취소 결과"""
    created: int
    batch_id: str
    dates: List[date]
    cancellations: List[Cancellation]


class CancellationGroup(BaseModel):
    """일괄 취소 그룹 (type + reason 기준)"""
    type: CancellationType
    reason: str
    count: int
    start_date: date
    end_date: date
    cancellation_ids: List[str]


# =============================================
# Sessions & Attendance
# =============================================

class TrainingSession(BaseModel):
    """훈련 세션 (필요할 때만 생성)"""
    id: str
    club_id: str
    session_date: date
    program_id: Optional[str] = None
    title: str
    start_time: str
    end_time: str
    coach_id: Optional[str] = None
    location: str = ""
    created_at: datetime


class AttendanceRecord(BaseModel):
    """세션별 선수 출석 기록"""
    session_id: str
    athlete_id: str
    status: AttendanceStatus = AttendanceStatus.unmarked
    notes: str = ""
    marked_at: Optional[datetime] = None
    marked_by: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _none_notes(cls, v):
        return v or ""


class AttendanceEntry(BaseModel):
    """출석 입력 항목"""
    athlete_id: str = Field(..., min_length=1)
    status: AttendanceStatus
    notes: str = ""


class AttendanceBulkUpdate(BaseModel):
    """출석 일괄 입력 요청"""
    entries: List[AttendanceEntry]


class AttendanceFailure(BaseModel):
    """출석 저장 실패 항목"""
    athlete_id: str
    error: str


class BulkUpsertResult(BaseModel):
    """출석 일괄 저장 결과"""
    session_id: str
    requested: int
    applied: int
    failed: List[AttendanceFailure] = []

    @property
    def is_complete(self) -> bool:
        return not self.failed


class RosterRow(BaseModel):
    """세션 출석부 행 (현재 회원 기준으로 재구성)"""
    athlete_id: str
    full_name: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.unmarked
    notes: str = ""
    marked_at: Optional[datetime] = None
    marked_by: Optional[str] = None
    is_removed: bool = False      # 더 이상 클럽 회원이 아님 (고아 기록)
    is_placeholder: bool = False  # 저장되지 않은 미체크 행


class SessionSummary(BaseModel):
    """캘린더용 세션 요약"""
    session: TrainingSession
    attendance_count: int = 0
    valid_attendance_count: int = 0

    @property
    def has_valid_attendance(self) -> bool:
        return self.valid_attendance_count > 0


class EnsureSessionRequest(BaseModel):
    """세션 생성(또는 조회) 요청"""
    date: date


class AthleteAttendanceStats(BaseModel):
    """선수별 출석 통계"""
    athlete_id: str
    present_count: int = 0
    late_count: int = 0
    absent_count: int = 0
    total_sessions: int = 0        # 체크된 세션 수
    sessions_completed: int = 0    # present + late
    attendance_rate: int = 0       # %
    current_month_sessions: int = 0


# =============================================
# Calendar
# =============================================

class DayStatus(BaseModel):
    """캘린더 날짜 상태"""
    date: date
    day_of_week: int
    status: DayStatusType
    kind: DayKind
    is_scheduled: bool = False
    is_cancelled: bool = False
    template_entry: Optional[WeeklyTemplateEntry] = None
    cancellation: Optional[Cancellation] = None
    session_id: Optional[str] = None
    has_valid_attendance: bool = False
    attendance_count: int = 0
    in_month: bool = True


class UpcomingTrainingDay(BaseModel):
    """다가오는 훈련일"""
    date: date
    day_of_week: int
    day_name: str
    start_time: str
    end_time: str
    program_id: Optional[str] = None
    session_id: Optional[str] = None


# =============================================
# Reconciliation
# =============================================

class OrphanReport(BaseModel):
    """지난 세션 고아 기록 진단"""
    session_id: str
    session_date: date
    valid_count: int
    orphaned_athlete_ids: List[str]
    action: str  # delete_empty, delete_orphaned, retain


class SweepFailure(BaseModel):
    """정리 실패 세션"""
    session_id: str
    error: str


class SweepResult(BaseModel):
    """고아 기록 정리 결과"""
    club_id: str
    sessions_scanned: int = 0
    sessions_deleted: int = 0
    records_deleted: int = 0
    sessions_retained: int = 0
    orphaned_records_remaining: int = 0
    failures: List[SweepFailure] = []


# =============================================
# Collaborators (외부 데이터, 읽기 전용)
# =============================================

class ClubMember(BaseModel):
    """클럽 회원"""
    athlete_id: str
    role: str = "athlete"
    full_name: Optional[str] = None


class TrainingProgram(BaseModel):
    """훈련 프로그램"""
    id: str
    name: str
    description: Optional[str] = None


class PerformanceCategory(BaseModel):
    """측정 카테고리"""
    id: str
    name: Optional[str] = None
    unit: str = ""


# =============================================
# Personal Records & Goals
# =============================================

class PersonalRecord(BaseModel):
    """개인 최고 기록 (선수+카테고리당 1개)"""
    id: str
    athlete_id: str
    category_id: str
    value: float
    recorded_at: datetime
    test_id: Optional[str] = None


class Goal(BaseModel):
    """선수 목표"""
    id: str
    athlete_id: str
    category_id: str
    target_value: float
    target_date: Optional[date] = None
    status: GoalStatus = GoalStatus.active
    completed_value: Optional[float] = None
    completed_test_id: Optional[str] = None
    completed_date: Optional[datetime] = None


class GoalCreate(BaseModel):
    """목표 생성 요청"""
    athlete_id: str
    category_id: str
    target_value: float
    target_date: Optional[date] = None


class ResultSubmission(BaseModel):
    """측정 결과 제출"""
    athlete_id: str
    category_id: str
    value: Union[float, str]  # 시간 단위는 "1:23.45" 형식 허용
    unit: Optional[str] = None
    test_id: Optional[str] = None


class ResultEvaluation(BaseModel):
    """측정 결과 평가"""
    athlete_id: str
    category_id: str
    value: float
    lower_is_better: bool
    pb_updated: bool = False
    pb_created: bool = False
    previous_best: Optional[float] = None
    goals_completed: List[str] = []


class LeaderboardEntry(BaseModel):
    """카테고리 순위"""
    rank: int
    athlete_id: str
    value: float
    recorded_at: datetime
    test_id: Optional[str] = None
