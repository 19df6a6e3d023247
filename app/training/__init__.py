"""
Training Engine Module

클럽 훈련 일정 / 출석 / 기록 엔진
- 주간 템플릿 → 캘린더 투영 (취소 반영)
- 훈련 세션은 필요할 때만 생성
- 현재 회원 기준 출석 정리
- 단위별 PB / 목표 평가

라우터는 app.training.router에서 가져옵니다 (저장소 계층이 errors를 참조).
"""

from .models import (
    AttendanceStatus,
    CancellationType,
    ClubRole,
    DayKind,
    DayStatusType,
    GoalStatus
)
from .dependencies import ClubMemberContext

__all__ = [
    "AttendanceStatus",
    "CancellationType",
    "ClubRole",
    "DayKind",
    "DayStatusType",
    "GoalStatus",
    "ClubMemberContext"
]
