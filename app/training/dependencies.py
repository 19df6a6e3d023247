"""
Training Engine Dependencies

인증 및 권한 체크 의존성
"""

from typing import Optional
from fastapi import Depends, HTTPException, status, Request

from app.config import get_settings
from .models import ClubRole

# 테스트용 기본 클럽 설정 (CLUB_TEST_MODE=true)
TEST_CLUB_CONFIG = {
    "club_id": "00000000-0000-0000-0000-0000000000c1",
    "member_id": "00000000-0000-0000-0000-000000000001",
    "full_name": "테스트 코치",
    "club_role": ClubRole.owner,  # owner로 테스트 (모든 기능 접근 가능)
}


class ClubMemberContext:
    """클럽 회원 컨텍스트 (member_id = 감사 필드용 actor)"""

    def __init__(
        self,
        member_id: str,
        club_id: str,
        club_role: ClubRole,
        full_name: Optional[str] = None,
    ):
        self.member_id = member_id
        self.club_id = club_id
        self.club_role = club_role
        self.full_name = full_name

    def is_coach(self) -> bool:
        """코치 이상 권한인지"""
        return self.club_role in [
            ClubRole.owner,
            ClubRole.admin,
            ClubRole.coach
        ]

    def is_admin(self) -> bool:
        """관리자 권한인지 (owner/admin)"""
        return self.club_role in [
            ClubRole.owner,
            ClubRole.admin
        ]


async def get_current_club_member(request: Request) -> ClubMemberContext:
    """
    현재 로그인한 클럽 회원 정보 조회

    Supabase Auth 토큰 → club_members 테이블

    테스트 모드:
    - 환경변수 CLUB_TEST_MODE=true
    - 테스트 클럽 owner로 자동 로그인
    """
    from database.supabase_client import get_supabase_client

    if get_settings().CLUB_TEST_MODE:
        return ClubMemberContext(**TEST_CLUB_CONFIG)

    # 1. 인증 토큰 확인
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="인증이 필요합니다"
        )

    token = auth_header.split(" ")[1]

    try:
        # 2. Supabase에서 사용자 정보 조회
        supabase = get_supabase_client()
        user_response = supabase.auth.get_user(token)

        if not user_response or not user_response.user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="유효하지 않은 토큰입니다"
            )

        # 3. club_members 테이블에서 회원 정보 조회
        member_response = supabase.table("club_members").select(
            "athlete_id, club_id, role, full_name"
        ).eq("auth_user_id", user_response.user.id).eq("status", "active").limit(1).execute()

        if not member_response.data:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="클럽 회원 등록이 필요합니다"
            )

        member = member_response.data[0]
        return ClubMemberContext(
            member_id=member["athlete_id"],
            club_id=member["club_id"],
            club_role=ClubRole(member["role"]),
            full_name=member.get("full_name"),
        )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"인증 오류: {str(e)}"
        )


def require_coach(member: ClubMemberContext = Depends(get_current_club_member)) -> ClubMemberContext:
    """코치 이상 권한 필요"""
    if not member.is_coach():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="코치 이상 권한이 필요합니다"
        )
    return member


def require_admin(member: ClubMemberContext = Depends(get_current_club_member)) -> ClubMemberContext:
    """관리자 권한 필요 (owner/admin)"""
    if not member.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="관리자 권한이 필요합니다"
        )
    return member
