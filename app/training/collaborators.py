"""
외부 협력 서비스 (읽기 전용)

- MembershipService: 현재 클럽 회원 (고아 기록 판정 기준)
- CatalogService: 훈련 프로그램 / 측정 카테고리
"""
from typing import Dict, List, Optional

from database.supabase_client import TrainingDB

from .errors import NotFoundError
from .models import ClubMember, PerformanceCategory, TrainingProgram


class MembershipSnapshot:
    """
    요청 단위 회원 스냅샷

    한 번 조회한 회원 목록으로 모든 기록의 고아 여부를 판정합니다.
    """

    def __init__(self, members: List[ClubMember]):
        self.members = members
        self._by_id: Dict[str, ClubMember] = {m.athlete_id: m for m in members}

    def is_member(self, athlete_id: str) -> bool:
        return athlete_id in self._by_id


class MembershipService:
    def __init__(self, db: TrainingDB):
        self.db = db

    async def list_active_members(self, club_id: str) -> List[ClubMember]:
        rows = await self.db.list_active_members(club_id)
        return [ClubMember(**row) for row in rows]

    async def snapshot(self, club_id: str) -> MembershipSnapshot:
        return MembershipSnapshot(await self.list_active_members(club_id))


class CatalogService:
    def __init__(self, db: TrainingDB):
        self.db = db

    async def get_program(self, program_id: str) -> Optional[TrainingProgram]:
        """프로그램 조회 (없으면 None - 템플릿에 남은 삭제된 프로그램 허용)"""
        row = await self.db.get_program(program_id)
        return TrainingProgram(**row) if row else None

    async def get_category(self, category_id: str) -> PerformanceCategory:
        row = await self.db.get_category(category_id)
        if not row:
            raise NotFoundError(f"측정 카테고리를 찾을 수 없습니다: {category_id}", field="category_id")
        return PerformanceCategory(**row)
