"""
Supabase 데이터베이스 클라이언트 (훈련 엔진 저장소)
"""
from datetime import date
from typing import List, Optional, Dict, Any

import httpx
from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from app.config import get_settings
from app.training.errors import ConflictError, StoreError


# Postgres unique_violation / foreign_key_violation
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

# 싱글톤 클라이언트
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Supabase 클라이언트 인스턴스 반환 (싱글톤)
    모든 요청에 REQUEST_TIMEOUT_SECONDS 타임아웃 적용
    """
    global _supabase_client
    if _supabase_client is None:
        settings = get_settings()
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_KEY,
            options=ClientOptions(
                postgrest_client_timeout=settings.REQUEST_TIMEOUT_SECONDS
            ),
        )
    return _supabase_client


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class TrainingDB:
    """
    훈련 엔진 데이터 접근 계층

    저장소 오류는 None/빈 리스트로 숨기지 않고 분류해서 올려보냄
    - 유일성 위반(23505) → ConflictError
    - 참조 중인 행 삭제(23503) → ConflictError
    - 그 외 통신/저장 실패 → StoreError
    """

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.warning(f"{action} 유일성 충돌: {e.message}")
                raise ConflictError(f"{action}: 이미 존재하는 데이터입니다") from e
            if e.code == FOREIGN_KEY_VIOLATION:
                logger.warning(f"{action} 참조 충돌: {e.message}")
                raise ConflictError(f"{action}: 참조 중인 데이터가 있습니다") from e
            logger.error(f"{action} 오류: {e.message}")
            raise StoreError(f"{action} 실패: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error(f"{action} 통신 오류: {e}")
            raise StoreError(f"{action} 실패: {e}") from e

    def _first(self, query, action: str) -> Optional[Dict[str, Any]]:
        result = self._execute(query, action)
        return result.data[0] if result.data else None

    def _rows(self, query, action: str) -> List[Dict[str, Any]]:
        return self._execute(query, action).data or []

    # ==================== 주간 템플릿 ====================

    async def get_schedule(self, club_id: str) -> Optional[Dict[str, Any]]:
        """클럽 주간 템플릿 조회 (없으면 None)"""
        return self._first(
            self.client.table("training_schedules").select("*").eq(
                "club_id", club_id
            ).limit(1),
            "주간 템플릿 조회",
        )

    async def save_schedule(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """주간 템플릿 전체 교체"""
        rows = self._rows(
            self.client.table("training_schedules").upsert(data, on_conflict="club_id"),
            "주간 템플릿 저장",
        )
        return rows[0] if rows else data

    # ==================== 훈련 취소 ====================

    async def insert_cancellations(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """취소 기록 저장 (단일/일괄 공용)"""
        return self._rows(
            self.client.table("training_cancellations").insert(rows),
            "훈련 취소 저장",
        )

    async def list_cancellations(
        self,
        club_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """클럽 취소 기록 조회 (날짜순)"""
        query = self.client.table("training_cancellations").select("*").eq("club_id", club_id)
        if start:
            query = query.gte("date", _iso(start))
        if end:
            query = query.lte("date", _iso(end))
        return self._rows(query.order("date"), "훈련 취소 조회")

    async def delete_cancellation(self, club_id: str, cancellation_id: str) -> List[Dict[str, Any]]:
        """취소 기록 삭제 (삭제된 행 반환)"""
        return self._rows(
            self.client.table("training_cancellations").delete().eq(
                "club_id", club_id
            ).eq("id", cancellation_id),
            "훈련 취소 삭제",
        )

    async def delete_cancellation_group(
        self, club_id: str, cancellation_type: str, reason: str
    ) -> List[Dict[str, Any]]:
        """type + reason이 같은 일괄 취소 전체 삭제"""
        return self._rows(
            self.client.table("training_cancellations").delete().eq(
                "club_id", club_id
            ).eq("is_bulk", True).eq("type", cancellation_type).eq("reason", reason),
            "일괄 취소 그룹 삭제",
        )

    # ==================== 훈련 세션 ====================

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.client.table("training_sessions").select("*").eq("id", session_id).limit(1),
            "세션 조회",
        )

    async def get_session_by_date(self, club_id: str, session_date: date) -> Optional[Dict[str, Any]]:
        return self._first(
            self.client.table("training_sessions").select("*").eq(
                "club_id", club_id
            ).eq("session_date", _iso(session_date)).limit(1),
            "날짜별 세션 조회",
        )

    async def insert_session(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """세션 생성 - (club_id, session_date) 유일 인덱스 위반 시 ConflictError"""
        rows = self._rows(
            self.client.table("training_sessions").insert(data),
            "세션 생성",
        )
        if not rows:
            raise StoreError("세션 생성 실패: 저장된 행이 반환되지 않았습니다")
        return rows[0]

    async def list_sessions(
        self,
        club_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """클럽 세션 조회 (before는 해당 날짜 미포함)"""
        query = self.client.table("training_sessions").select("*").eq("club_id", club_id)
        if start:
            query = query.gte("session_date", _iso(start))
        if end:
            query = query.lte("session_date", _iso(end))
        if before:
            query = query.lt("session_date", _iso(before))
        return self._rows(query.order("session_date"), "세션 목록 조회")

    async def delete_session(self, session_id: str) -> int:
        """세션 삭제 - 출석 기록이 남아 있으면 ConflictError"""
        rows = self._rows(
            self.client.table("training_sessions").delete().eq("id", session_id),
            "세션 삭제",
        )
        return len(rows)

    # ==================== 출석 ====================

    async def list_attendance(self, session_id: str) -> List[Dict[str, Any]]:
        return self._rows(
            self.client.table("session_attendance").select("*").eq("session_id", session_id),
            "출석 조회",
        )

    async def list_attendance_for_sessions(self, session_ids: List[str]) -> List[Dict[str, Any]]:
        """여러 세션 출석 한 번에 조회"""
        if not session_ids:
            return []
        return self._rows(
            self.client.table("session_attendance").select("*").in_("session_id", session_ids),
            "세션별 출석 조회",
        )

    async def upsert_attendance(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """(session_id, athlete_id) 기준 출석 저장 - 마지막 쓰기 우선"""
        rows = self._rows(
            self.client.table("session_attendance").upsert(
                data, on_conflict="session_id,athlete_id"
            ),
            "출석 저장",
        )
        return rows[0] if rows else data

    async def delete_attendance(self, session_id: str, athlete_id: str) -> int:
        rows = self._rows(
            self.client.table("session_attendance").delete().eq(
                "session_id", session_id
            ).eq("athlete_id", athlete_id),
            "출석 기록 삭제",
        )
        return len(rows)

    async def delete_attendance_for_athletes(self, session_id: str, athlete_ids: List[str]) -> int:
        """지정한 선수들의 출석 기록만 삭제"""
        if not athlete_ids:
            return 0
        rows = self._rows(
            self.client.table("session_attendance").delete().eq(
                "session_id", session_id
            ).in_("athlete_id", athlete_ids),
            "선수별 출석 기록 삭제",
        )
        return len(rows)

    # ==================== 외부 데이터 (회원/프로그램/카테고리) ====================

    async def list_active_members(self, club_id: str) -> List[Dict[str, Any]]:
        return self._rows(
            self.client.table("club_members").select("athlete_id, role, full_name").eq(
                "club_id", club_id
            ).eq("status", "active"),
            "회원 목록 조회",
        )

    async def get_program(self, program_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.client.table("training_programs").select("*").eq("id", program_id).limit(1),
            "프로그램 조회",
        )

    async def get_category(self, category_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.client.table("performance_categories").select("*").eq("id", category_id).limit(1),
            "카테고리 조회",
        )

    # ==================== 개인 최고 기록 ====================

    async def get_personal_record(self, athlete_id: str, category_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.client.table("personal_records").select("*").eq(
                "athlete_id", athlete_id
            ).eq("category_id", category_id).limit(1),
            "개인 기록 조회",
        )

    async def insert_personal_record(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """PB 생성 - (athlete_id, category_id) 유일 인덱스 위반 시 ConflictError"""
        rows = self._rows(
            self.client.table("personal_records").insert(data),
            "개인 기록 생성",
        )
        return rows[0] if rows else data

    async def replace_personal_record(
        self, record_id: str, expected_value: float, data: Dict[str, Any]
    ) -> bool:
        """
        조건부 PB 교체

        저장된 value가 expected_value와 같을 때만 갱신.
        다른 요청이 먼저 갱신했다면 0행이 바뀌고 False 반환.
        """
        rows = self._rows(
            self.client.table("personal_records").update(data).eq(
                "id", record_id
            ).eq("value", expected_value),
            "개인 기록 갱신",
        )
        return bool(rows)

    async def list_personal_records(self, category_id: str) -> List[Dict[str, Any]]:
        return self._rows(
            self.client.table("personal_records").select("*").eq("category_id", category_id),
            "카테고리 기록 조회",
        )

    # ==================== 목표 ====================

    async def list_active_goals(self, athlete_id: str, category_id: str) -> List[Dict[str, Any]]:
        return self._rows(
            self.client.table("athlete_goals").select("*").eq(
                "athlete_id", athlete_id
            ).eq("category_id", category_id).eq("status", "active"),
            "목표 조회",
        )

    async def insert_goal(self, data: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._rows(
            self.client.table("athlete_goals").insert(data),
            "목표 생성",
        )
        return rows[0] if rows else data

    async def complete_goal(self, goal_id: str, data: Dict[str, Any]) -> bool:
        """active 상태인 목표만 완료 처리 (이미 완료된 목표는 0행)"""
        rows = self._rows(
            self.client.table("athlete_goals").update(data).eq(
                "id", goal_id
            ).eq("status", "active"),
            "목표 완료 처리",
        )
        return bool(rows)
