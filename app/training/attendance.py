"""
출석 관리

- 세션별 출석 일괄 저장 (부분 실패 허용, 적용 건수 반환)
- 출석부: 현재 회원 기준으로 재구성 (탈퇴 회원 표시, 미체크 회원 추가)
- 선수별 출석 통계
"""
from datetime import date
from typing import Dict, Iterable, List

from loguru import logger

from app.config import now
from database.supabase_client import TrainingDB

from .collaborators import MembershipService, MembershipSnapshot
from .errors import ConflictError, NotFoundError, StoreError
from .models import (
    AthleteAttendanceStats,
    AttendanceEntry,
    AttendanceFailure,
    AttendanceRecord,
    AttendanceStatus,
    BulkUpsertResult,
    RosterRow,
    SessionSummary,
    TrainingSession,
)
from .sessions import SessionMaterializer


class AttendanceTracker:
    def __init__(self, db: TrainingDB, sessions: SessionMaterializer, membership: MembershipService):
        self.db = db
        self.sessions = sessions
        self.membership = membership

    async def list_for_session(self, session_id: str) -> List[AttendanceRecord]:
        """
        저장된 출석 기록만 반환

        미체크 회원(status "") 자리표시 행은 포함하지 않음 → roster() 사용
        """
        await self.sessions.get(session_id)
        rows = await self.db.list_attendance(session_id)
        return [AttendanceRecord(**row) for row in rows]

    async def bulk_upsert(
        self, session_id: str, entries: List[AttendanceEntry], actor: str
    ) -> BulkUpsertResult:
        """
        출석 일괄 저장

        (session_id, athlete_id)마다 생성 또는 갱신. 한 건이 실패해도
        나머지는 계속 저장하고, 실패 목록을 결과에 담아 반환합니다.
        """
        await self.sessions.get(session_id)
        marked_at = now().isoformat()

        # 같은 선수가 여러 번 들어오면 마지막 값
        latest: Dict[str, AttendanceEntry] = {}
        for entry in entries:
            latest[entry.athlete_id] = entry

        applied = 0
        failed: List[AttendanceFailure] = []
        for athlete_id, entry in latest.items():
            try:
                await self.db.upsert_attendance({
                    "session_id": session_id,
                    "athlete_id": athlete_id,
                    "status": entry.status.value,
                    "notes": entry.notes,
                    "marked_at": marked_at,
                    "marked_by": actor,
                })
                applied += 1
            except (StoreError, ConflictError) as e:
                logger.warning(f"출석 저장 실패: session={session_id} athlete={athlete_id}: {e.message}")
                failed.append(AttendanceFailure(athlete_id=athlete_id, error=e.message))

        logger.info(f"출석 저장: session={session_id} {applied}/{len(latest)}건 by {actor}")
        return BulkUpsertResult(
            session_id=session_id,
            requested=len(entries),
            applied=applied,
            failed=failed,
        )

    async def remove_record(self, session_id: str, athlete_id: str) -> None:
        """출석 기록 삭제 (탈퇴 회원 기록 정리용)"""
        deleted = await self.db.delete_attendance(session_id, athlete_id)
        if not deleted:
            raise NotFoundError(
                f"출석 기록을 찾을 수 없습니다: session={session_id} athlete={athlete_id}",
                field="athlete_id",
            )
        logger.info(f"출석 기록 삭제: session={session_id} athlete={athlete_id}")

    async def roster(self, session_id: str) -> List[RosterRow]:
        """
        출석부

        - 현재 회원: 저장된 기록, 없으면 미체크('') 행 (저장하지 않음)
        - 기록은 있지만 회원이 아닌 선수: is_removed=True
        """
        session = await self.sessions.get(session_id)
        snapshot = await self.membership.snapshot(session.club_id)
        records = {
            row["athlete_id"]: AttendanceRecord(**row)
            for row in await self.db.list_attendance(session_id)
        }

        rows: List[RosterRow] = []
        for member in snapshot.members:
            record = records.get(member.athlete_id)
            if record:
                rows.append(RosterRow(**record.model_dump(exclude={"session_id"}), full_name=member.full_name))
            else:
                rows.append(RosterRow(
                    athlete_id=member.athlete_id,
                    full_name=member.full_name,
                    status=AttendanceStatus.unmarked,
                    is_placeholder=True,
                ))

        for athlete_id, record in records.items():
            if not snapshot.is_member(athlete_id):
                rows.append(RosterRow(**record.model_dump(exclude={"session_id"}), is_removed=True))

        return rows

    async def summaries(
        self, sessions: Iterable[TrainingSession], snapshot: MembershipSnapshot
    ) -> List[SessionSummary]:
        """캘린더용 세션별 출석 수 / 유효(현재 회원) 출석 수"""
        sessions = list(sessions)
        rows = await self.db.list_attendance_for_sessions([s.id for s in sessions])

        counts: Dict[str, int] = {}
        valid: Dict[str, int] = {}
        for row in rows:
            counts[row["session_id"]] = counts.get(row["session_id"], 0) + 1
            if snapshot.is_member(row["athlete_id"]):
                valid[row["session_id"]] = valid.get(row["session_id"], 0) + 1

        return [
            SessionSummary(
                session=s,
                attendance_count=counts.get(s.id, 0),
                valid_attendance_count=valid.get(s.id, 0),
            )
            for s in sessions
        ]

    async def athlete_stats(
        self, club_id: str, athlete_ids: List[str], today: date
    ) -> Dict[str, AthleteAttendanceStats]:
        """
        선수별 출석 통계 (오늘 이전 세션만)

        attendance_rate = (출석 + 지각) / 체크된 세션 x 100, 반올림
        """
        stats = {a: AthleteAttendanceStats(athlete_id=a) for a in athlete_ids}
        past = await self.sessions.list_before(club_id, today)
        month_start = today.replace(day=1)
        session_dates = {s.id: s.session_date for s in past}

        for row in await self.db.list_attendance_for_sessions(list(session_dates)):
            item = stats.get(row["athlete_id"])
            if item is None:
                continue
            if session_dates[row["session_id"]] >= month_start:
                item.current_month_sessions += 1
            status = row.get("status") or ""
            if status == AttendanceStatus.present.value:
                item.present_count += 1
            elif status == AttendanceStatus.late.value:
                item.late_count += 1
            elif status == AttendanceStatus.absent.value:
                item.absent_count += 1

        for item in stats.values():
            item.sessions_completed = item.present_count + item.late_count
            item.total_sessions = item.sessions_completed + item.absent_count
            if item.total_sessions:
                item.attendance_rate = int(item.sessions_completed * 100 / item.total_sessions + 0.5)

        return stats
