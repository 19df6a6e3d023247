"""
탈퇴 회원 출석 기록 정리

오늘 이전 세션만 대상:
- 출석 기록이 없는 세션 → 세션 삭제
- 기록이 모두 탈퇴 회원 → 기록 + 세션 삭제
- 현재 회원 기록이 하나라도 있으면 유지 (탈퇴 회원 기록은 출석부에 표시만)

여러 번 실행해도 안전 (정리할 것이 없으면 0건)
검사 이후 출석이 기록된 세션은 삭제되지 않음 (session_attendance FK RESTRICT)
"""
from datetime import date
from typing import Dict, List

from loguru import logger

from database.supabase_client import TrainingDB

from .collaborators import MembershipService, MembershipSnapshot
from .errors import ConflictError, StoreError
from .models import OrphanReport, SweepFailure, SweepResult, TrainingSession
from .sessions import SessionMaterializer

ACTION_DELETE_EMPTY = "delete_empty"
ACTION_DELETE_ORPHANED = "delete_orphaned"
ACTION_RETAIN = "retain"


def classify_session(
    session: TrainingSession, athlete_ids: List[str], snapshot: MembershipSnapshot
) -> OrphanReport:
    valid = [a for a in athlete_ids if snapshot.is_member(a)]
    orphaned = [a for a in athlete_ids if not snapshot.is_member(a)]

    if not athlete_ids:
        action = ACTION_DELETE_EMPTY
    elif not valid:
        action = ACTION_DELETE_ORPHANED
    else:
        action = ACTION_RETAIN

    return OrphanReport(
        session_id=session.id,
        session_date=session.session_date,
        valid_count=len(valid),
        orphaned_athlete_ids=orphaned,
        action=action,
    )


class ReconciliationSweeper:
    def __init__(self, db: TrainingDB, sessions: SessionMaterializer, membership: MembershipService):
        self.db = db
        self.sessions = sessions
        self.membership = membership

    async def inspect(self, club_id: str, today: date) -> List[OrphanReport]:
        """지난 세션별 정리 계획 (삭제하지 않음)"""
        past = await self.sessions.list_before(club_id, today)
        snapshot = await self.membership.snapshot(club_id)

        by_session: Dict[str, List[str]] = {s.id: [] for s in past}
        for row in await self.db.list_attendance_for_sessions(list(by_session)):
            by_session[row["session_id"]].append(row["athlete_id"])

        return [classify_session(s, by_session[s.id], snapshot) for s in past]

    async def sweep_orphans(self, club_id: str, today: date) -> SweepResult:
        """
        탈퇴 회원 기록 정리 실행

        세션 하나가 실패해도 나머지는 계속 처리하고 failures에 기록
        """
        reports = await self.inspect(club_id, today)
        result = SweepResult(club_id=club_id, sessions_scanned=len(reports))

        for report in reports:
            if report.action == ACTION_RETAIN:
                result.sessions_retained += 1
                result.orphaned_records_remaining += len(report.orphaned_athlete_ids)
                continue

            try:
                # 검사 시점의 탈퇴 회원 기록만 삭제, 세션은 마지막
                records = await self.db.delete_attendance_for_athletes(
                    report.session_id, report.orphaned_athlete_ids
                )
                result.records_deleted += records
                await self.db.delete_session(report.session_id)
            except ConflictError:
                # 검사 이후 새 출석 기록이 들어온 세션
                logger.info(f"세션 유지 (새 출석 기록): {report.session_id} ({report.session_date})")
                result.sessions_retained += 1
                continue
            except StoreError as e:
                logger.error(f"세션 정리 실패: {report.session_id} ({report.session_date}): {e.message}")
                result.failures.append(SweepFailure(session_id=report.session_id, error=e.message))
                continue

            result.sessions_deleted += 1

        logger.info(
            f"고아 기록 정리 완료: club={club_id} 검사 {result.sessions_scanned} / "
            f"세션 삭제 {result.sessions_deleted} / 기록 삭제 {result.records_deleted} / "
            f"실패 {len(result.failures)}"
        )
        return result
