"""
Session Materializer Tests - 훈련 세션 생성 테스트
"""
import pytest
from datetime import date

from app.training.errors import NotFoundError, StoreError, ValidationError
from app.training.models import CancellationType, WeeklyTemplateEntry

from conftest import CLUB_ID, COACH_ID, seed_session, seed_template

MONDAY = date(2025, 3, 10)
TUESDAY = date(2025, 3, 11)


@pytest.mark.asyncio
class TestEnsureSession:
    """세션 조회/생성 테스트"""

    async def test_creates_from_template(self, services, fake_supabase):
        """템플릿 기본 프로그램/시간으로 생성"""
        fake_supabase.rows("training_programs").append({"id": "p1", "name": "Sprint Drills"})
        seed_template(fake_supabase, {1}, program_id="p1")

        session = await services.sessions.ensure_session(CLUB_ID, MONDAY, COACH_ID)

        assert session.title == "Sprint Drills - Monday"
        assert session.program_id == "p1"
        assert session.start_time == "18:00"
        assert session.end_time == "20:00"
        assert session.coach_id == COACH_ID
        assert session.session_date == MONDAY

    async def test_idempotent(self, services, fake_supabase):
        """두 번 호출해도 같은 세션, 중복 저장 없음"""
        seed_template(fake_supabase, {1})
        first = await services.sessions.ensure_session(CLUB_ID, MONDAY, COACH_ID)
        second = await services.sessions.ensure_session(CLUB_ID, MONDAY, "coach-2")

        assert first.id == second.id
        assert second.coach_id == COACH_ID
        assert len(fake_supabase.rows("training_sessions")) == 1

    async def test_missing_program_is_ignored(self, services, fake_supabase):
        """삭제된 기본 프로그램 → 프로그램 없이 생성"""
        seed_template(fake_supabase, {1}, program_id="deleted")
        session = await services.sessions.ensure_session(CLUB_ID, MONDAY, COACH_ID)
        assert session.title == "Training - Monday"
        assert session.program_id is None

    async def test_refuses_unscheduled_day(self, services, fake_supabase):
        """훈련일이 아닌 날짜"""
        seed_template(fake_supabase, {1})
        with pytest.raises(ValidationError):
            await services.sessions.ensure_session(CLUB_ID, TUESDAY, COACH_ID)
        assert fake_supabase.rows("training_sessions") == []

    async def test_refuses_cancelled_day(self, services, fake_supabase):
        """취소된 날짜"""
        seed_template(fake_supabase, {1})
        await services.cancellations.add_single(
            CLUB_ID, MONDAY, "우천", CancellationType.weather, COACH_ID
        )
        with pytest.raises(ValidationError):
            await services.sessions.ensure_session(CLUB_ID, MONDAY, COACH_ID)

    async def test_uses_latest_template(self, services, fake_supabase):
        """템플릿 변경 후 생성 시 새 기본값 사용"""
        fake_supabase.rows("training_programs").append({"id": "p2", "name": "Strength"})
        seed_template(fake_supabase, {1})
        entries = [
            WeeklyTemplateEntry(day_of_week=d, enabled=d == 1, start_time="07:00", end_time="08:30",
                                default_program_id="p2" if d == 1 else None)
            for d in range(7)
        ]
        await services.templates.save_template(CLUB_ID, entries, COACH_ID)

        session = await services.sessions.ensure_session(CLUB_ID, MONDAY, COACH_ID)
        assert session.title == "Strength - Monday"
        assert session.start_time == "07:00"

    async def test_concurrent_creation_returns_winner(self, services, fake_supabase, monkeypatch):
        """다른 코치가 먼저 생성 → 유일 인덱스 충돌 후 기존 세션 반환"""
        seed_template(fake_supabase, {1})
        winner = seed_session(fake_supabase, "s-winner", MONDAY.isoformat())

        db = services.sessions.db
        real_lookup = db.get_session_by_date
        calls = []

        async def stale_first_read(club_id, session_date):
            calls.append(session_date)
            if len(calls) == 1:
                return None
            return await real_lookup(club_id, session_date)

        monkeypatch.setattr(db, "get_session_by_date", stale_first_read)

        session = await services.sessions.ensure_session(CLUB_ID, MONDAY, "coach-2")
        assert session.id == winner["id"]
        assert len(calls) == 2
        assert len(fake_supabase.rows("training_sessions")) == 1

    async def test_store_failure_propagates(self, services, fake_supabase):
        """저장 실패 → StoreError"""
        seed_template(fake_supabase, {1})
        fake_supabase.fail_when("training_sessions", "insert")
        with pytest.raises(StoreError):
            await services.sessions.ensure_session(CLUB_ID, MONDAY, COACH_ID)


@pytest.mark.asyncio
class TestSessionQueries:
    """세션 조회 테스트"""

    async def test_get_missing(self, services):
        with pytest.raises(NotFoundError):
            await services.sessions.get("missing")

    async def test_list_in_range(self, services, fake_supabase):
        seed_session(fake_supabase, "s1", "2025-03-03")
        seed_session(fake_supabase, "s2", "2025-03-10")
        seed_session(fake_supabase, "s3", "2025-04-07")
        seed_session(fake_supabase, "other", "2025-03-05", club_id="club-2")

        sessions = await services.sessions.list_in_range(CLUB_ID, date(2025, 3, 1), date(2025, 3, 31))
        assert [s.id for s in sessions] == ["s1", "s2"]
