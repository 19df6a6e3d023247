"""
Training Router Tests - API 테스트
"""
import pytest
from datetime import date
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.server import app
from app.training.dependencies import ClubMemberContext, get_current_club_member
from app.training.errors import ConflictError
from app.training.models import ClubRole
from app.training.router import get_today
from app.training.service import get_services

from conftest import CLUB_ID, COACH_ID, seed_attendance, seed_members, seed_session, seed_template

TODAY = date(2025, 3, 12)


@pytest.fixture
def member():
    return ClubMemberContext(member_id=COACH_ID, club_id=CLUB_ID, club_role=ClubRole.coach, full_name="코치")


@pytest.fixture
def client(services, member):
    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[get_current_club_member] = lambda: member
    app.dependency_overrides[get_today] = lambda: TODAY
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCalendarEndpoints:
    """캘린더 API"""

    def test_month(self, client, fake_supabase):
        seed_template(fake_supabase, {1, 3, 5})
        response = client.get("/api/training/calendar/2025/3")
        assert response.status_code == 200
        days = {d["date"]: d for d in response.json()}
        assert len(days) == 42
        assert days["2025-03-10"]["status"] == "past-active"
        assert days["2025-03-14"]["status"] == "future-active"
        assert days["2025-03-11"]["status"] == "none"

    def test_invalid_month(self, client):
        response = client.get("/api/training/calendar/2025/13")
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_range(self, client, fake_supabase):
        seed_template(fake_supabase, {1})
        response = client.get("/api/training/calendar", params={
            "start_date": "2025-03-09", "end_date": "2025-03-11"
        })
        assert [d["kind"] for d in response.json()] == ["unscheduled", "active", "unscheduled"]

        inverted = client.get("/api/training/calendar", params={
            "start_date": "2025-03-11", "end_date": "2025-03-09"
        })
        assert inverted.status_code == 422

    def test_upcoming(self, client, fake_supabase):
        seed_template(fake_supabase, {1, 3, 5})
        response = client.get("/api/training/calendar/upcoming", params={"limit": 2})
        assert response.status_code == 200
        assert [d["date"] for d in response.json()] == ["2025-03-12", "2025-03-14"]


class TestTemplateEndpoints:
    """주간 템플릿 API"""

    def test_default_template(self, client):
        response = client.get("/api/training/template")
        assert response.status_code == 200
        entries = response.json()["entries"]
        assert len(entries) == 7
        assert not any(e["enabled"] for e in entries)
        assert entries[0]["start_time"] == "09:00"

    def test_save_rejects_incomplete_week(self, client):
        response = client.put("/api/training/template", json={
            "entries": [{"day_of_week": 1, "enabled": True, "start_time": "18:00", "end_time": "20:00"}]
        })
        assert response.status_code == 422

    def test_save_template(self, client):
        entries = [
            {"day_of_week": d, "enabled": d in (2, 4), "start_time": "17:00", "end_time": "18:30"}
            for d in range(7)
        ]
        response = client.put("/api/training/template", json={"entries": entries})
        assert response.status_code == 200
        assert response.json()["updated_by"] == COACH_ID


class TestCancellationEndpoints:
    """훈련 취소 API"""

    def test_bulk_with_nothing_to_cancel(self, client, fake_supabase):
        seed_template(fake_supabase, {1})
        response = client.post("/api/training/cancellations/bulk", json={
            "start_date": "2025-03-11",
            "end_date": "2025-03-13",
            "reason": "점검",
            "type": "maintenance",
        })
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_bulk_and_group_removal(self, client, fake_supabase):
        seed_template(fake_supabase, {1, 3, 5})
        response = client.post("/api/training/cancellations/bulk", json={
            "start_date": "2025-03-17",
            "end_date": "2025-03-30",
            "reason": "봄방학",
            "type": "vacation",
        })
        assert response.status_code == 201
        assert response.json()["created"] == 6

        groups = client.get("/api/training/cancellations/groups").json()
        assert groups[0]["count"] == 6

        response = client.delete(
            "/api/training/cancellations/groups", params={"type": "vacation", "reason": "봄방학"}
        )
        assert response.status_code == 200
        assert response.json()["deleted"] == 6

    def test_remove_missing(self, client):
        response = client.delete("/api/training/cancellations/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_store_failure(self, client, fake_supabase):
        fake_supabase.fail_when("training_cancellations", "insert")
        response = client.post("/api/training/cancellations", json={
            "date": "2025-03-17", "reason": "우천", "type": "weather"
        })
        assert response.status_code == 503
        assert response.json()["error"] == "store_error"

    def test_conflict(self, client, services):
        services.cancellations.add_single = AsyncMock(side_effect=ConflictError("이미 존재"))
        response = client.post("/api/training/cancellations", json={
            "date": "2025-03-17", "reason": "우천", "type": "weather"
        })
        assert response.status_code == 409

    def test_athlete_forbidden(self, client, member):
        member.club_role = ClubRole.athlete
        response = client.post("/api/training/cancellations", json={
            "date": "2025-03-17", "reason": "우천", "type": "weather"
        })
        assert response.status_code == 403


class TestSessionEndpoints:
    """세션 / 출석 API"""

    def test_ensure_and_record_attendance(self, client, fake_supabase):
        seed_template(fake_supabase, {1})
        seed_members(fake_supabase, ["a1", "a2"])

        first = client.post("/api/training/sessions", json={"date": "2025-03-10"})
        second = client.post("/api/training/sessions", json={"date": "2025-03-10"})
        assert first.status_code == 200
        session_id = first.json()["id"]
        assert second.json()["id"] == session_id

        response = client.put(f"/api/training/sessions/{session_id}/attendance", json={
            "entries": [{"athlete_id": "a1", "status": "present"}]
        })
        assert response.status_code == 200
        assert response.json()["applied"] == 1

        roster = {r["athlete_id"]: r for r in client.get(f"/api/training/sessions/{session_id}/roster").json()}
        assert roster["a1"]["status"] == "present"
        assert roster["a2"]["status"] == ""
        assert roster["a2"]["is_placeholder"] is True

    def test_ensure_unscheduled_day(self, client, fake_supabase):
        seed_template(fake_supabase, {1})
        response = client.post("/api/training/sessions", json={"date": "2025-03-11"})
        assert response.status_code == 422

    def test_other_club_session_hidden(self, client, fake_supabase):
        seed_session(fake_supabase, "foreign", "2025-03-10", club_id="club-2")
        response = client.get("/api/training/sessions/foreign/roster")
        assert response.status_code == 404

    def test_invalid_status(self, client, fake_supabase):
        seed_session(fake_supabase, "s1", "2025-03-10")
        response = client.put("/api/training/sessions/s1/attendance", json={
            "entries": [{"athlete_id": "a1", "status": "sick"}]
        })
        assert response.status_code == 422

    def test_remove_orphan_record(self, client, fake_supabase):
        seed_session(fake_supabase, "s1", "2025-03-10")
        seed_attendance(fake_supabase, "s1", "gone")
        response = client.delete("/api/training/sessions/s1/attendance/gone")
        assert response.status_code == 200
        assert fake_supabase.rows("session_attendance") == []


class TestSweepEndpoints:
    """정리 API"""

    def test_coach_cannot_sweep(self, client):
        response = client.post("/api/training/sweep")
        assert response.status_code == 403

    def test_admin_sweep(self, client, member, fake_supabase):
        member.club_role = ClubRole.admin
        seed_session(fake_supabase, "s1", "2025-03-03")
        seed_attendance(fake_supabase, "s1", "gone")

        preview = client.get("/api/training/sweep/preview")
        assert preview.json()[0]["action"] == "delete_orphaned"

        response = client.post("/api/training/sweep")
        assert response.status_code == 200
        body = response.json()
        assert body["sessions_deleted"] == 1
        assert body["records_deleted"] == 1


class TestPerformanceEndpoints:
    """기록 API"""

    def test_submit_result_and_goal(self, client, fake_supabase):
        fake_supabase.rows("performance_categories").append({"id": "sprint", "unit": "seconds"})
        goal = client.post("/api/training/goals", json={
            "athlete_id": "a1", "category_id": "sprint", "target_value": 12.0
        })
        assert goal.status_code == 201

        response = client.post("/api/training/results", json={
            "athlete_id": "a1", "category_id": "sprint", "value": "11.9", "test_id": "t1"
        })
        assert response.status_code == 200
        body = response.json()
        assert body["pb_updated"] is True
        assert body["goals_completed"] == [goal.json()["id"]]

        board = client.get("/api/training/leaderboard/sprint").json()
        assert board[0]["athlete_id"] == "a1"

    def test_attendance_stats_defaults_to_members(self, client, fake_supabase):
        seed_members(fake_supabase, ["a1", "a2"])
        seed_session(fake_supabase, "s1", "2025-03-03")
        seed_attendance(fake_supabase, "s1", "a1", "present")

        stats = client.get("/api/training/stats/attendance").json()
        assert set(stats) == {"a1", "a2"}
        assert stats["a1"]["attendance_rate"] == 100


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_startup_configures_logging(self):
        """서버 시작 시 loguru 설정"""
        with patch("app.server.configure_logging") as configure:
            with TestClient(app):
                pass
        configure.assert_called_once_with("server")
