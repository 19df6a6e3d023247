"""
Pytest configuration and fixtures for PeakLog Training Engine tests

FakeSupabase: supabase-py 쿼리 빌더를 흉내내는 메모리 저장소
- select / insert / upsert / update / delete
- eq / neq / lt / lte / gt / gte / in_ / order / limit
- 유일 인덱스 위반 시 postgrest APIError(23505)
- 참조 중인 행 삭제 시 postgrest APIError(23503)
"""

import copy
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from postgrest.exceptions import APIError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.supabase_client import TrainingDB
from app.training.service import TrainingServices


CLUB_ID = "club-1"
COACH_ID = "coach-1"

# 테이블별 유일 인덱스 (마이그레이션 SQL과 동일)
UNIQUE_INDEXES = {
    "training_schedules": [("club_id",)],
    "training_cancellations": [("id",)],
    "training_sessions": [("id",), ("club_id", "session_date")],
    "session_attendance": [("session_id", "athlete_id")],
    "personal_records": [("id",), ("athlete_id", "category_id")],
    "athlete_goals": [("id",)],
}

# 삭제 제한 외래 키: 부모 테이블 → (자식 테이블, 자식 컬럼, 부모 컬럼)
RESTRICTED_REFERENCES = {
    "training_sessions": [("session_attendance", "session_id", "id")],
}


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data
        self.count = len(data)


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str, op: str, payload=None, on_conflict=None):
        self.store = store
        self.table = table
        self.op = op
        self.payload = payload
        self.on_conflict = on_conflict
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order = None
        self._limit = None

    # ---- filters ----
    def eq(self, column, value):
        self.filters.append(lambda r: r.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda r: r.get(column) != value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda r: r.get(column) is not None and r.get(column) < value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda r: r.get(column) is not None and r.get(column) <= value)
        return self

    def gt(self, column, value):
        self.filters.append(lambda r: r.get(column) is not None and r.get(column) > value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda r: r.get(column) is not None and r.get(column) >= value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda r: r.get(column) in values)
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    # ---- execution ----
    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self) -> FakeResponse:
        self.store.calls.append((self.table, self.op))
        rows = self.store.tables.setdefault(self.table, [])

        if self.op == "select":
            result = [copy.deepcopy(r) for r in rows if self._matches(r)]
            if self._order:
                column, desc = self._order
                result.sort(key=lambda r: r.get(column) or "", reverse=desc)
            if self._limit is not None:
                result = result[: self._limit]
            return FakeResponse(result)

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            for item in items:
                self.store._check_failure(self.table, "insert", item)
            staged = list(rows)
            for item in items:
                self.store._check_unique(self.table, staged, item)
                staged.append(copy.deepcopy(item))
            rows[:] = staged
            return FakeResponse([copy.deepcopy(i) for i in items])

        if self.op == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [c.strip() for c in (self.on_conflict or "id").split(",")]
            result = []
            for item in items:
                self.store._check_failure(self.table, "upsert", item)
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)), None
                )
                if existing is not None:
                    existing.update(copy.deepcopy(item))
                    result.append(copy.deepcopy(existing))
                else:
                    self.store._check_unique(self.table, rows, item)
                    rows.append(copy.deepcopy(item))
                    result.append(copy.deepcopy(item))
            return FakeResponse(result)

        matched = [r for r in rows if self._matches(r)]
        for r in matched:
            self.store._check_failure(self.table, self.op, r)

        if self.op == "update":
            for r in matched:
                r.update(copy.deepcopy(self.payload))
            return FakeResponse([copy.deepcopy(r) for r in matched])

        if self.op == "delete":
            self.store._check_references(self.table, matched)
            rows[:] = [r for r in rows if not self._matches(r)]
            return FakeResponse([copy.deepcopy(r) for r in matched])

        raise AssertionError(f"unknown op {self.op}")


class FakeTable:
    def __init__(self, store: "FakeSupabase", name: str):
        self.store = store
        self.name = name

    def select(self, columns="*", count=None):
        return FakeQuery(self.store, self.name, "select")

    def insert(self, payload):
        return FakeQuery(self.store, self.name, "insert", payload)

    def upsert(self, payload, on_conflict=None):
        return FakeQuery(self.store, self.name, "upsert", payload, on_conflict=on_conflict)

    def update(self, payload):
        return FakeQuery(self.store, self.name, "update", payload)

    def delete(self):
        return FakeQuery(self.store, self.name, "delete")


class FakeSupabase:
    """메모리 Supabase 클라이언트"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self._failures: List[tuple] = []

    def table(self, name: str) -> FakeTable:
        return FakeTable(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(name, [])

    def fail_when(self, table: str, op: str, predicate: Optional[Callable[[Dict[str, Any]], bool]] = None):
        """조건에 맞는 행을 쓰려고 하면 저장소 오류 발생"""
        self._failures.append((table, op, predicate or (lambda row: True)))

    def _check_failure(self, table, op, row):
        for f_table, f_op, predicate in self._failures:
            if f_table == table and f_op == op and predicate(row):
                raise APIError({
                    "code": "08006",
                    "message": "connection failure",
                    "details": "",
                    "hint": "",
                })

    def _check_references(self, table, matched):
        for child, child_column, parent_column in RESTRICTED_REFERENCES.get(table, []):
            keys = {r.get(parent_column) for r in matched}
            if any(r.get(child_column) in keys for r in self.rows(child)):
                raise APIError({
                    "code": "23503",
                    "message": f"update or delete on table {table} violates foreign key constraint on {child}",
                    "details": "",
                    "hint": "",
                })

    def _check_unique(self, table, rows, item):
        for columns in UNIQUE_INDEXES.get(table, []):
            if any(all(r.get(c) == item.get(c) for c in columns) for r in rows):
                raise APIError({
                    "code": "23505",
                    "message": f"duplicate key value violates unique constraint on {table}({', '.join(columns)})",
                    "details": "",
                    "hint": "",
                })


# =============================================
# Seed helpers
# =============================================

def seed_template(store: FakeSupabase, enabled_days, club_id: str = CLUB_ID,
                  program_id: Optional[str] = None, start_time="18:00", end_time="20:00"):
    """enabled_days: 0=일 ... 6=토"""
    store.rows("training_schedules").append({
        "club_id": club_id,
        "schedule": [
            {
                "day_of_week": day,
                "enabled": day in enabled_days,
                "start_time": start_time,
                "end_time": end_time,
                "default_program_id": program_id if day in enabled_days else None,
            }
            for day in range(7)
        ],
        "updated_at": "2025-01-01T00:00:00+09:00",
        "updated_by": COACH_ID,
    })


def seed_members(store: FakeSupabase, athlete_ids, club_id: str = CLUB_ID):
    for athlete_id in athlete_ids:
        store.rows("club_members").append({
            "club_id": club_id,
            "athlete_id": athlete_id,
            "role": "athlete",
            "full_name": f"선수 {athlete_id}",
            "status": "active",
        })


def seed_session(store: FakeSupabase, session_id: str, session_date: str, club_id: str = CLUB_ID):
    row = {
        "id": session_id,
        "club_id": club_id,
        "session_date": session_date,
        "program_id": None,
        "title": "Training - Monday",
        "start_time": "18:00",
        "end_time": "20:00",
        "coach_id": COACH_ID,
        "location": "",
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc).isoformat(),
    }
    store.rows("training_sessions").append(row)
    return row


def seed_attendance(store: FakeSupabase, session_id: str, athlete_id: str, status: str = "present"):
    store.rows("session_attendance").append({
        "session_id": session_id,
        "athlete_id": athlete_id,
        "status": status,
        "notes": "",
        "marked_at": datetime(2025, 1, 1, tzinfo=timezone.utc).isoformat(),
        "marked_by": COACH_ID,
    })


# =============================================
# Fixtures
# =============================================

@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def db(fake_supabase):
    return TrainingDB(client=fake_supabase)


@pytest.fixture
def services(db):
    return TrainingServices(db)
