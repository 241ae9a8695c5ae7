import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from schoolfin.core.config import Settings
from schoolfin.core.dependencies import get_client
from schoolfin.core.security import create_access_token
from schoolfin.main import create_app


# Column sets that the real schema declares unique / referenced
UNIQUE_COLUMNS = {
    "users": ("email",),
    "students": ("student_id",),
    "fee_categories": ("name",),
}
REFERENCES = {
    "students": ("fee_payments", "student_id"),
    "fee_categories": ("fee_payments", "fee_category_id"),
}


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """The slice of the PostgREST query builder the app uses."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload = None
        self.count_mode = None
        self.filters = []
        self.order_column = None
        self.order_desc = False
        self.row_limit = None
        self.row_offset = 0

    def select(self, columns="*", count=None):
        self.operation = "select"
        self.count_mode = count
        return self

    def insert(self, data):
        self.operation = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.operation = "update"
        self.payload = data
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_column = column
        self.order_desc = desc
        return self

    def limit(self, size):
        self.row_limit = size
        return self

    def range(self, start, end):
        self.row_offset = start
        self.row_limit = end - start + 1
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.operation))
        if self.table in self.db.failing_tables:
            raise RuntimeError("connection reset by peer")
        handler = getattr(self, f"_execute_{self.operation}")
        return handler()

    def _execute_select(self):
        rows = [dict(row) for row in self.db.rows(self.table) if self._matches(row)]
        total = len(rows)
        if self.order_column:
            present = [r for r in rows if r.get(self.order_column) is not None]
            missing = [r for r in rows if r.get(self.order_column) is None]
            present.sort(key=lambda r: r[self.order_column], reverse=self.order_desc)
            rows = present + missing
        if self.row_limit is not None:
            rows = rows[self.row_offset:self.row_offset + self.row_limit]
        return FakeResponse(rows, total if self.count_mode else None)

    def _execute_insert(self):
        row = self.db.new_row(self.table, self.payload)
        self.db.check_unique(self.table, row)
        self.db.rows(self.table).append(row)
        return FakeResponse([dict(row)])

    def _execute_update(self):
        updated = []
        for row in self.db.rows(self.table):
            if not self._matches(row):
                continue
            candidate = {**row, **self.payload}
            self.db.check_unique(self.table, candidate, ignore_id=row["id"])
            row.update(self.payload)
            updated.append(dict(row))
        return FakeResponse(updated)

    def _execute_delete(self):
        doomed = [row for row in self.db.rows(self.table) if self._matches(row)]
        if self.table in REFERENCES:
            child_table, column = REFERENCES[self.table]
            for row in doomed:
                if any(child[column] == row["id"] for child in self.db.rows(child_table)):
                    raise APIError({
                        "message": f"update or delete on table \"{self.table}\" violates foreign key constraint",
                        "code": "23503",
                        "hint": None,
                        "details": None,
                    })
        self.db.tables[self.table] = [row for row in self.db.rows(self.table) if row not in doomed]
        return FakeResponse([dict(row) for row in doomed])


class FakeSupabase:
    """In-memory stand-in for supabase.Client."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failing_tables = set()
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def new_row(self, table, data):
        now = self.tick()
        row = {"id": str(uuid.uuid4()), "created_at": now}
        if table != "users":
            row["updated_at"] = now
        row.update(data)
        return row

    def check_unique(self, table, candidate, ignore_id=None):
        for column in UNIQUE_COLUMNS.get(table, ()):
            for row in self.rows(table):
                if row["id"] != ignore_id and row.get(column) == candidate.get(column):
                    raise APIError({
                        "message": f"duplicate key value violates unique constraint \"{table}_{column}_key\"",
                        "code": "23505",
                        "hint": None,
                        "details": f"Key ({column})=({candidate.get(column)}) already exists.",
                    })

    def seed(self, table, **data):
        row = self.new_row(table, data)
        self.rows(table).append(row)
        return dict(row)

    def writes(self, table):
        return [op for name, op in self.calls if name == table and op != "select"]


def seed_student(db, **overrides):
    data = {
        "student_id": "S-100",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "status": "Active",
        "admission_date": "2024-01-08",
        "class_name": "5",
        "section": "A",
    }
    data.update(overrides)
    return db.seed("students", **data)


def seed_category(db, **overrides):
    data = {
        "name": "Tuition",
        "description": "Term tuition",
        "amount": 100.0,
        "frequency": "Monthly",
    }
    data.update(overrides)
    return db.seed("fee_categories", **data)


def seed_payment(db, student, category, **overrides):
    data = {
        "student_id": student["id"],
        "fee_category_id": category["id"],
        "amount": category["amount"],
        "due_date": "2024-02-01",
        "payment_date": None,
        "status": "PENDING",
    }
    data.update(overrides)
    return db.seed("fee_payments", **data)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        SECRET_KEY="test-secret-key",
        SUPABASE_URL="https://example.supabase.co",
        SUPABASE_KEY="test-anon-key",
        SCHOOL_NAME="Hillside Academy",
        MAX_LIST_LIMIT=50,
    )


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def app(settings, fake_db):
    application = create_app(settings)
    application.dependency_overrides[get_client] = lambda: fake_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


def _headers(settings, role, sub):
    token = create_access_token({"sub": sub, "role": role}, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(settings):
    return _headers(settings, "ADMIN", "admin-1")


@pytest.fixture
def staff_headers(settings):
    return _headers(settings, "STAFF", "staff-1")
