# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: a fresh in-memory database per test, an in-memory
spreadsheet, and a TestClient wired to both.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GOOGLE_SHEETS_ID"] = ""
os.environ["SEED_DEFAULTS"] = "false"
os.environ["GATEWAY_API_KEYS"] = "test-gateway-key"

import re
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from pbl_teams.core.database import build_engine, init_schema
from pbl_teams.core.dependencies import build_container, get_container
from pbl_teams.core.errors import IntegrationError
from pbl_teams.main import app
from pbl_teams.models.domain import Identity
from pbl_teams.services.sheets_client import SheetsClient

_CELLS = re.compile(r"^[A-Z]+(\d+):[A-Z]+(\d*)$")


class FakeSheetsClient(SheetsClient):
    """In-memory spreadsheet mimicking the Sheets API value semantics.

    Reads drop trailing empty cells and trailing empty rows, like the API.
    Writes start at the first row of the addressed range. fail_writes maps a
    tab to the number of upcoming writes to it that should fail.
    """

    def __init__(self, tabs=None):
        self.tabs: dict[str, list[list]] = {k: [list(r) for r in v] for k, v in (tabs or {}).items()}
        self.writes: list[tuple[str, str, list[list]]] = []
        self.fail_writes: dict[str, int] = {}
        self.fail_reads: set[str] = set()

    def get_spreadsheet_metadata(self):
        return {
            "sheets": [
                {"properties": {"sheetId": i, "title": title}}
                for i, title in enumerate(self.tabs)
            ]
        }

    def create_tabs(self, names):
        for name in names:
            self.tabs.setdefault(name, [])

    def read_range(self, tab, cells):
        if tab in self.fail_reads or tab not in self.tabs:
            raise IntegrationError(f"Unable to read {tab}")
        start, end = _bounds(cells)
        rows = [_trim_row(r) for r in self.tabs[tab][start:end]]
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def write_range(self, tab, cells, values):
        self.writes.append((tab, cells, [list(r) for r in values]))
        if self.fail_writes.get(tab, 0) > 0:
            self.fail_writes[tab] -= 1
            raise IntegrationError(f"Unable to write {tab}")
        start, _ = _bounds(cells)
        rows = self.tabs.setdefault(tab, [])
        for offset, row in enumerate(values):
            idx = start + offset
            while len(rows) <= idx:
                rows.append([])
            rows[idx] = list(row)

    def values(self, tab):
        return self.read_range(tab, "A1:Y")


def _bounds(cells):
    match = _CELLS.match(cells)
    assert match, f"unexpected range {cells}"
    start = int(match.group(1)) - 1
    end = int(match.group(2)) if match.group(2) else None
    return start, end


def _trim_row(row):
    out = ["" if v is None else v for v in row]
    while out and out[-1] == "":
        out.pop()
    return out


# ============================================
# Fixtures
# ============================================
@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sheets():
    return FakeSheetsClient()


@pytest.fixture
def container(db_engine, sheets):
    return build_container(db_engine, sheets)


@pytest.fixture
def catalogue(container):
    repo = container.academic_repo
    year1 = repo.upsert_year("1", "First Year")
    year2 = repo.upsert_year("2", "Second Year")
    return SimpleNamespace(
        year=year1,
        subject=repo.upsert_subject(year1.id, "SUBJECT1", "Subject1"),
        subject2=repo.upsert_subject(year1.id, "SUBJECT2", "Subject2"),
        year2=year2,
        year2_subject=repo.upsert_subject(year2.id, "SUBJECT1", "Subject1"),
    )


@pytest.fixture
def make_user(container):
    def _make(email, role="student", name=None):
        user, _ = container.user_repo.insert_if_absent(
            email, name or email.split("@")[0].title(), role
        )
        return Identity(id=user.id, email=user.email, role=user.role)

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice@x.edu")


@pytest.fixture
def member_rows():
    """Build a raw member list; the first entry is the leader."""

    def _rows(*specs):
        rows = []
        for idx, (email, roll) in enumerate(specs):
            rows.append({
                "name": email.split("@")[0].title(),
                "email": email,
                "rollNumber": roll,
                "section": "A",
                "isLeader": idx == 0,
            })
        return rows

    return _rows


@pytest.fixture
def create_team(container, catalogue, alice, member_rows):
    """Create a team through the service; defaults to Alice's team in Y1/S1."""

    def _create(
        actor=None,
        name="Team A",
        specs=(("alice@x.edu", "R1"), ("bob@x.edu", "R2"), ("carol@x.edu", "R3")),
        year=None,
        subject=None,
    ):
        result = container.team_service.create_team(
            actor or alice,
            team_name=name,
            year_id=(year or catalogue.year).id,
            subject_id=(subject or catalogue.subject).id,
            members=member_rows(*specs),
        )
        return result

    return _create


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    def _headers(identity):
        return {
            "X-User-Id": identity.id,
            "X-User-Email": identity.email,
            "X-User-Role": identity.role,
        }

    return _headers
