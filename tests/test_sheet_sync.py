# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Tests for the spreadsheet sync engine: push (mirror), pull (mentor
assignments + teacher provisioning) and the best-effort wrapper.
"""

import uuid
from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from pbl_teams.core.database import team_members, teams
from pbl_teams.core.errors import IntegrationError
from pbl_teams.services.sheet_layout import SHEET_HEADER, SHEET_TABS, blank_row
from pbl_teams.services.sheet_sync import SheetSyncEngine

from conftest import FakeSheetsClient

HEADER = list(SHEET_HEADER)


def _row(team_id, mentor_name="", mentor_email=""):
    row = blank_row()
    row[0] = team_id
    row[16] = mentor_name
    row[17] = mentor_email
    return row


@pytest.fixture
def engine(container):
    return container.sync_engine


# ============================================
# Shared setup
# ============================================
class TestEnsureTabs:
    def test_creates_missing_tabs_and_headers(self, engine, sheets):
        init = engine.ensure_tabs_and_headers()
        assert init == {"created_tabs": 6, "headers_updated": 6}
        for tab in SHEET_TABS:
            assert sheets.values(tab) == [HEADER]

    def test_second_run_is_noop(self, engine, sheets):
        engine.ensure_tabs_and_headers()
        sheets.writes.clear()
        assert engine.ensure_tabs_and_headers() == {"created_tabs": 0, "headers_updated": 0}
        assert sheets.writes == []

    def test_drifted_header_is_rewritten(self, engine, sheets):
        engine.ensure_tabs_and_headers()
        sheets.tabs["Y2_Subject1"][0][1] = "Name"
        assert engine.ensure_tabs_and_headers()["headers_updated"] == 1
        assert sheets.values("Y2_Subject1")[0] == HEADER

    def test_extra_tabs_are_left_alone(self, engine, sheets):
        sheets.tabs["Notes"] = [["keep me"]]
        engine.ensure_tabs_and_headers()
        assert sheets.tabs["Notes"] == [["keep me"]]


# ============================================
# Push
# ============================================
class TestPush:
    def test_header_round_trip(self, engine, sheets, create_team):
        create_team()
        engine.push()
        for tab in SHEET_TABS:
            assert sheets.read_range(tab, "A1:Y1") == [HEADER]

    def test_summary(self, engine, create_team, catalogue, make_user):
        create_team()
        create_team(
            actor=make_user("dave@x.edu"), name="Team B", subject=catalogue.subject2,
            specs=(("dave@x.edu", "R7"), ("erin@x.edu", "R8"), ("frank@x.edu", "R9")),
        )
        summary = engine.push()
        assert summary["skipped"] is False
        assert summary["teams"] == 2
        assert summary["unmapped_teams"] == 0
        assert summary["leaderless_teams"] == 0
        assert summary["tabs"]["Y1_Subject1"] == 1
        assert summary["tabs"]["Y1_Subject2"] == 1
        assert summary["tabs"]["Y3_Subject2"] == 0

    def test_rows_land_in_mapped_tab(self, engine, sheets, create_team):
        team = create_team()
        engine.push()
        rows = sheets.values("Y1_Subject1")
        assert len(rows) == 2
        assert rows[1][:4] == [team["id"], "Team A", "1", "Subject1"]
        assert rows[1][4:7] == ["R1", "Alice", "alice@x.edu"]
        assert sheets.values("Y2_Subject1") == [HEADER]

    def test_push_is_idempotent(self, engine, sheets, create_team):
        create_team()
        engine.push()
        first = {tab: sheets.values(tab) for tab in SHEET_TABS}
        sheets.writes.clear()
        engine.push()
        assert {tab: sheets.values(tab) for tab in SHEET_TABS} == first
        assert all(cells.startswith("A1:Y") for _, cells, _ in sheets.writes)

    def test_never_shrinks_tab(self, engine, sheets, create_team):
        create_team()
        sheets.tabs["Y1_Subject1"] = [HEADER] + [_row(f"old-{i}") for i in range(5)]
        engine.push()
        tab, cells, values = [w for w in sheets.writes if w[0] == "Y1_Subject1"][-1]
        assert cells == "A1:Y6"
        assert len(values) == 6
        assert all(len(v) == 25 for v in values)
        assert values[2:] == [blank_row()] * 4
        assert len(sheets.values("Y1_Subject1")) == 2

    def test_unmapped_team_is_counted_not_written(self, engine, sheets, container, make_user):
        year = container.academic_repo.upsert_year("LY", "Final Year")
        subject = container.academic_repo.upsert_subject(year.id, "SUBJECT1", "Subject1")
        alice = make_user("alice@x.edu")
        container.team_service.create_team(alice, "Orphans", year.id, subject.id, [
            {"name": "Alice", "email": "alice@x.edu", "rollNumber": "R1", "role": "leader"},
            {"name": "Bob", "email": "bob@x.edu", "rollNumber": "R2"},
            {"name": "Carol", "email": "carol@x.edu", "rollNumber": "R3"},
        ])
        summary = engine.push()
        assert summary["teams"] == 1
        assert summary["unmapped_teams"] == 1
        assert sum(summary["tabs"].values()) == 0

    def test_leaderless_team_uses_first_member(self, engine, sheets, create_team, container):
        team = create_team()
        with container.engine.begin() as conn:
            conn.execute(update(team_members).values(role="member"))
        summary = engine.push()
        assert summary["leaderless_teams"] == 1
        assert sheets.values("Y1_Subject1")[1][4] == "R1"
        assert sheets.values("Y1_Subject1")[1][0] == team["id"]

    def test_frozen_status_shows_finalized(self, engine, sheets, create_team, db_engine):
        create_team()
        with db_engine.begin() as conn:
            conn.execute(update(teams).values(status="FROZEN"))
        engine.push()
        assert sheets.values("Y1_Subject1")[1][18] == "FINALIZED"

    def test_write_failure_restores_previous_values(self, engine, sheets, create_team):
        create_team()
        engine.ensure_tabs_and_headers()
        previous = [HEADER, _row("old-1", "Dr. Old", "old@x.edu")]
        sheets.tabs["Y1_Subject1"] = [list(r) for r in previous]
        sheets.fail_writes["Y1_Subject1"] = 1
        with pytest.raises(IntegrationError):
            engine.push()
        assert sheets.values("Y1_Subject1")[1][0] == "old-1"
        assert sheets.values("Y1_Subject1")[1][17] == "old@x.edu"

    def test_restore_failure_still_raises_original(self, engine, sheets, create_team):
        create_team()
        engine.ensure_tabs_and_headers()
        sheets.fail_writes["Y1_Subject1"] = 2
        with pytest.raises(IntegrationError, match="Unable to write Y1_Subject1"):
            engine.push()

    def test_unreadable_tab_is_still_written(self, engine, sheets, create_team):
        team = create_team()
        engine.ensure_tabs_and_headers()
        sheets.fail_reads.add("Y1_Subject1")
        with patch.object(engine, "ensure_tabs_and_headers", return_value={}):
            engine.push()
        sheets.fail_reads.clear()
        assert sheets.values("Y1_Subject1")[1][0] == team["id"]

    def test_unconfigured_push_is_skipped(self, container):
        engine = SheetSyncEngine(container.team_repo, container.user_repo, None)
        summary = engine.push()
        assert summary["skipped"] is True
        assert summary["reason"]


class TestPushBestEffort:
    def test_ok(self, engine):
        outcome = engine.push_best_effort("test")
        assert outcome.status == "ok"
        assert outcome.summary["skipped"] is False

    def test_skipped(self, container):
        engine = SheetSyncEngine(container.team_repo, container.user_repo, None)
        assert engine.push_best_effort("test").status == "skipped"

    def test_integration_error_swallowed(self, engine, sheets):
        sheets.fail_writes = {tab: 99 for tab in SHEET_TABS}
        outcome = engine.push_best_effort("test")
        assert outcome.status == "error"
        assert "Unable to write" in outcome.error

    def test_unexpected_error_swallowed(self, engine):
        with patch.object(engine, "_push", side_effect=ValueError("bad row")):
            outcome = engine.push_best_effort("test")
        assert outcome.status == "error"



def _error_runs(direction):
    return REGISTRY.get_sample_value(
        "pbl_sheet_sync_runs_total", {"direction": direction, "outcome": "error"}
    ) or 0.0


class TestRunOutcomes:
    def test_database_failure_during_push_counts_as_error(self, engine, container):
        before = _error_runs("push")
        failure = OperationalError("SELECT", {}, Exception("connection lost"))
        with patch.object(container.team_repo, "find_teams", side_effect=failure):
            outcome = engine.push_best_effort("test")
        assert outcome.status == "error"
        assert _error_runs("push") == before + 1

    def test_database_failure_during_pull_counts_as_error(self, engine, sheets, container, create_team):
        team = create_team()
        engine.ensure_tabs_and_headers()
        sheets.tabs["Y1_Subject1"] = [HEADER, _row(team["id"], "Dr. Lee", "lee@x.edu")]
        before = _error_runs("pull")
        failure = OperationalError("UPDATE", {}, Exception("connection lost"))
        with patch.object(container.team_repo, "update_mentor", side_effect=failure):
            with pytest.raises(OperationalError):
                engine.pull_mentor_updates()
        assert _error_runs("pull") == before + 1


# ============================================
# Pull
# ============================================
class TestPull:
    def _sheet(self, engine, sheets, tab, rows):
        engine.ensure_tabs_and_headers()
        sheets.tabs[tab] = [HEADER] + rows

    def test_provisions_teacher_and_assigns_mentor(self, engine, sheets, container, create_team):
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "Dr. Lee", "Lee@X.edu ")])

        summary = engine.pull_mentor_updates()

        lee = container.user_repo.find_by_email("lee@x.edu")
        assert lee is not None
        assert lee.role == "teacher"
        assert lee.name == "Dr. Lee"
        stored = container.team_repo.get(team["id"])
        assert stored.mentor.email == "lee@x.edu"
        assert stored.mentor.name == "Dr. Lee"
        assert summary["processed"] == 1
        assert summary["updated"] == 1
        assert summary["provisioned_teachers"] == 1
        assert summary["provisioned_teacher_emails"] == ["lee@x.edu"]
        assert summary["unknown_mentor_emails"] == []
        assert summary["by_tab"]["Y1_Subject1"] == {
            "processed": 1, "updated": 1, "cleared": 0, "rejected": 0,
        }

    def test_second_pull_updates_nothing(self, engine, sheets, container, create_team):
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "Dr. Lee", "lee@x.edu")])
        engine.pull_mentor_updates()
        summary = engine.pull_mentor_updates()
        assert summary["processed"] == 1
        assert summary["updated"] == 0
        assert summary["provisioned_teachers"] == 0

    def test_existing_teacher_is_eligible(self, engine, sheets, container, create_team, make_user):
        make_user("lee@x.edu", role="teacher", name="Prof Lee")
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "Dr. Lee", "lee@x.edu")])
        summary = engine.pull_mentor_updates()
        assert summary["provisioned_teachers"] == 0
        assert summary["unknown_mentor_emails"] == []
        assert container.user_repo.find_by_email("lee@x.edu").name == "Prof Lee"

    def test_never_escalates_existing_role(self, engine, sheets, container, create_team, make_user):
        make_user("boss@x.edu", role="admin")
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "Boss", "boss@x.edu")])
        summary = engine.pull_mentor_updates()
        assert container.user_repo.find_by_email("boss@x.edu").role == "admin"
        assert summary["unknown_mentor_emails"] == ["boss@x.edu"]
        assert summary["provisioned_teachers"] == 0

    def test_student_email_is_unknown(self, engine, sheets, container, create_team):
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "Alice", "alice@x.edu")])
        summary = engine.pull_mentor_updates()
        assert container.user_repo.find_by_email("alice@x.edu").role == "student"
        assert summary["unknown_mentor_emails"] == ["alice@x.edu"]

    def test_blank_mentor_cells_clear_assignment(self, engine, sheets, container, create_team):
        team = create_team()
        container.team_repo.update_mentor(team["id"], "Dr. Lee", "lee@x.edu")
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"])])
        summary = engine.pull_mentor_updates()
        stored = container.team_repo.get(team["id"])
        assert stored.mentor.email == ""
        assert stored.mentor.name == ""
        assert summary["updated"] == 1
        assert summary["cleared"] == 1

    def test_rows_without_team_id_are_ignored(self, engine, sheets, create_team):
        create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row("", "Dr. Lee", "lee@x.edu")])
        summary = engine.pull_mentor_updates()
        assert summary["processed"] == 0

    def test_unknown_team_id_is_processed_not_updated(self, engine, sheets):
        self._sheet(engine, sheets, "Y1_Subject1", [
            _row(str(uuid.uuid4()), "Dr. Lee", "lee@x.edu"),
            _row("not-a-team", "Dr. Lee", "lee@x.edu"),
        ])
        summary = engine.pull_mentor_updates()
        assert summary["processed"] == 2
        assert summary["updated"] == 0

    def test_first_non_empty_name_wins(self, engine, sheets, container, create_team, make_user):
        team_a = create_team()
        team_b = create_team(
            actor=make_user("dave@x.edu"), name="Team B",
            specs=(("dave@x.edu", "R7"), ("erin@x.edu", "R8"), ("frank@x.edu", "R9")),
        )
        self._sheet(engine, sheets, "Y1_Subject1", [
            _row(team_a["id"], "", "lee@x.edu"),
            _row(team_b["id"], "Dr. Lee", "lee@x.edu"),
        ])
        summary = engine.pull_mentor_updates()
        assert container.user_repo.find_by_email("lee@x.edu").name == "Dr. Lee"
        assert summary["provisioned_teachers"] == 1

    def test_default_teacher_name(self, engine, sheets, container, create_team):
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "", "anon@x.edu")])
        engine.pull_mentor_updates()
        assert container.user_repo.find_by_email("anon@x.edu").name == "Teacher"

    def test_tab_missing_columns_is_skipped_with_reason(self, engine, sheets, container, create_team):
        team = create_team()
        engine.ensure_tabs_and_headers()
        sheets.tabs["Y1_Subject1"] = [["Team ID", "Mentor"], [team["id"], "Dr. Lee"]]
        summary = engine.pull_mentor_updates()
        assert summary["by_tab"]["Y1_Subject1"]["skipped"] is True
        assert summary["by_tab"]["Y1_Subject1"]["reason"] == "Missing required columns"
        assert container.team_repo.get(team["id"]).mentor.email == ""
        assert sheets.values("Y1_Subject1")[0] == ["Team ID", "Mentor"]

    def test_columns_located_by_header_text(self, engine, sheets, container, create_team):
        team = create_team()
        engine.ensure_tabs_and_headers()
        sheets.tabs["Y1_Subject1"] = [
            ["Mentor Email", "Notes", "Team ID", "Mentor Name"],
            ["lee@x.edu", "hi", team["id"], "Dr. Lee"],
        ]
        engine.pull_mentor_updates()
        assert container.team_repo.get(team["id"]).mentor.email == "lee@x.edu"

    def test_inserted_column_does_not_shift_mentor_cells(self, engine, sheets, container, create_team):
        team = create_team()
        engine.ensure_tabs_and_headers()
        header = HEADER[:5] + ["Notes"] + HEADER[5:]
        row = _row(team["id"], "Dr. Lee", "lee@x.edu")
        row = row[:5] + ["call Friday"] + row[5:]
        sheets.tabs["Y1_Subject1"] = [header, row]

        summary = engine.pull_mentor_updates()

        stored = container.team_repo.get(team["id"])
        assert (stored.mentor.name, stored.mentor.email) == ("Dr. Lee", "lee@x.edu")
        assert summary["provisioned_teacher_emails"] == ["lee@x.edu"]
        assert sheets.values("Y1_Subject1")[0] == header

    def test_empty_tab_gets_header_before_reading(self, engine, sheets):
        summary = engine.pull_mentor_updates()
        for tab in SHEET_TABS:
            assert sheets.values(tab) == [HEADER]
            assert summary["by_tab"][tab]["processed"] == 0

    def test_over_long_mentor_cells_are_rejected(self, engine, sheets, container, create_team, make_user):
        team_a = create_team()
        team_b = create_team(
            actor=make_user("dave@x.edu"), name="Team B",
            specs=(("dave@x.edu", "R7"), ("erin@x.edu", "R8"), ("frank@x.edu", "R9")),
        )
        long_email = "x" * 320 + "@x.edu"
        self._sheet(engine, sheets, "Y1_Subject1", [
            _row(team_a["id"], "L" * 256, "lee@x.edu"),
            _row(team_b["id"], "Dr. Kim", long_email),
        ])

        summary = engine.pull_mentor_updates()

        assert summary["rejected"] == 2
        assert summary["by_tab"]["Y1_Subject1"]["rejected"] == 2
        assert summary["processed"] == 0
        assert summary["provisioned_teachers"] == 0
        assert container.user_repo.find_by_email(long_email) is None
        assert container.team_repo.get(team_a["id"]).mentor.email == ""

    def test_mentor_cells_at_column_width_are_accepted(self, engine, sheets, container, create_team):
        team = create_team()
        name = "L" * 255
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], name, "lee@x.edu")])
        summary = engine.pull_mentor_updates()
        assert summary["rejected"] == 0
        assert container.team_repo.get(team["id"]).mentor.name == name

    def test_concurrent_provisioning_creates_one_account(self, engine, sheets, container, create_team):
        team = create_team()
        self._sheet(engine, sheets, "Y1_Subject1", [_row(team["id"], "Dr. Lee", "lee@x.edu")])
        real_find = container.user_repo.find_by_emails
        calls = {"n": 0}

        def racing_find(emails):
            calls["n"] += 1
            found = real_find(emails)
            if calls["n"] == 1:
                # Another sync inserts the account between our read and our insert.
                container.user_repo.insert_if_absent("lee@x.edu", "Other Lee", "teacher")
                return {}
            return found

        with patch.object(container.user_repo, "find_by_emails", side_effect=racing_find):
            summary = engine.pull_mentor_updates()
        assert summary["provisioned_teachers"] == 0
        assert summary["unknown_mentor_emails"] == []
        assert container.user_repo.find_by_email("lee@x.edu").name == "Other Lee"
        assert container.team_repo.get(team["id"]).mentor.email == "lee@x.edu"

    def test_read_failure_propagates(self, engine, sheets):
        engine.ensure_tabs_and_headers()
        sheets.fail_reads.add("Y1_Subject1")
        with pytest.raises(IntegrationError):
            engine.pull_mentor_updates()

    def test_unconfigured_pull_is_skipped(self, container):
        engine = SheetSyncEngine(container.team_repo, container.user_repo, None)
        assert engine.pull_mentor_updates()["skipped"] is True


def test_fake_client_reads_like_the_api():
    client = FakeSheetsClient({"T": [["a", "", ""], ["", ""], []]})
    assert client.read_range("T", "A1:Y") == [["a"]]
