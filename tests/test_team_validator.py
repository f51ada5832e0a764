# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Tests for team payload validation (pure, no database)."""

import uuid

import pytest

from pbl_teams.services.team_validator import (
    compact_members,
    is_entity_ref,
    normalize_members,
    validate_team_payload,
)

YEAR_ID = str(uuid.uuid4())
SUBJECT_ID = str(uuid.uuid4())


def _members():
    return [
        {"name": " Alice ", "email": "Alice@X.edu ", "rollNumber": " r1", "role": "leader"},
        {"name": "Bob", "email": "bob@x.edu", "rollNumber": "r2"},
        {"name": "Carol", "email": "carol@x.edu", "rollNumber": "r3"},
    ]


def _validate(members=None, team_name="Team A", year_id=YEAR_ID, subject_id=SUBJECT_ID,
              acting="alice@x.edu"):
    return validate_team_payload(
        team_name, year_id, subject_id, _members() if members is None else members, acting
    )


class TestNormalization:
    def test_trims_lowercases_and_uppercases(self):
        m = normalize_members(_members())[0]
        assert m.name == "Alice"
        assert m.email == "alice@x.edu"
        assert m.roll_number == "R1"
        assert m.is_leader

    def test_is_leader_flag_infers_leader(self):
        m = normalize_members([{"name": "A", "email": "a@x", "rollNumber": "1", "isLeader": True}])[0]
        assert m.role == "leader"

    def test_non_dict_entries_become_empty_members(self):
        m = normalize_members(["garbage"])[0]
        assert (m.name, m.email, m.roll_number) == ("", "", "")

    def test_compaction_drops_blank_non_leader_rows(self):
        members = normalize_members(_members() + [{"name": " ", "email": "", "rollNumber": ""}])
        assert len(compact_members(members)) == 3

    def test_compaction_keeps_blank_leader(self):
        members = normalize_members([{"role": "leader"}])
        assert len(compact_members(members)) == 1


class TestEntityRefs:
    def test_uuid_is_ref(self):
        assert is_entity_ref(str(uuid.uuid4()))

    @pytest.mark.parametrize("value", [None, "", "abc", 42])
    def test_non_uuid_is_not_ref(self, value):
        assert not is_entity_ref(value)


class TestRules:
    def test_valid_payload(self):
        result = _validate()
        assert result.ok
        assert result.team_name == "Team A"
        assert [m.email for m in result.members] == ["alice@x.edu", "bob@x.edu", "carol@x.edu"]

    def test_four_members_allowed(self):
        members = _members() + [{"name": "Dave", "email": "dave@x.edu", "rollNumber": "R4"}]
        assert _validate(members).ok

    @pytest.mark.parametrize("name", ["", "   ", None, 5])
    def test_team_name_required(self, name):
        assert _validate(team_name=name).error == "Team Name is required"

    def test_invalid_year(self):
        assert _validate(year_id="nope").error == "Invalid yearId"

    def test_invalid_subject(self):
        assert _validate(subject_id="nope").error == "Invalid subjectId"

    def test_members_must_be_list(self):
        assert _validate(members={"a": 1}).error == "Members are required"

    def test_too_few_members(self):
        assert _validate(_members()[:2]).error == "Team must have 3 or 4 members"

    def test_too_many_members(self):
        extra = [{"name": f"M{i}", "email": f"m{i}@x.edu", "rollNumber": f"R{i + 4}"} for i in range(2)]
        assert _validate(_members() + extra).error == "Team must have 3 or 4 members"

    def test_blank_rows_do_not_count(self):
        members = _members()[:2] + [{"name": "", "email": "", "rollNumber": ""}]
        assert _validate(members).error == "Team must have 3 or 4 members"

    def test_member_fields_required(self):
        members = _members()
        members[2]["rollNumber"] = ""
        assert _validate(members).error == "Each member requires name, email, rollNumber"

    def test_team_name_width(self):
        assert _validate(team_name="T" * 255).ok
        assert _validate(team_name="T" * 256).error == "Team Name must be at most 255 characters"

    @pytest.mark.parametrize("key,value,message", [
        ("name", "N" * 256, "Member name must be at most 255 characters"),
        ("email", "b" * 320 + "@x.edu", "Member email must be at most 320 characters"),
        ("rollNumber", "R" * 65, "Roll number must be at most 64 characters"),
        ("section", "S" * 65, "Section must be at most 64 characters"),
    ])
    def test_member_field_widths(self, key, value, message):
        members = _members()
        members[1][key] = value
        assert _validate(members).error == message

    def test_width_checked_after_trimming(self):
        members = _members()
        members[1]["rollNumber"] = "  " + "r" * 64 + "  "
        assert _validate(members).ok

    def test_no_leader_rejected(self):
        members = _members()
        members[0].pop("role")
        assert _validate(members).error == "Exactly 1 leader is required"

    def test_two_leaders_rejected(self):
        members = _members()
        members[1]["isLeader"] = True
        assert _validate(members).error == "Exactly 1 leader is required"

    def test_leader_must_be_submitter(self):
        assert _validate(acting="bob@x.edu").error == "Leader must be the logged-in student"

    def test_leader_match_is_case_insensitive(self):
        assert _validate(acting="  ALICE@x.EDU").ok

    def test_duplicate_email(self):
        members = _members()
        members[2]["email"] = "BOB@x.edu"
        assert _validate(members).error == "Duplicate email detected within team"

    def test_duplicate_roll(self):
        members = _members()
        members[2]["rollNumber"] = "R2 "
        assert _validate(members).error == "Duplicate roll number detected within team"

    def test_first_violation_wins(self):
        result = _validate(_members()[:1], team_name="", year_id="bad")
        assert result.error == "Team Name is required"
