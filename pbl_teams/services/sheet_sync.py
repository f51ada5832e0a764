# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Spreadsheet sync engine.

Push mirrors every team into its fixed tab (the database stays the source of
truth). Pull reads the mentor columns back, provisions teacher accounts for
unseen mentor emails and overwrites each listed team's mentor.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Optional

from pbl_teams.core.errors import IntegrationError
from pbl_teams.core.logging import get_logger
from pbl_teams.metrics import SHEET_SYNC_LATENCY, SHEET_SYNC_RUNS, TEACHERS_PROVISIONED
from pbl_teams.models.domain import MAX_EMAIL_LENGTH, MAX_NAME_LENGTH, ROLE_TEACHER
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.repositories.user_repository import UserRepository
from pbl_teams.services.sheet_layout import (
    SHEET_END_COL,
    SHEET_HEADER,
    SHEET_TABS,
    blank_row,
    has_flagged_leader,
    header_matches,
    normalize_row,
    render_row,
    tab_for_team,
)
from pbl_teams.services.sheets_client import SheetsClient

logger = get_logger(__name__)

NOT_CONFIGURED = "Missing Google Sheets env vars"
HEADER_CELLS = f"A1:{SHEET_END_COL}1"
TABLE_CELLS = f"A1:{SHEET_END_COL}"
DEFAULT_TEACHER_NAME = "Teacher"


@dataclass
class PushOutcome:
    """Result of a best-effort push; the triggering operation ignores it."""
    status: str
    summary: Optional[dict[str, Any]] = None
    error: Optional[str] = None


def _cell(row: list[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx]).strip()


class SheetSyncEngine:
    """Push teams to the spreadsheet and pull mentor assignments back."""

    def __init__(
        self,
        team_repo: TeamRepository,
        user_repo: UserRepository,
        client: Optional[SheetsClient],
    ) -> None:
        self._teams = team_repo
        self._users = user_repo
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None

    # ── Shared setup ──

    def _ensure_tabs(self) -> int:
        """Create the tabs the spreadsheet lacks. Returns how many were created."""
        meta = self._client.get_spreadsheet_metadata()
        existing = {
            (s.get("properties") or {}).get("title") for s in meta.get("sheets", []) or []
        }
        missing = [tab for tab in SHEET_TABS if tab not in existing]
        if missing:
            self._client.create_tabs(missing)
            logger.info("Created sheet tabs: %s", ",".join(missing))
        return len(missing)

    def ensure_tabs_and_headers(self) -> dict[str, int]:
        """Create missing tabs and rewrite any header row that drifted."""
        created = self._ensure_tabs()
        headers_updated = 0
        for tab in SHEET_TABS:
            rows = self._client.read_range(tab, HEADER_CELLS)
            if not header_matches(rows[0] if rows else []):
                self._client.write_range(tab, HEADER_CELLS, [list(SHEET_HEADER)])
                headers_updated += 1
        return {"created_tabs": created, "headers_updated": headers_updated}

    # ── Push ──

    def push(self) -> dict[str, Any]:
        """Rewrite every tab from the database. Raises IntegrationError."""
        if not self.configured:
            SHEET_SYNC_RUNS.labels(direction="push", outcome="skipped").inc()
            return {"skipped": True, "reason": NOT_CONFIGURED}
        with SHEET_SYNC_LATENCY.labels(direction="push").time():
            try:
                summary = self._push()
            except Exception:
                SHEET_SYNC_RUNS.labels(direction="push", outcome="error").inc()
                raise
        SHEET_SYNC_RUNS.labels(direction="push", outcome="ok").inc()
        logger.info(
            "Sheet push complete: teams=%d, unmapped=%d",
            summary["teams"], summary["unmapped_teams"],
        )
        return summary

    def push_best_effort(self, reason: str) -> PushOutcome:
        """Push after a primary write. Failures are logged but never raised."""
        try:
            summary = self.push()
        except Exception as exc:
            logger.warning("Sheet push after %s failed: %s", reason, exc)
            return PushOutcome(status="error", error=str(exc))
        if summary.get("skipped"):
            return PushOutcome(status="skipped", summary=summary)
        return PushOutcome(status="ok", summary=summary)

    def _push(self) -> dict[str, Any]:
        init = self.ensure_tabs_and_headers()
        all_teams = sorted(
            self._teams.find_teams(with_catalogue=True),
            key=lambda t: (t.created_at.isoformat() if t.created_at else "", t.id),
        )

        rows_by_tab: dict[str, list[list[Any]]] = defaultdict(list)
        unmapped: list[str] = []
        leaderless: list[str] = []
        for team in all_teams:
            tab = tab_for_team(team)
            if tab is None:
                unmapped.append(team.id)
                continue
            if not has_flagged_leader(team):
                leaderless.append(team.id)
            rows_by_tab[tab].append(render_row(team))

        if unmapped:
            logger.warning(
                "Teams without a sheet tab: count=%d, ids=%s",
                len(unmapped), ",".join(unmapped[:20]),
            )
        if leaderless:
            logger.warning(
                "Teams without a flagged leader, first member shown as leader: ids=%s",
                ",".join(leaderless[:20]),
            )

        per_tab: dict[str, int] = {}
        for tab in SHEET_TABS:
            rows = rows_by_tab.get(tab, [])
            self._write_tab(tab, [list(SHEET_HEADER), *rows])
            per_tab[tab] = len(rows)

        return {
            "skipped": False,
            "init": init,
            "tabs": per_tab,
            "teams": len(all_teams),
            "unmapped_teams": len(unmapped),
            "leaderless_teams": len(leaderless),
        }

    def _write_tab(self, tab: str, next_values: list[list[Any]]) -> None:
        """Full-range rewrite that never shrinks the tab; restores on failure."""
        try:
            existing: Optional[list[list[Any]]] = self._client.read_range(tab, TABLE_CELLS)
        except IntegrationError as exc:
            logger.warning("Could not read %s before write: %s", tab, exc)
            existing = None

        target = max(len(existing or []), len(next_values))
        padding = [blank_row() for _ in range(target - len(next_values))]
        cells = f"A1:{SHEET_END_COL}{target}"
        try:
            self._client.write_range(tab, cells, [normalize_row(r) for r in next_values] + padding)
        except IntegrationError:
            if existing is not None:
                restore = [["" if v is None else v for v in r] for r in existing]
                restore += [blank_row() for _ in range(target - len(existing))]
                try:
                    self._client.write_range(tab, cells, restore)
                except IntegrationError as restore_exc:
                    logger.error("Restore of %s failed: %s", tab, restore_exc)
            raise

    # ── Pull ──

    def pull_mentor_updates(self) -> dict[str, Any]:
        """Apply mentor columns from every tab. Raises IntegrationError."""
        if not self.configured:
            SHEET_SYNC_RUNS.labels(direction="pull", outcome="skipped").inc()
            return {"skipped": True, "reason": NOT_CONFIGURED}
        with SHEET_SYNC_LATENCY.labels(direction="pull").time():
            try:
                summary = self._pull()
            except Exception:
                SHEET_SYNC_RUNS.labels(direction="pull", outcome="error").inc()
                raise
        SHEET_SYNC_RUNS.labels(direction="pull", outcome="ok").inc()
        logger.info(
            "Mentor pull complete: processed=%d, updated=%d, provisioned=%d, unknown=%d",
            summary["processed"], summary["updated"],
            summary["provisioned_teachers"], len(summary["unknown_mentor_emails"]),
        )
        return summary

    def _pull(self) -> dict[str, Any]:
        # Headers are read as found; only an empty tab gets one written.
        self._ensure_tabs()

        processed = updated = cleared = rejected = provisioned = 0
        by_tab: dict[str, dict[str, Any]] = {}
        unknown: set[str] = set()
        provisioned_emails: set[str] = set()

        for tab in SHEET_TABS:
            values = self._client.read_range(tab, TABLE_CELLS)
            if not values:
                self._client.write_range(tab, HEADER_CELLS, [list(SHEET_HEADER)])
                by_tab[tab] = {"processed": 0, "updated": 0, "cleared": 0, "rejected": 0}
                continue

            header = [str(h if h is not None else "").strip() for h in values[0]]
            try:
                idx_team = header.index("Team ID")
                idx_name = header.index("Mentor Name")
                idx_email = header.index("Mentor Email")
            except ValueError:
                logger.warning("Tab %s skipped: missing mentor columns", tab)
                by_tab[tab] = {
                    "processed": 0, "updated": 0, "cleared": 0, "rejected": 0,
                    "skipped": True, "reason": "Missing required columns",
                }
                continue

            rows, oversized = self._split_oversized(values[1:], idx_team, idx_name, idx_email)
            if oversized:
                logger.warning(
                    "Tab %s: rejected %d rows with over-long mentor cells, teams=%s",
                    tab, len(oversized), ",".join(oversized[:20]),
                )

            teachers, tab_unknown, inserted, created = self._resolve_mentors(
                rows, idx_name, idx_email
            )
            unknown |= tab_unknown
            provisioned += inserted
            provisioned_emails |= created

            tab_processed = tab_updated = tab_cleared = 0
            for row in rows:
                team_id = _cell(row, idx_team)
                if not team_id:
                    continue
                tab_processed += 1
                name = _cell(row, idx_name)
                email = _cell(row, idx_email).lower()
                if email and email not in teachers:
                    unknown.add(email)
                if self._teams.update_mentor(team_id, name, email):
                    tab_updated += 1
                    if not email:
                        tab_cleared += 1

            processed += tab_processed
            updated += tab_updated
            cleared += tab_cleared
            rejected += len(oversized)
            by_tab[tab] = {
                "processed": tab_processed, "updated": tab_updated,
                "cleared": tab_cleared, "rejected": len(oversized),
            }

        return {
            "skipped": False,
            "processed": processed,
            "updated": updated,
            "cleared": cleared,
            "rejected": rejected,
            "by_tab": by_tab,
            "provisioned_teachers": provisioned,
            "provisioned_teacher_emails": sorted(provisioned_emails),
            "unknown_mentor_emails": sorted(unknown),
        }

    @staticmethod
    def _split_oversized(
        rows: list[list[Any]], idx_team: int, idx_name: int, idx_email: int
    ) -> tuple[list[list[Any]], list[str]]:
        """Drop rows whose mentor cells exceed the stored column widths.

        Returns (kept rows, team ids of the dropped rows that named a team).
        """
        kept: list[list[Any]] = []
        oversized: list[str] = []
        for row in rows:
            if (len(_cell(row, idx_name)) > MAX_NAME_LENGTH
                    or len(_cell(row, idx_email)) > MAX_EMAIL_LENGTH):
                team_id = _cell(row, idx_team)
                if team_id:
                    oversized.append(team_id)
                continue
            kept.append(row)
        return kept, oversized

    def _resolve_mentors(
        self, rows: list[list[Any]], idx_name: int, idx_email: int
    ) -> tuple[set[str], set[str], int, set[str]]:
        """Classify the tab's mentor emails; create teacher accounts for new ones.

        Returns (teacher emails, unresolvable emails, inserted count, created emails).
        An existing account with another role is never changed.
        """
        names: dict[str, str] = {}
        for row in rows:
            email = _cell(row, idx_email).lower()
            if not email:
                continue
            name = _cell(row, idx_name)
            if email not in names or (not names[email] and name):
                names[email] = name
        if not names:
            return set(), set(), 0, set()

        existing = self._users.find_by_emails(names)
        teachers: set[str] = set()
        unknown: set[str] = set()
        to_create: list[tuple[str, str]] = []
        for email, name in names.items():
            user = existing.get(email)
            if user is None:
                to_create.append((email, name or DEFAULT_TEACHER_NAME))
            elif user.role == ROLE_TEACHER:
                teachers.add(email)
            else:
                unknown.add(email)

        inserted = 0
        created: set[str] = set()
        if to_create:
            inserted = self._users.bulk_insert_teachers(to_create)
            TEACHERS_PROVISIONED.inc(inserted)
            stored = self._users.find_by_emails(email for email, _ in to_create)
            for email, _ in to_create:
                user = stored.get(email)
                if user is not None and user.role == ROLE_TEACHER:
                    teachers.add(email)
                    created.add(email)
                else:
                    unknown.add(email)
            logger.info("Provisioned teacher accounts: inserted=%d, emails=%s",
                        inserted, ",".join(sorted(created)))
        return teachers, unknown, inserted, created
