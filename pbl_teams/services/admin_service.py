# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Admin oversight — team listing, explicit spreadsheet syncs and
legacy status migration. Explicit syncs surface integration failures.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from pbl_teams.core.config import settings
from pbl_teams.core.errors import IntegrationError, NotFoundError, ValidationFailed
from pbl_teams.core.logging import get_logger
from pbl_teams.models.domain import Team
from pbl_teams.repositories.setting_repository import SettingRepository
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.services.sheet_sync import NOT_CONFIGURED, SheetSyncEngine
from pbl_teams.services.team_validator import is_entity_ref

logger = get_logger(__name__)

MENTOR_SYNC_KEY = "mentorSync"
STATUS_MIGRATION_KEY = "teamStatusMigration"


class AdminService:
    def __init__(
        self,
        team_repo: TeamRepository,
        setting_repo: SettingRepository,
        sync_engine: SheetSyncEngine,
    ) -> None:
        self._teams = team_repo
        self._settings = setting_repo
        self._sync = sync_engine

    # ── Teams ──

    def list_teams(self, page: Optional[int] = None, limit: Optional[int] = None) -> dict[str, Any]:
        page = page if page and page > 0 else 1
        limit = min(limit, settings.MAX_PAGE_SIZE) if limit and limit > 0 else settings.DEFAULT_PAGE_SIZE

        total = self._teams.count()
        teams = self._teams.find_teams(
            limit=limit, offset=(page - 1) * limit, with_catalogue=True
        )
        last_sync = self._settings.get(MENTOR_SYNC_KEY) or {}
        return {
            "teams": teams,
            "last_synced_at": last_sync.get("lastSyncedAt"),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    def team_details(self, team_id: str) -> Team:
        if not is_entity_ref(team_id):
            raise ValidationFailed("Invalid team id")
        team = self._teams.get(team_id, with_catalogue=True)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    # ── Spreadsheet ──

    def sync_mentors(self) -> dict[str, Any]:
        """Pull mentor columns, record the run, then refresh the sheet."""
        self._require_sheets()
        summary = self._sync.pull_mentor_updates()
        synced_at = datetime.now(timezone.utc).isoformat()
        self._settings.put(MENTOR_SYNC_KEY, {"lastSyncedAt": synced_at, "summary": summary})
        self._sync.push_best_effort("mentor sync")
        return {**summary, "last_synced_at": synced_at}

    def sync_sheet(self) -> dict[str, Any]:
        self._require_sheets()
        return self._sync.push()

    def _require_sheets(self) -> None:
        if not self._sync.configured:
            raise IntegrationError(NOT_CONFIGURED)

    # ── Migrations ──

    def migrate_team_statuses(self) -> dict[str, Any]:
        matched, modified = self._teams.migrate_legacy_statuses()
        self._settings.put(
            STATUS_MIGRATION_KEY,
            {
                "migratedAt": datetime.now(timezone.utc).isoformat(),
                "matchedCount": matched,
                "modifiedCount": modified,
            },
        )
        logger.info("Legacy team statuses migrated: matched=%d modified=%d", matched, modified)
        return {"ok": True, "matched_count": matched, "modified_count": modified}
