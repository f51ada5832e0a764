# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Year/Subject catalogue and the idempotent startup seed.
"""

from typing import Any

from pbl_teams.core.config import Settings
from pbl_teams.core.errors import ValidationFailed
from pbl_teams.core.logging import get_logger
from pbl_teams.models.domain import ROLE_ADMIN, ROLE_TEACHER, Subject, Year
from pbl_teams.repositories.academic_repository import AcademicRepository
from pbl_teams.repositories.user_repository import UserRepository
from pbl_teams.services.team_validator import is_entity_ref

logger = get_logger(__name__)

# (code, display name); codes resolve directly to sheet tabs Y1..Y3.
DEFAULT_YEARS: tuple[tuple[str, str], ...] = (
    ("1", "First Year"),
    ("2", "Second Year"),
    ("3", "Third Year"),
)
DEFAULT_SUBJECTS: tuple[tuple[str, str], ...] = (
    ("SUBJECT1", "Subject1"),
    ("SUBJECT2", "Subject2"),
)
RETIRED_YEAR_CODES = ["FY", "SY", "TY", "LY"]


class AcademicService:
    def __init__(self, academic_repo: AcademicRepository, user_repo: UserRepository) -> None:
        self._academics = academic_repo
        self._users = user_repo

    def list_years(self) -> list[Year]:
        return self._academics.list_years(active_only=True)

    def list_subjects(self, year_id: Any) -> list[Subject]:
        if not year_id:
            raise ValidationFailed("yearId is required")
        if not is_entity_ref(year_id):
            raise ValidationFailed("Invalid yearId")
        return self._academics.list_subjects(year_id, active_only=True)

    def seed_defaults(self, cfg: Settings) -> dict[str, int]:
        """Create the default catalogue and bootstrap accounts. Safe to re-run."""
        _, admin_created = self._seed_user(cfg.SEED_ADMIN_EMAIL, "Administrator", ROLE_ADMIN)
        _, teacher_created = self._seed_user(
            cfg.SEED_TEACHER_EMAIL, cfg.SEED_TEACHER_NAME or "Teacher", ROLE_TEACHER
        )

        year_ids = []
        for code, name in DEFAULT_YEARS:
            year = self._academics.upsert_year(code, name, is_active=True)
            year_ids.append(year.id)
            for subject_code, subject_name in DEFAULT_SUBJECTS:
                self._academics.upsert_subject(year.id, subject_code, subject_name, is_active=True)

        retired_years = self._academics.deactivate_years(RETIRED_YEAR_CODES)
        retired_subjects = self._academics.deactivate_other_subjects(
            year_ids, [code for code, _ in DEFAULT_SUBJECTS]
        )
        summary = {
            "users_created": int(admin_created) + int(teacher_created),
            "years": len(year_ids),
            "retired_years": retired_years,
            "retired_subjects": retired_subjects,
        }
        logger.info("Seed complete: %s", summary)
        return summary

    def _seed_user(self, email: str, name: str, role: str) -> tuple[Any, bool]:
        if not email:
            return None, False
        user, inserted = self._users.insert_if_absent(email, name, role)
        if user.role != role:
            logger.warning("Seed account %s already exists as %s", email, user.role)
        return user, inserted
