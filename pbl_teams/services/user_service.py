# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Accounts — login provisioning, caller resolution, teacher management.
An email maps to exactly one role for its whole lifetime.
"""

from typing import Any, Optional

from pbl_teams.core.errors import (
    AccessDeniedError,
    ConflictError,
    UnauthenticatedError,
    ValidationFailed,
)
from pbl_teams.core.logging import get_logger
from pbl_teams.models.domain import (
    ROLE_STUDENT,
    ROLE_TEACHER,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    USER_ROLES,
    Identity,
    User,
    normalize_email,
)
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.repositories.user_repository import UserRepository

logger = get_logger(__name__)

ROLE_MISMATCH = "Role mismatch"
ROLE_TAKEN = "Email already exists with a different role"


def _clean_name(value: Any) -> str:
    return value.strip()[:MAX_NAME_LENGTH] if isinstance(value, str) else ""


class UserService:
    def __init__(self, user_repo: UserRepository, team_repo: TeamRepository) -> None:
        self._users = user_repo
        self._teams = team_repo

    # ── Caller identity ──

    def resolve_identity(
        self, user_id: Optional[str], email: Optional[str], role: Optional[str]
    ) -> Identity:
        """Check a forwarded identity against the stored account."""
        if not user_id or not role:
            raise UnauthenticatedError("Missing auth context")
        user = self._users.get(user_id)
        if user is None or user.role != role:
            raise UnauthenticatedError("Invalid auth context")
        if email and normalize_email(email) != user.email:
            raise UnauthenticatedError("Invalid auth context")
        return Identity(id=user.id, email=user.email, role=user.role)

    # ── Login provisioning ──

    def ensure_login_user(self, email: Any, name: Any, role: Any) -> User:
        """
        Return the account for a verified login. Students are created on first
        login; teachers and admins must already be provisioned.
        Raises ValidationFailed or AccessDeniedError.
        """
        email = normalize_email(email)
        if not email:
            raise ValidationFailed("email is required")
        if len(email) > MAX_EMAIL_LENGTH:
            raise ValidationFailed("email is too long")
        if role not in USER_ROLES:
            raise ValidationFailed("Invalid role")
        name = _clean_name(name)

        existing = self._users.find_by_email(email)
        if existing is None:
            if role != ROLE_STUDENT:
                raise AccessDeniedError("Account not provisioned")
            user, inserted = self._users.insert_if_absent(email, name or "Student", role)
            if user.role != role:
                raise AccessDeniedError(ROLE_MISMATCH)
            if inserted:
                logger.info("Student account created email=%s", email)
            existing = user
        elif existing.role != role:
            raise AccessDeniedError(ROLE_MISMATCH)

        if name and existing.name != name:
            self._users.update_name(existing.id, name)
            existing = existing.model_copy(update={"name": name})
        return existing

    # ── Teacher management ──

    def create_teacher(self, email: Any, name: Any) -> tuple[User, bool]:
        """Create a teacher or rename an existing one. Returns (teacher, created)."""
        email = normalize_email(email)
        if not email:
            raise ValidationFailed("email is required")
        if len(email) > MAX_EMAIL_LENGTH:
            raise ValidationFailed("email is too long")
        name = _clean_name(name) or "Teacher"

        user = self._users.find_by_email(email)
        created = False
        if user is None:
            user, created = self._users.insert_if_absent(email, name, ROLE_TEACHER)
        if user.role != ROLE_TEACHER:
            raise ConflictError(ROLE_TAKEN)
        if created:
            logger.info("Teacher account created email=%s", email)
            return user, True

        if user.name != name:
            self._users.update_name(user.id, name)
            user = user.model_copy(update={"name": name})
        return user, False

    def list_teachers(self) -> list[dict[str, Any]]:
        counts = self._teams.count_by_mentor()
        return [
            {**t.model_dump(), "assigned_teams_count": counts.get(t.email, 0)}
            for t in self._users.list_by_role(ROLE_TEACHER)
        ]
