# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package — re-exports the data-access classes."""
from pbl_teams.repositories.academic_repository import AcademicRepository
from pbl_teams.repositories.message_repository import MessageRepository
from pbl_teams.repositories.setting_repository import SettingRepository
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.repositories.user_repository import UserRepository

__all__ = [
    "AcademicRepository",
    "MessageRepository",
    "SettingRepository",
    "TeamRepository",
    "UserRepository",
]
