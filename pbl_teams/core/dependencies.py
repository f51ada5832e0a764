# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire repositories and services, resolve the
caller identity forwarded by the auth gateway.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.engine import Engine

from pbl_teams.core.config import settings
from pbl_teams.core.database import engine
from pbl_teams.core.errors import AccessDeniedError, UnauthenticatedError
from pbl_teams.models.domain import Identity
from pbl_teams.repositories.academic_repository import AcademicRepository
from pbl_teams.repositories.message_repository import MessageRepository
from pbl_teams.repositories.setting_repository import SettingRepository
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.repositories.user_repository import UserRepository
from pbl_teams.services.academic_service import AcademicService
from pbl_teams.services.admin_service import AdminService
from pbl_teams.services.grading_service import GradingService
from pbl_teams.services.message_service import MessageService
from pbl_teams.services.sheet_sync import SheetSyncEngine
from pbl_teams.services.sheets_client import SheetsClient, build_sheets_client
from pbl_teams.services.team_service import TeamService
from pbl_teams.services.user_service import UserService


@dataclass
class Container:
    engine: Engine
    team_repo: TeamRepository
    user_repo: UserRepository
    academic_repo: AcademicRepository
    message_repo: MessageRepository
    setting_repo: SettingRepository
    sync_engine: SheetSyncEngine
    team_service: TeamService
    grading_service: GradingService
    message_service: MessageService
    user_service: UserService
    admin_service: AdminService
    academic_service: AcademicService


def build_container(db_engine: Engine, sheets_client: Optional[SheetsClient]) -> Container:
    team_repo = TeamRepository(db_engine)
    user_repo = UserRepository(db_engine)
    academic_repo = AcademicRepository(db_engine)
    message_repo = MessageRepository(db_engine)
    setting_repo = SettingRepository(db_engine)
    sync_engine = SheetSyncEngine(team_repo, user_repo, sheets_client)
    return Container(
        engine=db_engine,
        team_repo=team_repo,
        user_repo=user_repo,
        academic_repo=academic_repo,
        message_repo=message_repo,
        setting_repo=setting_repo,
        sync_engine=sync_engine,
        team_service=TeamService(team_repo, academic_repo, sync_engine),
        grading_service=GradingService(team_repo, sync_engine),
        message_service=MessageService(message_repo, team_repo),
        user_service=UserService(user_repo, team_repo),
        admin_service=AdminService(team_repo, setting_repo, sync_engine),
        academic_service=AcademicService(academic_repo, user_repo),
    )


# ── Singleton wiring ──
_container = build_container(engine, build_sheets_client(settings))


# ── FastAPI dependency functions ──
def get_container() -> Container:
    return _container


def get_team_service(c: Container = Depends(get_container)) -> TeamService:
    return c.team_service


def get_grading_service(c: Container = Depends(get_container)) -> GradingService:
    return c.grading_service


def get_message_service(c: Container = Depends(get_container)) -> MessageService:
    return c.message_service


def get_user_service(c: Container = Depends(get_container)) -> UserService:
    return c.user_service


def get_admin_service(c: Container = Depends(get_container)) -> AdminService:
    return c.admin_service


def get_academic_service(c: Container = Depends(get_container)) -> AcademicService:
    return c.academic_service


# ── Caller identity ──
def get_current_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    users: UserService = Depends(get_user_service),
) -> Identity:
    """Identity forwarded by the gateway, checked against the stored account."""
    return users.resolve_identity(x_user_id, x_user_email, x_user_role)


def require_role(*roles: str) -> Callable[..., Identity]:
    def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in roles:
            raise AccessDeniedError("Forbidden")
        return identity

    return dependency


def require_gateway_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    if not x_api_key:
        raise UnauthenticatedError("Missing API key. Provide X-API-Key header.")
    if x_api_key not in settings.GATEWAY_API_KEYS:
        raise AccessDeniedError("Invalid API key.")
