# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Login provisioning for the auth gateway.
The gateway verifies credentials itself and calls here with its API key.
"""

from fastapi import APIRouter, Depends

from pbl_teams.core.dependencies import get_user_service, require_gateway_key
from pbl_teams.schemas import LoginUserRequest, LoginUserResponse, UserOut
from pbl_teams.services.user_service import UserService

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/users", response_model=LoginUserResponse, dependencies=[Depends(require_gateway_key)])
def ensure_login_user(
    body: LoginUserRequest,
    service: UserService = Depends(get_user_service),
):
    """Find or create the account behind a verified login."""
    user = service.ensure_login_user(body.email, body.name, body.role)
    return LoginUserResponse(user=UserOut(**user.model_dump()))
