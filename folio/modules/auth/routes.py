from typing import Dict

from fastapi import APIRouter, Depends

from folio.core.dependencies import get_auth_service, require_admin, require_user
from folio.modules.auth.schemas import (
    ChangePasswordRequest, SessionResponse, SetRoleRequest, SignInRequest,
    SignUpRequest, UserListResponse, UserResponse,
)
from folio.modules.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _public_user(user: Dict) -> UserResponse:
    return UserResponse(**{k: v for k, v in user.items() if k != "claims"})


@router.post("/signup", response_model=SessionResponse, status_code=201)
async def sign_up(
    data: SignUpRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Register a new editor account"""
    return service.sign_up(data)


@router.post("/signin", response_model=SessionResponse)
async def sign_in(
    data: SignInRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Login and get access token"""
    return service.sign_in(data)


@router.post("/signout")
async def sign_out(
    current_user: Dict = Depends(require_user),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke the presented token"""
    service.sign_out(current_user["claims"])
    return {"message": "Signed out successfully"}


@router.get("/session")
async def get_session(current_user: Dict = Depends(require_user)):
    claims = current_user["claims"]
    return {
        "user": _public_user(current_user),
        "expires_at": claims["exp"],
    }


@router.get("/user", response_model=UserResponse)
async def get_user(current_user: Dict = Depends(require_user)):
    return _public_user(current_user)


@router.put("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    current_user: Dict = Depends(require_user),
    service: AuthService = Depends(get_auth_service),
):
    service.change_password(current_user["id"], data)
    return {"message": "Password updated successfully"}


@router.get("/users", response_model=UserListResponse)
async def list_users(
    current_user: Dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    return UserListResponse(users=service.list_users())


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def set_user_role(
    user_id: str,
    data: SetRoleRequest,
    current_user: Dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    return service.set_role(current_user["id"], user_id, data.role)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    current_user: Dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    service.delete_user(current_user["id"], user_id)
    return {"message": "User deleted successfully"}
