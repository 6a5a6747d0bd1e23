"""
Core dependencies for route protection and role checks
"""

from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from folio.database.client import Database, get_database
from folio.modules.auth.service import AuthService

# auto_error=False so routes decide between anonymous access and 401
security = HTTPBearer(auto_error=False)


def get_auth_service(database: Database = Depends(get_database)) -> AuthService:
    return AuthService(database)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    """User for a valid token, None when the token is absent or unusable."""
    if credentials is None:
        return None
    try:
        return auth_service.authenticate(credentials.credentials)
    except HTTPException:
        return None


def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Missing token is 401, an invalid, expired or revoked one is 403."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
        )
    return auth_service.authenticate(credentials.credentials)


def require_role(*roles: str):
    """Factory function to create a role check dependency"""
    def check_role(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
        if user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {' or '.join(roles)}",
            )
        return user
    return check_role


require_admin = require_role("admin")
require_editor = require_role("admin", "editor")
