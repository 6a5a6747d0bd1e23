import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from folio.config import settings
from folio.core.security import (
    TokenError, create_access_token, decode_access_token, hash_password, verify_password,
)
from folio.database.client import Database
from folio.database.tables import profiles, revoked_tokens, users, utcnow
from folio.modules.auth.schemas import (
    ChangePasswordRequest, SessionResponse, SignInRequest, SignUpRequest, UserResponse,
)

logger = logging.getLogger(__name__)

ROLES = ("admin", "editor")


def _user_query():
    return (
        select(
            users.c.id, users.c.email, users.c.encrypted_password, users.c.created_at,
            users.c.last_sign_in_at, profiles.c.role, profiles.c.full_name,
        )
        .select_from(users.outerjoin(profiles, profiles.c.user_id == users.c.id))
        .where(users.c.deleted_at.is_(None))
    )


def _to_user(row: Dict[str, Any]) -> UserResponse:
    return UserResponse(
        id=row["id"],
        email=row["email"],
        role=row.get("role") or "editor",
        full_name=row.get("full_name"),
        created_at=row.get("created_at"),
        last_sign_in_at=row.get("last_sign_in_at"),
    )


class AuthService:
    def __init__(self, database: Database):
        self.database = database

    def _find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.database.fetch_one(_user_query().where(users.c.email == email.lower()))

    def _find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.database.fetch_one(_user_query().where(users.c.id == user_id))

    def _session(self, user: UserResponse) -> SessionResponse:
        token = create_access_token(user.id, user.email, user.role)
        return SessionResponse(
            access_token=token["access_token"],
            expires_in=token["expires_in"],
            user=user,
        )

    def sign_up(self, data: SignUpRequest) -> SessionResponse:
        """Create a user and its editor profile in one transaction"""
        if not settings.signup_enabled:
            raise HTTPException(status_code=403, detail="Sign up is disabled")
        email = data.email.lower()
        if self._find_by_email(email):
            raise HTTPException(status_code=400, detail="User already exists")

        encrypted = hash_password(data.password)
        now = utcnow()
        try:
            with self.database.transaction() as conn:
                user_id = conn.execute(
                    users.insert().values(
                        email=email,
                        encrypted_password=encrypted,
                        raw_user_meta_data={"full_name": data.full_name} if data.full_name else {},
                        confirmed_at=now,
                        email_confirmed_at=now,
                    ).returning(users.c.id)
                ).scalar_one()
                conn.execute(
                    profiles.insert().values(
                        user_id=user_id, email=email, full_name=data.full_name, role="editor",
                    )
                )
        except IntegrityError:
            raise HTTPException(status_code=400, detail="User already exists")

        logger.info("User signed up: %s", email)
        return self._session(_to_user(self._find_by_id(user_id)))

    def sign_in(self, data: SignInRequest) -> SessionResponse:
        row = self._find_by_email(data.email)
        if not row or not verify_password(data.password, row["encrypted_password"]):
            raise HTTPException(status_code=401, detail="Invalid email or password")

        self.database.execute(
            users.update().where(users.c.id == row["id"]).values(last_sign_in_at=utcnow())
        )
        return self._session(_to_user(row))

    def sign_out(self, claims: Dict[str, Any]) -> None:
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        try:
            self.database.execute(
                revoked_tokens.insert().values(
                    jti=claims["jti"], user_id=claims.get("sub"), expires_at=expires_at,
                )
            )
        except IntegrityError:
            # already revoked
            pass
        self.database.execute(revoked_tokens.delete().where(revoked_tokens.c.expires_at < utcnow()))

    def authenticate(self, token: str) -> Dict[str, Any]:
        """Validate a bearer token and return the user it belongs to."""
        try:
            claims = decode_access_token(token)
        except TokenError as e:
            logger.debug("Token rejected: %s", e)
            raise HTTPException(status_code=403, detail="Invalid or expired token")

        revoked = self.database.fetch_one(
            select(revoked_tokens.c.jti).where(revoked_tokens.c.jti == claims["jti"])
        )
        if revoked:
            raise HTTPException(status_code=403, detail="Token has been revoked")

        row = self._find_by_id(claims["sub"])
        if not row:
            raise HTTPException(status_code=403, detail="User no longer exists")

        user = _to_user(row).model_dump()
        user["claims"] = claims
        return user

    def get_user(self, user_id: str) -> UserResponse:
        row = self._find_by_id(user_id)
        if not row:
            raise HTTPException(status_code=404, detail="User not found")
        return _to_user(row)

    def change_password(self, user_id: str, data: ChangePasswordRequest) -> None:
        row = self._find_by_id(user_id)
        if not row or not verify_password(data.current_password, row["encrypted_password"]):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        self.database.execute(
            users.update().where(users.c.id == user_id).values(
                encrypted_password=hash_password(data.new_password)
            )
        )

    def list_users(self) -> List[UserResponse]:
        rows = self.database.fetch_all(_user_query().order_by(users.c.created_at.desc()))
        return [_to_user(row) for row in rows]

    def set_role(self, acting_user_id: str, user_id: str, role: str) -> UserResponse:
        if role not in ROLES:
            raise HTTPException(status_code=400, detail="Role must be admin or editor")
        if acting_user_id == user_id:
            raise HTTPException(status_code=400, detail="You cannot change your own role")
        if not self._find_by_id(user_id):
            raise HTTPException(status_code=404, detail="User not found")
        self.database.execute(
            profiles.update().where(profiles.c.user_id == user_id).values(role=role)
        )
        return self.get_user(user_id)

    def delete_user(self, acting_user_id: str, user_id: str) -> None:
        if acting_user_id == user_id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")
        if not self._find_by_id(user_id):
            raise HTTPException(status_code=404, detail="User not found")
        self.database.execute(
            users.update().where(users.c.id == user_id).values(deleted_at=utcnow())
        )
        logger.info("User soft-deleted: %s", user_id)
