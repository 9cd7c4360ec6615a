from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from werkzeug.security import check_password_hash

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .model import Actor
from .repository import UserRepository


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        return SessionUser(user_id=user.user_id, full_name=user.full_name, role=user.role)


def require_actor(actor: Optional[Actor], roles: Iterable[Role] = (Role.ADMIN, Role.STAFF)) -> Actor:
    if actor is None:
        raise AuthenticationError("User must be authenticated")
    if actor.role not in set(roles):
        raise AuthorizationError("You do not have permission for this action")
    return actor


def require_admin(actor: Optional[Actor]) -> Actor:
    return require_actor(actor, (Role.ADMIN,))
