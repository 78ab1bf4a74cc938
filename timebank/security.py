from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from timebank.errors import ApiError
from timebank.models import EmployeeRole
from timebank.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

MANAGER_ROLES = frozenset({EmployeeRole.ADMIN.value, EmployeeRole.MANAGER.value})


@dataclass(frozen=True, slots=True)
class AuthContext:
    user_id: int
    role: str
    company_id: int

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError.invalid_token() from exc
    return payload


def auth_context_from_claims(payload: dict[str, Any]) -> AuthContext:
    try:
        user_id = int(payload.get("sub"))
        company_id = int(payload.get("company_id"))
    except (TypeError, ValueError) as exc:
        raise ApiError.invalid_token("Token claims are invalid.") from exc

    role = payload.get("role")
    if role not in {item.value for item in EmployeeRole}:
        raise ApiError.invalid_token("Token role is invalid.")
    return AuthContext(user_id=user_id, role=role, company_id=company_id)


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError.invalid_token("Missing bearer token.")

    auth = auth_context_from_claims(decode_token(credentials.credentials))
    request.state.actor = auth.role
    request.state.actor_id = str(auth.user_id)
    return auth


def require_manager(auth: AuthContext = Depends(require_user)) -> AuthContext:
    if not auth.is_manager:
        raise ApiError.forbidden()
    return auth
