"""Identity resolution for FastAPI endpoints.

Sign-in happens upstream. Requests carry either a bearer access token or, in
development only, ``X-User-*`` headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from gamehub.infra import jwt as jwt_helper
from gamehub.settings import settings

USER_ROLES = jwt_helper.ROLES


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	name: str = "Unknown"
	role: str = "user"
	status: str = "active"

	def has_role(self, *roles: str) -> bool:
		return self.role in roles

	@property
	def can_review(self) -> bool:
		return self.role in ("reviewer", "admin")

	@property
	def is_admin(self) -> bool:
		return self.role == "admin"


_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
	return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def verify_access_jwt(token: str) -> AuthenticatedUser:
	try:
		claims = jwt_helper.decode_access(token)
	except InvalidTokenError:
		raise _unauthorized() from None
	return AuthenticatedUser(id=claims.sub, name=claims.name, role=claims.role, status=claims.status)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(
			id=x_user_id,
			name=x_user_name or "Unknown",
			role=jwt_helper.normalise_role(x_user_role),
		)
	raise _unauthorized()


def require_roles(*required: str):
	"""Dependency factory admitting any of ``required`` roles.

	The role checked here is the one the session asserts; reviewer overrides
	are resolved later by the moderation layer.
	"""
	allowed = frozenset(required)

	async def _dep(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
		if user.role in allowed:
			return user
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="insufficient_role")

	return _dep


get_reviewer_user = require_roles("reviewer", "admin")
get_admin_user = require_roles("admin")
