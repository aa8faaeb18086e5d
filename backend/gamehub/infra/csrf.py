"""CSRF tokens bound to the acting user.

Tokens are ``<issued_at>.<hex hmac>`` signed with ``settings.secret_key`` over
the user id and issue time. Validation is a request-scoped dependency so tests
can swap it through ``app.dependency_overrides``.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from gamehub.infra.auth import AuthenticatedUser, get_current_user
from gamehub.settings import settings


def _sign(user_id: str, issued_at: int, secret: str) -> str:
	message = f"{user_id}:{issued_at}".encode("utf-8")
	return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def issue_token(user_id: str, *, now: Optional[float] = None, secret: Optional[str] = None) -> str:
	issued_at = int(now if now is not None else time.time())
	return f"{issued_at}.{_sign(user_id, issued_at, secret or settings.secret_key)}"


@dataclass(slots=True)
class CsrfValidator:
	secret: str
	ttl_seconds: int
	required: bool = True

	def is_valid(self, token: Optional[str], user_id: str, *, now: Optional[float] = None) -> bool:
		if not self.required:
			return True
		if not token or "." not in token:
			return False
		raw_ts, signature = token.split(".", 1)
		try:
			issued_at = int(raw_ts)
		except ValueError:
			return False
		current = now if now is not None else time.time()
		if current - issued_at > self.ttl_seconds or issued_at - current > 60:
			return False
		expected = _sign(user_id, issued_at, self.secret)
		return hmac.compare_digest(expected, signature)


def get_csrf_validator() -> CsrfValidator:
	return CsrfValidator(
		secret=settings.secret_key,
		ttl_seconds=settings.csrf_ttl_seconds,
		required=settings.csrf_required,
	)


async def require_csrf(
	x_csrf_token: Optional[str] = Header(default=None, alias="X-CSRF-Token"),
	user: AuthenticatedUser = Depends(get_current_user),
	validator: CsrfValidator = Depends(get_csrf_validator),
) -> None:
	if not validator.is_valid(x_csrf_token, user.id):
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid_csrf_token")
