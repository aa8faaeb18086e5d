"""Access tokens minted by the upstream sign-in service.

Tokens are HS256 signed with ``settings.secret_key`` and carry the moderation
identity: subject, display name, role and account status.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from gamehub.settings import settings

ISSUER = "gamehub-auth"
AUDIENCE = "gamehub-moderation"
ROLES = ("user", "reviewer", "admin")


@dataclass(frozen=True, slots=True)
class AccessClaims:
	sub: str
	name: str
	role: str
	status: str


def normalise_role(value: object) -> str:
	role = str(value or "user").strip().lower()
	return role if role in ROLES else "user"


def encode_access(
	sub: str,
	*,
	name: str | None = None,
	role: str = "user",
	status: str = "active",
	ttl_seconds: int = 3600,
) -> str:
	now = int(time.time())
	body: Dict[str, Any] = {
		"iss": ISSUER,
		"aud": AUDIENCE,
		"iat": now,
		"exp": now + ttl_seconds,
		"sub": sub,
		"role": role,
		"status": status,
	}
	if name:
		body["name"] = name
	return jwt.encode(body, settings.secret_key, algorithm="HS256")


def decode_access(token: str) -> AccessClaims:
	"""Validate signature and registered claims; raises ``InvalidTokenError``."""
	payload = jwt.decode(
		token,
		settings.secret_key,
		algorithms=["HS256"],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=5,
		options={"require": ["exp", "iat", "iss", "aud", "sub"]},
	)
	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise InvalidTokenError("missing_claim:sub")
	return AccessClaims(
		sub=sub,
		name=str(payload.get("name") or payload.get("display_name") or "Unknown"),
		role=normalise_role(payload.get("role")),
		status=str(payload.get("status") or "active"),
	)
