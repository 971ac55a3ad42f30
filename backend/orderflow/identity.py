"""Identity collaborator -- bearer JWT to Principal.

Tokens carry ``sub`` (staff id), ``role`` and ``name`` claims signed with
a shared secret. Issuing tokens is here for the operator CLI and tests;
login flows live outside this service.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from orderflow.config import IdentityConfig
from orderflow.orders.errors import AuthenticationError
from orderflow.orders.types import Principal, Role
from orderflow.utils.time import utc_now


class TokenIdentityProvider:
    """Verify and mint HS* signed staff tokens."""

    def __init__(self, config: IdentityConfig) -> None:
        self._secret = config.jwt_secret
        self._algorithm = config.jwt_algorithm
        self._ttl = timedelta(minutes=config.token_ttl_minutes)

    def authenticate(self, token: str | None) -> Principal:
        """Decode ``token`` (optionally prefixed with ``Bearer``).

        Raises:
            AuthenticationError: Missing, expired, tampered or incomplete token.
        """
        if not token:
            raise AuthenticationError("Not authorized, no token provided")
        if token.lower().startswith("bearer "):
            token = token[7:].strip()

        try:
            claims: dict[str, Any] = jwt.decode(
                token, self._secret, algorithms=[self._algorithm]
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired") from exc
        except JWTError as exc:
            raise AuthenticationError("Not authorized, token failed") from exc

        try:
            return Principal(
                id=str(claims["sub"]),
                role=Role(claims["role"]),
                display_name=str(claims.get("name") or claims["sub"]),
            )
        except (KeyError, ValueError) as exc:
            raise AuthenticationError("Token is missing required claims") from exc

    def issue_token(self, principal: Principal) -> str:
        now = utc_now()
        claims = {
            "sub": principal.id,
            "role": principal.role.value,
            "name": principal.display_name,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)
