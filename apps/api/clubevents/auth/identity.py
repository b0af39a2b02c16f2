from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache

import jwt
from jwt import PyJWTError

from clubevents.core.config import settings


class InvalidCredentialError(ValueError):
    pass


@dataclass(frozen=True)
class IdentityClaims:
    user_id: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    expires_at: datetime | None = None


class IdentityProvider(ABC):
    @abstractmethod
    def verify(self, token: str) -> IdentityClaims:
        """Return the claims carried by a bearer credential or raise InvalidCredentialError."""


class DevIdentityProvider(IdentityProvider):
    """Local-only provider: ``<prefix><email>`` with an optional ``|<display name>``."""

    def __init__(self, prefix: str) -> None:
        self._prefix = prefix

    def verify(self, token: str) -> IdentityClaims:
        if not token.startswith(self._prefix):
            raise InvalidCredentialError(f"invalid dev token (expected prefix {self._prefix})")

        raw = token.removeprefix(self._prefix).strip()
        email, _, name = raw.partition("|")
        email = email.strip().lower()
        if "@" not in email:
            raise InvalidCredentialError("invalid email in token")

        return IdentityClaims(
            user_id=email,
            email=email,
            display_name=name.strip() or None,
        )


class JWTIdentityProvider(IdentityProvider):
    """Verifies ID tokens issued by the external auth service."""

    def __init__(
        self,
        key: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
    ) -> None:
        self._key = key
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience

    def verify(self, token: str) -> IdentityClaims:
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": self._audience is not None,
                },
            )
        except PyJWTError as exc:
            raise InvalidCredentialError("invalid id token") from exc

        return IdentityClaims(
            user_id=str(payload["sub"]),
            email=payload.get("email"),
            display_name=payload.get("name"),
            photo_url=payload.get("picture"),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )


def create_identity_provider(mode: str | None = None) -> IdentityProvider:
    selected = (mode or settings.auth_mode).strip().lower()
    if selected == "dev":
        if settings.env != "local":
            raise ValueError("dev auth is only available when ENV=local")
        return DevIdentityProvider(settings.dev_auth_prefix)
    if selected == "jwt":
        if not settings.jwt_secret:
            raise ValueError("JWT_SECRET is required for jwt auth")
        return JWTIdentityProvider(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    raise ValueError(f"unsupported auth mode: {selected}")


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    return create_identity_provider()
