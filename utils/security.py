"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token minting/verification via PyJWT (HS256 only)
- Opaque refresh credentials and their keyed digests
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from utils.clock import utcnow

ph = PasswordHasher()

# Verified against when the email is unknown, so that path costs the same as a wrong password
_DUMMY_HASH = ph.hash(secrets.token_urlsafe(16))


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def burn_password_check(password: str) -> None:
    verify_password(password, _DUMMY_HASH)


class SecretsInvalid(Exception):
    """Signing secrets are missing, too short, or shared. Fatal at startup."""


class TokenError(Exception):
    """Access token failed verification."""
    kind = "invalid"


class InvalidSignature(TokenError):
    kind = "invalid_signature"


class TokenExpired(TokenError):
    kind = "expired"


class IssuerMismatch(TokenError):
    kind = "issuer_mismatch"


class AudienceMismatch(TokenError):
    kind = "audience_mismatch"


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    role: str
    token_id: str
    expires_at: datetime


class Signer:
    """
    Mints and verifies access tokens, and mints/digests refresh credentials.
    Immutable after construction and shared by all request threads.
    """

    algorithm = "HS256"
    required_claims = ("sub", "role", "iss", "aud", "iat", "exp", "jti")

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta,
        roles: Iterable[str],
        min_secret_length: int = 32,
        clock: Callable[[], datetime] = utcnow,
    ):
        for name, secret in (("access", access_secret), ("refresh", refresh_secret)):
            if not secret or len(secret.encode("utf-8")) < min_secret_length:
                raise SecretsInvalid(f"{name} secret must be at least {min_secret_length} bytes")
        if hmac.compare_digest(access_secret.encode("utf-8"), refresh_secret.encode("utf-8")):
            raise SecretsInvalid("access and refresh secrets must differ")
        self._access_key = access_secret
        self._refresh_key = refresh_secret.encode("utf-8")
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self._roles = frozenset(roles)
        self._clock = clock

    @classmethod
    def from_config(cls, config, roles: Iterable[str]) -> "Signer":
        return cls(
            access_secret=config.get("JWT_ACCESS_SECRET") or "",
            refresh_secret=config.get("JWT_REFRESH_SECRET") or "",
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            access_ttl=config["ACCESS_TOKEN_TTL"],
            roles=roles,
            min_secret_length=config.get("MIN_SECRET_LENGTH", 32),
        )

    def mint_access(self, user_id: str, role: str) -> tuple[str, datetime]:
        now = self._clock().replace(microsecond=0)
        expires_at = now + self.access_ttl
        payload = {
            "sub": str(user_id),
            "role": role,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": expires_at,
            "jti": secrets.token_urlsafe(16),
        }
        token = jwt.encode(payload, self._access_key, algorithm=self.algorithm)
        return token, expires_at

    def verify_access(self, token: str) -> AccessClaims:
        """
        Decode and validate an access token. Raises a TokenError subclass;
        anything that is not a well-formed HS256 token signed with the access
        secret is InvalidSignature.
        """
        try:
            decoded = jwt.decode(
                token,
                self._access_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": list(self.required_claims)},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token expired") from exc
        except jwt.InvalidIssuerError as exc:
            raise IssuerMismatch("Token issuer mismatch") from exc
        except jwt.InvalidAudienceError as exc:
            raise AudienceMismatch("Token audience mismatch") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidSignature(f"Invalid token: {exc}") from exc

        role = decoded.get("role")
        if role not in self._roles or not decoded.get("sub"):
            raise InvalidSignature("Invalid token: unexpected claims")
        return AccessClaims(
            user_id=str(decoded["sub"]),
            role=role,
            token_id=str(decoded["jti"]),
            expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
        )

    def mint_refresh_value(self) -> str:
        """256 random bits, URL-safe. Shown to the client once, never stored."""
        return secrets.token_urlsafe(32)

    def hash_refresh_value(self, value: str) -> str:
        return hmac.new(self._refresh_key, value.encode("utf-8"), hashlib.sha256).hexdigest()
