"""
Engine API bearer credentials.

HS256 JWTs carrying only ``iat``/``exp`` claims, signed with a 32-byte secret
shared between the orchestrator and the execution node. Verification is
strict: no clock-skew leeway and no claims beyond the timestamp pair.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable

import jwt

from blockproducer.utils.exceptions import (
    ExpiredCredentialError,
    InvalidSignatureError,
    MalformedCredentialError,
    MissingCredentialError,
    ValidationError,
)
from blockproducer.utils.helpers import strip_hex_prefix

ALGORITHM = "HS256"
SECRET_LENGTH = 32
DEFAULT_VALIDITY_SECONDS = 3600
BEARER_PREFIX = "Bearer "

Clock = Callable[[], float]


@dataclass(frozen=True)
class Claims:
    """Verified token claims (unix seconds)."""
    issued_at: int
    expires_at: int

    @property
    def validity_seconds(self) -> int:
        return self.expires_at - self.issued_at

    def to_dict(self) -> dict[str, int]:
        return {"iat": self.issued_at, "exp": self.expires_at}


def generate_secret() -> bytes:
    """Fresh random secret for a new jwt.hex file."""
    return secrets.token_bytes(SECRET_LENGTH)


def decode_hex_secret(value: str) -> bytes:
    """Parse a hex-encoded secret (optional 0x prefix, surrounding whitespace ignored)."""
    text = strip_hex_prefix(value.strip())
    if not text:
        raise ValidationError("JWT secret is empty", field="secret")
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise ValidationError(f"JWT secret is not valid hex: {e}", field="secret") from e


def issue(secret: bytes, validity_seconds: int = DEFAULT_VALIDITY_SECONDS, *, now: Clock = time.time) -> str:
    """Sign ``{iat: T, exp: T + validity_seconds}`` with the shared secret."""
    if validity_seconds <= 0:
        raise ValidationError("validity_seconds must be positive", field="validity_seconds")
    issued_at = int(now())
    claims = Claims(issued_at=issued_at, expires_at=issued_at + int(validity_seconds))
    return jwt.encode(claims.to_dict(), secret, algorithm=ALGORITHM)


def _claims_from_payload(payload: Any) -> Claims:
    if not isinstance(payload, dict) or set(payload) != {"iat", "exp"}:
        raise MalformedCredentialError("claims must be exactly iat and exp")
    iat, exp = payload["iat"], payload["exp"]
    for value in (iat, exp):
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedCredentialError("iat and exp must be integers")
    return Claims(issued_at=iat, expires_at=exp)


def verify(token: str, secret: bytes, *, now: Clock = time.time) -> Claims:
    """
    Verify signature and expiry of a bearer token.

    Raises:
        InvalidSignatureError: token was not signed with ``secret``.
        ExpiredCredentialError: the check time is past ``exp``.
        MalformedCredentialError: token or claims cannot be parsed.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
                "require": ["iat", "exp"],
            },
        )
    except jwt.InvalidSignatureError as e:
        raise InvalidSignatureError() from e
    except jwt.InvalidTokenError as e:
        raise MalformedCredentialError(str(e)) from e

    claims = _claims_from_payload(payload)
    checked_at = now()
    if checked_at > claims.expires_at:
        raise ExpiredCredentialError(claims.expires_at, int(checked_at))
    return claims


def extract_bearer(header_value: str | None) -> str | None:
    """Return the token after the literal ``"Bearer "`` prefix, else None."""
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        return None
    return header_value[len(BEARER_PREFIX):]


def authorize_header(header_value: str | None, secret: bytes, *, now: Clock = time.time) -> Claims:
    """Server-side check of an ``Authorization`` header value."""
    if not header_value:
        raise MissingCredentialError()
    token = extract_bearer(header_value)
    if not token:
        raise MalformedCredentialError("no bearer token")
    return verify(token, secret, now=now)


class JwtCredential:
    """Shared secret plus a fixed validity window; mints one token per call."""

    def __init__(
        self,
        secret: bytes,
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        clock: Clock = time.time,
    ):
        if not secret:
            raise ValidationError("JWT secret is empty", field="secret")
        if validity_seconds <= 0:
            raise ValidationError("validity_seconds must be positive", field="validity_seconds")
        self._secret = bytes(secret)
        self.validity_seconds = int(validity_seconds)
        self._clock = clock

    @classmethod
    def from_hex_string(cls, hex_secret: str, validity_seconds: int = DEFAULT_VALIDITY_SECONDS) -> JwtCredential:
        return cls(decode_hex_secret(hex_secret), validity_seconds)

    @property
    def secret(self) -> bytes:
        return self._secret

    def token(self) -> str:
        return issue(self._secret, self.validity_seconds, now=self._clock)

    def verify(self, token: str) -> Claims:
        return verify(token, self._secret, now=self._clock)

    def authorize(self, header_value: str | None) -> Claims:
        return authorize_header(header_value, self._secret, now=self._clock)

    def auth_headers(self) -> dict[str, str]:
        """``Authorization`` header for one privileged call."""
        return {"Authorization": f"{BEARER_PREFIX}{self.token()}"}

    def __repr__(self) -> str:
        return f"JwtCredential(validity_seconds={self.validity_seconds})"
