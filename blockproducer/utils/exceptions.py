"""
Errors raised by blockproducer.

Three families share ``BlockProducerError``: ``AuthError`` for rejected bearer
credentials, ``ProtocolError`` for a node answer that breaks the production
handshake, and ``TransportError`` for JSON-RPC calls that never produced a
result. Each carries a stable ``code`` and a category so callers can decide
whether starting a new session is worthwhile.
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """How a failure should be treated by the caller."""
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    PERMISSION = "permission"
    TIMEOUT = "timeout"


class BlockProducerError(Exception):
    """Base exception for all blockproducer errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(BlockProducerError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


# ---------------------------------------------------------------------------
# Credential errors
# ---------------------------------------------------------------------------


class AuthError(BlockProducerError):
    """Bearer credential rejected."""

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=code, category=ErrorCategory.PERMISSION, details=details)


class MissingCredentialError(AuthError):
    def __init__(self) -> None:
        super().__init__("Missing Authorization header", code="AUTH_MISSING")


class MalformedCredentialError(AuthError):
    def __init__(self, reason: str = "no bearer token"):
        super().__init__(f"Malformed credential: {reason}", code="AUTH_MALFORMED", details={"reason": reason})


class InvalidSignatureError(AuthError):
    def __init__(self) -> None:
        super().__init__("Credential signature does not match the shared secret", code="AUTH_INVALID_SIGNATURE")


class ExpiredCredentialError(AuthError):
    def __init__(self, expires_at: int, checked_at: int):
        super().__init__(
            f"Credential expired at {expires_at} (checked at {checked_at})",
            code="AUTH_EXPIRED",
            details={"expires_at": expires_at, "checked_at": checked_at},
        )


# ---------------------------------------------------------------------------
# Protocol errors (Engine API handshake)
# ---------------------------------------------------------------------------


class ProtocolError(BlockProducerError):
    """Node response violated the block-production handshake."""

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=code, category=ErrorCategory.FATAL, details=details)

    @property
    def step(self) -> str | None:
        return self.details.get("step")


class MissingSessionIdError(ProtocolError):
    def __init__(self, response: Any = None):
        super().__init__(
            "Fork choice update returned no payloadId",
            code="MISSING_SESSION_ID",
            details={"received": response},
        )


class PayloadShapeMismatchError(ProtocolError):
    def __init__(self, message: str, expected: Any = None, received: Any = None):
        super().__init__(
            message,
            code="PAYLOAD_SHAPE_MISMATCH",
            details={"expected": expected, "received": received},
        )


class InvalidPayloadStatusError(ProtocolError):
    def __init__(self, actual: str | None, validation_error: str | None = None):
        self.actual = actual
        message = f"Payload status is {actual or 'missing'}, expected VALID"
        if validation_error:
            message += f": {validation_error}"
        super().__init__(
            message,
            code="INVALID_PAYLOAD_STATUS",
            details={"expected": "VALID", "actual": actual, "validation_error": validation_error},
        )


class VersionNegotiationAmbiguousError(ProtocolError):
    def __init__(self, reason: str):
        super().__init__(
            f"Cannot select payload submission version: {reason}",
            code="VERSION_NEGOTIATION_AMBIGUOUS",
            details={"reason": reason},
        )


class BuildStateError(ProtocolError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Build session is {actual}, expected {expected}",
            code="BUILD_STATE_ERROR",
            details={"expected": expected, "actual": actual},
        )


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class TransportError(BlockProducerError):
    """JSON-RPC call failed before a usable result was returned."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, category=category, details=details)


class HttpFailureError(TransportError):
    def __init__(self, method: str, status: int | None, body: str = ""):
        self.status = status
        if status is None:
            message = f"{method}: network error: {body}"
        else:
            message = f"{method}: HTTP {status}"
            if body:
                message += f": {body[:200]}"
        category = ErrorCategory.PERMISSION if status in (401, 403) else ErrorCategory.FATAL
        super().__init__(
            message,
            code="HTTP_FAILURE",
            category=category,
            details={"method": method, "status": status},
        )


class RpcError(TransportError):
    def __init__(self, method: str, rpc_code: int | None, rpc_message: str, data: Any = None):
        self.rpc_code = rpc_code
        self.rpc_message = rpc_message
        super().__init__(
            f"{method}: RPC error {rpc_code}: {rpc_message}",
            code="RPC_ERROR",
            details={"method": method, "rpc_code": rpc_code, "rpc_message": rpc_message, "data": data},
        )


class RpcTimeoutError(TransportError):
    def __init__(self, method: str, timeout_seconds: float):
        super().__init__(
            f"{method}: timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"method": method, "timeout_seconds": timeout_seconds},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"(secret|token|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]*"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove bearer tokens and secrets from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Nothing in the handshake retries on its own; ``should_retry`` only tells
    the caller whether starting a fresh session is likely to help.
    """
    if isinstance(exc, BlockProducerError):
        return exc.code, exc.category, exc.category in (ErrorCategory.RETRYABLE, ErrorCategory.TIMEOUT)

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.VALIDATION, False

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
