"""Utility functions for blockproducer."""

from blockproducer.utils.helpers import ensure_dir, get_data_path
from blockproducer.utils.exceptions import (
    BlockProducerError,
    ValidationError,
    AuthError,
    MissingCredentialError,
    MalformedCredentialError,
    InvalidSignatureError,
    ExpiredCredentialError,
    ProtocolError,
    MissingSessionIdError,
    PayloadShapeMismatchError,
    InvalidPayloadStatusError,
    VersionNegotiationAmbiguousError,
    BuildStateError,
    TransportError,
    HttpFailureError,
    RpcError,
    RpcTimeoutError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "ensure_dir",
    "get_data_path",
    "BlockProducerError",
    "ValidationError",
    "AuthError",
    "MissingCredentialError",
    "MalformedCredentialError",
    "InvalidSignatureError",
    "ExpiredCredentialError",
    "ProtocolError",
    "MissingSessionIdError",
    "PayloadShapeMismatchError",
    "InvalidPayloadStatusError",
    "VersionNegotiationAmbiguousError",
    "BuildStateError",
    "TransportError",
    "HttpFailureError",
    "RpcError",
    "RpcTimeoutError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
]
