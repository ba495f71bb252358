"""Bearer credentials for the Engine API (HS256 JWT over a shared secret)."""

from blockproducer.auth.credentials import (
    Claims,
    JwtCredential,
    authorize_header,
    extract_bearer,
    generate_secret,
    issue,
    verify,
)
from blockproducer.auth.secret_store import load_or_create_secret, resolve_secret_path

__all__ = [
    "Claims",
    "JwtCredential",
    "authorize_header",
    "extract_bearer",
    "generate_secret",
    "issue",
    "verify",
    "load_or_create_secret",
    "resolve_secret_path",
]
