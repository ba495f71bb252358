"""JWT secret file: a single hex line shared with the execution node."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from loguru import logger

from blockproducer.auth.credentials import decode_hex_secret, generate_secret
from blockproducer.utils.exceptions import ValidationError
from blockproducer.utils.helpers import ensure_dir


def read_secret(path: Path) -> bytes:
    """Read a hex-encoded secret from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ValidationError(f"JWT secret file not found: {path}", field="jwt_secret_path") from e
    return decode_hex_secret(text)


def write_secret(path: Path, secret: bytes) -> None:
    ensure_dir(path.parent)
    path.write_text(secret.hex() + "\n", encoding="utf-8")
    try:
        path.chmod(0o600)
    except OSError:
        # chmod is unsupported on some filesystems; the file is still usable.
        pass


def load_or_create_secret(path: Path) -> bytes:
    """Load the JWT secret from disk, generating and persisting one if absent."""
    if path.exists():
        return read_secret(path)

    secret = generate_secret()
    write_secret(path, secret)
    logger.info(f"Generated new JWT secret at {path}")
    return secret


def find_secret_file(candidates: Iterable[str | Path], base_dir: Path | None = None) -> Path | None:
    """Return the first existing candidate path (relative paths resolve against ``base_dir``)."""
    root = base_dir or Path.cwd()
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if not path.is_absolute():
            path = root / path
        if path.is_file():
            return path
    return None


def resolve_secret_path(configured: str | Path, search_paths: Iterable[str | Path] = (), base_dir: Path | None = None) -> Path:
    """Configured path if present, else the first existing search path, else the configured path."""
    root = base_dir or Path.cwd()
    primary = Path(configured).expanduser()
    if not primary.is_absolute():
        primary = root / primary
    if primary.is_file():
        return primary
    found = find_secret_file(search_paths, base_dir=root)
    return found or primary
