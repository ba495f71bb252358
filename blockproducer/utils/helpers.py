"""Utility functions for blockproducer."""

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the blockproducer data directory (~/.blockproducer)."""
    return ensure_dir(Path.home() / ".blockproducer")


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def to_quantity(value: int) -> str:
    """Encode an integer as a 0x-prefixed hex quantity (no leading zeros)."""
    if value < 0:
        raise ValueError(f"Quantity must be non-negative: {value}")
    return hex(value)


def parse_quantity(value: str | int) -> int:
    """Decode a 0x-prefixed hex quantity; plain ints pass through."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid hex quantity: {value!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise ValueError(f"Invalid hex quantity: {value!r}")
    return int(value[2:] or "0", 16)


def normalize_fixed_hex(value: str, size: int) -> str:
    """Validate a fixed-length hex string (``size`` bytes) and return it lowercased with 0x."""
    body = strip_hex_prefix(value.strip())
    if len(body) != size * 2:
        raise ValueError(f"Expected {size}-byte hex, got {len(body) // 2} bytes: {value!r}")
    int(body, 16)
    return "0x" + body.lower()
