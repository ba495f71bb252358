"""Config file discovery, loading and saving.

The file holds camelCase JSON. ``BLOCKPRODUCER_*`` environment variables take
precedence over values read from it.
"""

import json
import os
import re
from pathlib import Path
from typing import Any

from pydantic.alias_generators import to_camel

from blockproducer.config.schema import Config

CONFIG_ENV_VAR = "BLOCKPRODUCER_CONFIG"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    """``$BLOCKPRODUCER_CONFIG`` when set, else ``~/.blockproducer/config.json``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".blockproducer" / "config.json"


def _load_error(path: Path, reason: Any) -> ValueError:
    return ValueError(
        f"Failed to load config from {path}: {reason}. "
        "Fix the file or remove it to regenerate defaults."
    )


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file into snake_case keys."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise _load_error(path, e) from e
    if not isinstance(data, dict):
        raise _load_error(path, "expected a JSON object")
    return convert_keys(data)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, or defaults when there is no file.

    Environment overrides apply in both cases.

    Raises:
        ValueError: the file is not JSON or does not fit the schema.
    """
    path = config_path or get_config_path()
    if not path.exists():
        return Config()

    data = read_config_file(path)
    try:
        return Config(**data)
    except ValueError as e:
        raise _load_error(path, e) from e


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write ``config`` as camelCase JSON (replaced atomically) and drop its cache entry."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(convert_to_camel(config.model_dump()), indent=2) + "\n", encoding="utf-8")
    tmp.replace(path)

    from blockproducer.config.access import clear_config_cache

    clear_config_cache(config_path=path)
    return path


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    return to_camel(name)
