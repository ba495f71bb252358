"""Build credentials and clients from the loaded config."""

from __future__ import annotations

from pathlib import Path

from blockproducer.auth.credentials import JwtCredential
from blockproducer.auth.secret_store import load_or_create_secret, read_secret, resolve_secret_path
from blockproducer.config.schema import Config
from blockproducer.engine.client import EngineClient, PublicClient
from blockproducer.engine.rpc import JsonRpcTransport


def secret_path(config: Config, override: Path | None = None) -> Path:
    if override is not None:
        return override.expanduser()
    return resolve_secret_path(config.auth.jwt_secret_path, config.auth.search_paths)


def load_credential(config: Config, override: Path | None = None, *, create: bool = False) -> JwtCredential:
    """Credential from the secret file; ``create`` generates the file when absent."""
    path = secret_path(config, override)
    secret = load_or_create_secret(path) if create else read_secret(path)
    return JwtCredential(secret, config.auth.validity_seconds)


def make_engine_client(config: Config, credential: JwtCredential, url: str | None = None) -> EngineClient:
    transport = JsonRpcTransport(
        url or config.engine.url,
        credential=credential,
        timeout=config.engine.timeout_seconds,
    )
    return EngineClient(
        transport,
        forkchoice_method=config.forkchoice_method,
        get_payload_method=config.get_payload_method,
    )


def make_public_client(config: Config, url: str | None = None) -> PublicClient:
    transport = JsonRpcTransport(url or config.public_rpc.url, timeout=config.public_rpc.timeout_seconds)
    return PublicClient(transport)
