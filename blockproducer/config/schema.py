"""Configuration schema using Pydantic.

Single data model and defaults, persisted to ~/.blockproducer/config.json.
"""

from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

ZERO_ADDRESS = "0x" + "00" * 20
ZERO_HASH = "0x" + "00" * 32


class EngineConfig(BaseModel):
    """Privileged Engine API endpoint (JWT-authenticated)."""
    url: str = "http://127.0.0.1:8551"
    forkchoice_version: int = 3  # engine_forkchoiceUpdatedV{n}
    get_payload_version: int = 3  # engine_getPayloadV{n}
    timeout_seconds: float = 10.0


class PublicRpcConfig(BaseModel):
    """Public JSON-RPC endpoint used for balance/block reads only."""
    url: str = "http://127.0.0.1:8545"
    timeout_seconds: float = 10.0


class AuthConfig(BaseModel):
    """JWT shared secret location and token lifetime."""
    jwt_secret_path: str = "jwt.hex"
    # Searched in order when jwt_secret_path does not exist
    search_paths: list[str] = Field(default_factory=lambda: ["jwt.hex", "../jwt.hex", "../../jwt.hex"])
    validity_seconds: int = 3600


class BuildConfig(BaseModel):
    """Defaults for the payload attributes of a new block."""
    fee_recipient: str = ZERO_ADDRESS
    prev_randao: str = ZERO_HASH
    parent_beacon_block_root: str | None = ZERO_HASH


class ServerConfig(BaseModel):
    """Local JWT-guarded endpoint (``blockproducer serve``)."""
    host: str = "127.0.0.1"
    port: int = 8551


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_enabled: bool = False


class Config(BaseSettings):
    """Root configuration for blockproducer."""
    engine: EngineConfig = Field(default_factory=EngineConfig)
    public_rpc: PublicRpcConfig = Field(default_factory=PublicRpcConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def forkchoice_method(self) -> str:
        return f"engine_forkchoiceUpdatedV{self.engine.forkchoice_version}"

    @property
    def get_payload_method(self) -> str:
        return f"engine_getPayloadV{self.engine.get_payload_version}"

    model_config = ConfigDict(
        env_prefix="BLOCKPRODUCER_",
        env_nested_delimiter="__"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats values loaded from config.json (passed as init kwargs).
        return env_settings, init_settings, dotenv_settings, file_secret_settings
