"""Application configuration using pydantic-settings.

Values are read from environment variables prefixed with ``CLOUTKEY_`` and
from an optional ``.env`` file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KEY_STORE_BACKENDS = ("memory", "file")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUTKEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # Addresses
    # ======================
    network: str = Field(
        default="mainnet", description="Network used for address prefixes (mainnet/testnet)"
    )

    # ======================
    # Symmetric key storage
    # ======================
    key_store_backend: str = Field(
        default="file", description="Where per-origin encryption keys live (memory/file)"
    )
    key_store_path: Path = Field(
        default=Path("./data/keystore.json"),
        description="JSON file used by the file key store",
    )
    lock_timeout: float = Field(
        default=10.0, description="Seconds to wait for an origin lock (0 = wait forever)"
    )

    @field_validator("network")
    @classmethod
    def _check_network(cls, value: str) -> str:
        value = value.lower()
        if value not in ("mainnet", "testnet"):
            raise ValueError(f"network must be mainnet or testnet, got: {value}")
        return value

    @field_validator("key_store_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in KEY_STORE_BACKENDS:
            raise ValueError(
                f"key_store_backend must be one of {KEY_STORE_BACKENDS}, got: {value}"
            )
        return value

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_testnet(self) -> bool:
        return self.network == "testnet"

    def get_safe_dict(self) -> dict:
        """Return a settings summary suitable for logs and diagnostics."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "log_level": self.log_level,
            "network": self.network,
            "key_store": {
                "backend": self.key_store_backend,
                "path": str(self.key_store_path) if self.key_store_backend == "file" else None,
            },
            "lock_timeout": self.lock_timeout,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
