"""
Shared configuration management for gRPC JWT credentials.
"""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


DEFAULT_TOKEN_TYPE = "Bearer"


class CredentialsConfig(BaseSettings):
    """Configuration for the credential verifier and the servers using it."""

    model_config = SettingsConfigDict(
        env_prefix="CREDENTIALS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    log_format: Literal["json", "console"] = Field(default="json")

    # Token verification
    token_type: str = Field(default=DEFAULT_TOKEN_TYPE)
    public_key: Optional[str] = Field(default=None)
    public_key_file: Optional[Path] = Field(default=None)
    algorithms: List[str] = Field(default_factory=lambda: ["RS256"])

    # gRPC server
    host: str = Field(default="[::]")
    port: int = Field(default=50051)
    max_workers: int = Field(default=10)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def load_public_key(self) -> Optional[str]:
        """Return the verification key text, or None for decode-only mode."""
        if self.public_key:
            return self.public_key
        if self.public_key_file is None:
            return None
        try:
            return self.public_key_file.read_text()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read public key file: {self.public_key_file}"
            ) from e


def get_config(**overrides) -> CredentialsConfig:
    """Get configuration from the environment, with explicit overrides."""
    return CredentialsConfig(**overrides)
