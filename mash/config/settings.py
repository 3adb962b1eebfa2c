"""
Application settings and configuration.

Settings come from environment variables (or a ``.env`` file) with
sensible defaults. Two JSON files in the mash home directory complement
them: ``settings.json`` selects a model provider and credential, and
``mcp.json`` lists the external MCP servers to launch.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mash.core.exceptions import ConfigurationError
from mash.core.external_mcp.external_mcp_models import ExternalServerConfig
from mash.core.llm.anthropic_provider import DEFAULT_BASE_URL, DEFAULT_MAX_TOKENS, DEFAULT_TIMEOUT
from mash.core.protocol.mcp_constants import DEFAULT_MCP_HOST, DEFAULT_MCP_HTTP_PORT, TOOL_NAMESPACE_SEPARATOR

DEFAULT_MODEL = "claude-sonnet-4-20250514"
PROVIDER_DEFAULT_MODEL = "deepseek-chat"
SETTINGS_FILE = "settings.json"
MCP_CONFIG_FILE = "mcp.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # LLM Configuration
    api_key: Optional[str] = Field(default=None, description="Credential for the chat API")
    base_url: str = Field(default=DEFAULT_BASE_URL)
    model: str = Field(default=DEFAULT_MODEL)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS)
    llm_timeout: float = Field(default=DEFAULT_TIMEOUT, description="Chat API request timeout in seconds")

    # Local HTTP facade
    mcp_http_host: str = Field(default=DEFAULT_MCP_HOST)
    mcp_http_port: int = Field(default=DEFAULT_MCP_HTTP_PORT)

    # Files
    mash_home: Optional[Path] = Field(default=None, description="Directory holding settings.json, mcp.json and tasks/")

    # Logging
    log_level: str = Field(default="WARNING")

    @property
    def home_dir(self) -> Path:
        if self.mash_home is not None:
            return self.mash_home
        return Path.home() / ".mash"

    def config_path(self, filename: str) -> Path:
        return self.home_dir / filename

    def load_mcp_configs(self) -> Dict[str, ExternalServerConfig]:
        """Read the configured MCP servers from mcp.json.

        Returns:
            Server configs keyed by name; empty if the file does not exist

        Raises:
            ConfigurationError: If the file is not valid JSON, has the wrong shape,
                or names a server with an empty name or one containing "__"
        """
        path = self.config_path(MCP_CONFIG_FILE)
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            config_file = MCPConfigFile.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(str(path), f"invalid MCP server config: {e}") from e

        # tool names are split on the first separator, so server names cannot contain it
        for name in config_file.mcp_servers:
            if not name or TOOL_NAMESPACE_SEPARATOR in name:
                raise ConfigurationError(
                    str(path),
                    f"invalid MCP server name '{name}': must be non-empty and not contain '{TOOL_NAMESPACE_SEPARATOR}'"
                )
        return {
            name: server.model_copy(update={"name": name})
            for name, server in config_file.mcp_servers.items()
        }


class MCPConfigFile(BaseModel):
    """Contents of mcp.json."""
    model_config = ConfigDict(populate_by_name=True)

    mcp_servers: Dict[str, ExternalServerConfig] = Field(default_factory=dict, alias="mcpServers")


class ModelProvider(BaseModel):
    """One model provider entry in settings.json (e.g. deepseek, openai)."""
    name: str
    base_url: str = ""
    api_key: str = ""


class SettingsFile(BaseModel):
    """Contents of settings.json."""
    model_config = ConfigDict(protected_namespaces=())

    model_provider: str = ""
    model: str = ""
    model_providers: List[ModelProvider] = Field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> Optional["SettingsFile"]:
        """Load settings.json; None if missing or invalid."""
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError):
            return None


class ApiConfig(BaseModel):
    """Resolved chat API endpoint, credential and model."""
    base_url: str
    api_key: str
    model: str
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def load(cls, settings: Settings) -> "ApiConfig":
        """Resolve the API config.

        The provider selected in settings.json wins when it has an API key;
        otherwise environment settings are used.

        Raises:
            ConfigurationError: If no API key is configured anywhere
        """
        file_settings = SettingsFile.load(settings.config_path(SETTINGS_FILE))
        if file_settings is not None:
            provider = next(
                (p for p in file_settings.model_providers if p.name == file_settings.model_provider),
                None
            )
            if provider is not None and provider.api_key:
                return cls(
                    base_url=provider.base_url or DEFAULT_BASE_URL,
                    api_key=provider.api_key,
                    model=file_settings.model or PROVIDER_DEFAULT_MODEL,
                    max_tokens=settings.max_tokens,
                )
        return cls.from_settings(settings)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApiConfig":
        if not settings.api_key:
            raise ConfigurationError(
                "api_key",
                "API key not configured. Set API_KEY or add a provider to settings.json."
            )
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            model=settings.model,
            max_tokens=settings.max_tokens,
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings instance."""
    return Settings()
