"""
toolgate configuration - Settings loading and validation.

Settings are read once at startup from the global (~/.toolgate/config.yaml)
and local (<workspace>/.toolgate/config.yaml) YAML files plus a handful of
environment variables, then passed explicitly to every tool module.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


class Settings(BaseModel):
    """Process-wide, read-only server settings."""

    model_config = ConfigDict(frozen=True)

    workspace_root: Path = Field(default_factory=Path.cwd)
    github_token: Optional[str] = None
    github_api_base: str = "https://api.github.com"
    gitlab_token: Optional[str] = None
    gitlab_host: str = "https://gitlab.com"
    command_timeout: float = 30.0
    install_timeout: float = 300.0
    build_timeout: float = 600.0
    http_timeout: float = 30.0
    max_workers: int = 8
    max_output_chars: int = 200_000
    log_level: str = "INFO"

    @field_validator("workspace_root")
    @classmethod
    def _resolve_root(cls, value: Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("gitlab_host", "github_api_base")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("max_workers")
    @classmethod
    def _positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_workers must be at least 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"unknown log level: {value}")
        return value

    @property
    def gitlab_api_base(self) -> str:
        return f"{self.gitlab_host}/api/v4"


# Environment variable -> settings key; later entries win
ENV_OVERRIDES = {
    "WORKSPACE_PATH": "workspace_root",
    "GITHUB_TOKEN": "github_token",
    "GITHUB_API_KEY": "github_token",
    "GITLAB_API_KEY": "gitlab_token",
    "GITLAB_HOST": "gitlab_host",
    "TOOLGATE_LOG_LEVEL": "log_level",
}


class Config:
    """
    toolgate configuration manager.

    Handles loading, merging, and validating configuration from:
    - Global: ~/.toolgate/config.yaml
    - Local: <workspace>/.toolgate/config.yaml
    - Environment variables (highest precedence)

    Example:
        >>> config = Config.load(Path("."))
        >>> settings = config.settings()
        >>> settings.workspace_root
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".toolgate"
    LOCAL_DIR_NAME = ".toolgate"

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self._env = dict(env) if env is not None else {}
        self._settings: Optional[Settings] = None

    @classmethod
    def load(
        cls,
        workspace: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """
        Load configuration from default locations.

        Args:
            workspace: Workspace root. Wins over WORKSPACE_PATH and any
                configured ``workspace_root``; when omitted, falls back to
                WORKSPACE_PATH, then cwd.
            env: Environment mapping; defaults to ``os.environ``.
        """
        env = os.environ if env is None else env
        explicit = workspace is not None
        if workspace is None:
            workspace = Path(env.get("WORKSPACE_PATH") or Path.cwd())

        global_config = cls._load_yaml(cls.GLOBAL_CONFIG_DIR / "config.yaml")
        local_config = cls._load_yaml(Path(workspace) / cls.LOCAL_DIR_NAME / "config.yaml")
        if explicit:
            local_config["workspace_root"] = str(workspace)
            env = {key: value for key, value in env.items() if key != "WORKSPACE_PATH"}
        else:
            local_config.setdefault("workspace_root", str(workspace))

        return cls(global_config=global_config, local_config=local_config, env=env)

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def get_merged_config(self) -> Dict[str, Any]:
        """Global config, overridden by local config, overridden by env."""
        merged = self._deep_merge(self._global_config.copy(), self._local_config)
        for env_var, key in ENV_OVERRIDES.items():
            value = self._env.get(env_var)
            if value:
                merged[key] = value
        return merged

    def settings(self, **overrides: Any) -> Settings:
        """Build validated settings. Keyword overrides win over everything."""
        if self._settings is not None and not overrides:
            return self._settings
        data = self.get_merged_config()
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            settings = Settings(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}")
        if not overrides:
            self._settings = settings
        return settings

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @classmethod
    def create_default_local(cls, workspace: Path) -> Path:
        """Create a default local configuration file and return its path."""
        config_dir = Path(workspace) / cls.LOCAL_DIR_NAME
        config_file = config_dir / "config.yaml"

        if config_file.exists():
            return config_file

        config_dir.mkdir(parents=True, exist_ok=True)

        default_config = {
            "github_api_base": "https://api.github.com",
            "gitlab_host": "https://gitlab.com",  # or GITLAB_HOST
            "command_timeout": 30,
            "install_timeout": 300,
            "build_timeout": 600,
            "http_timeout": 30,
            "max_workers": 8,
            "log_level": "INFO",
        }

        with open(config_file, "w") as f:
            f.write("# Tokens are read from GITHUB_API_KEY / GITLAB_API_KEY, not from this file.\n")
            yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)

        return config_file
