"""
Configuration management for ReMarks.

Provides a hierarchical configuration system with sensible defaults.
Supports both global (~/.config/remarks/config.toml) and local (remarks.toml)
configurations. The sync core never reads this module: the CLI builds
credentials and the allow-list from it and passes them in explicitly.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional
from dataclasses import dataclass, field

from remarks.constants import (
    DEFAULT_REQUEST_TIMEOUT, DEFAULT_USER_AGENT, GITHUB_API_URL
)
from remarks.tree import SyncCredentials


class ConfigurationError(Exception):
    """Raised when required settings (such as credentials) are missing."""
    pass


@dataclass
class RemarksConfig:
    """
    ReMarks configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (REMARKS_*)
    3. Explicit config file (--config)
    4. Local config file (./remarks.toml or ./.remarksrc)
    5. User config file (~/.config/remarks/config.toml)
    6. System defaults
    """

    # Remote repository
    user: str = field(default="")
    repo: str = field(default="")
    token: str = field(default="")
    branch: str = field(default="")  # Empty means the repository default
    api_url: str = field(default=GITHUB_API_URL)
    commit_message: str = field(default="Sync {date}")

    # Selective import: folder paths joined with ###
    selected_paths: List[str] = field(default_factory=list)

    # Local store
    database: str = field(default="~/.local/share/remarks/bookmarks.db")
    database_echo: bool = field(default=False)  # SQLAlchemy echo for debugging

    # Network settings
    timeout: int = field(default=DEFAULT_REQUEST_TIMEOUT)
    user_agent: str = field(default=DEFAULT_USER_AGENT)
    conflict_retries: int = field(default=0)  # Whole-cycle retries on a stale revision

    # Advanced
    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "RemarksConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = cls.user_config_path()
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        # Load local config if exists (first match wins)
        local_paths = [
            Path.cwd() / "remarks.toml",
            Path.cwd() / ".remarksrc",
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def user_config_path() -> Path:
        return Path.home() / ".config" / "remarks" / "config.toml"

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        with open(path, "rb") as f:
            return tomli.load(f)

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with REMARKS_ prefix."""
        prefix = "REMARKS_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if hasattr(self, config_key):
                    self.set(config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in paths."""
        value = self.database
        if isinstance(value, str):
            self.database = os.path.expanduser(os.path.expandvars(value))

    def set(self, key: str, value: str):
        """
        Set a field from its string form, converting to the field's type.

        Lists are comma separated.

        Raises:
            KeyError: if ``key`` is not a configuration field
        """
        if not hasattr(self, key):
            raise KeyError(f"Unknown config key: {key}")
        current_value = getattr(self, key)
        if isinstance(current_value, bool):
            setattr(self, key, value.lower() in ("true", "1", "yes"))
        elif isinstance(current_value, int):
            setattr(self, key, int(value))
        elif isinstance(current_value, list):
            setattr(self, key, [item.strip() for item in value.split(",") if item.strip()])
        else:
            setattr(self, key, value)

    def save(self, keys: Iterable[str], path: Optional[Path] = None):
        """
        Write the given keys to a TOML file, keeping the rest of its contents.

        Only ``keys`` are written. Values that came from environment
        variables, other files, or command-line overrides stay out of the
        file unless they are named.

        Args:
            keys: Configuration fields to write
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = self.user_config_path()

        data = self._load_toml(path) if path.exists() else {}
        for key in keys:
            if not hasattr(self, key):
                raise KeyError(f"Unknown config key: {key}")
            data[key] = getattr(self, key)

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get_database_path(self) -> Path:
        """Get the resolved database path."""
        path = Path(self.database)
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def credentials(self) -> SyncCredentials:
        """
        Build the credentials for the remote repository.

        Raises:
            ConfigurationError: if user, repo, or token is missing
        """
        missing = [name for name in ("user", "repo", "token") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(f"Missing {', '.join(missing)}")
        return SyncCredentials(
            user=self.user,
            repo=self.repo,
            token=self.token,
            branch=self.branch or None,
            api_url=self.api_url,
        )


# Global configuration instance
_config: Optional[RemarksConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> RemarksConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = RemarksConfig.load(config_file)
    return _config


def init_config(database: Optional[str] = None, config_file: Optional[Path] = None,
                **kwargs) -> RemarksConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        database: Database path override
        config_file: Specific config file to load
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    if database:
        config.database = database

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
