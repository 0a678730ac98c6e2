"""Configuration loader merging TOML files and environment overrides."""

import logging
import toml
import os
from pathlib import Path
from typing import Dict, Any, Optional, Type, TypeVar
import platformdirs
from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class ConfigLoader:
    """Loads configuration from several sources, later ones winning.

    Order: system config, user config, the file given on the command line,
    then ``<APP>_<SECTION>_<KEY>`` environment variables.
    """

    def __init__(self, app_name: str = "unbox", config_class: Optional[Type[T]] = None) -> None:
        self.app_name = app_name
        self.config_class = config_class

    def load(self, config_file: Optional[Path] = None) -> T:
        """Load configuration from all sources.

        Args:
            config_file: Optional TOML file; it must exist when given

        Returns:
            Validated configuration object

        Raises:
            OSError: If ``config_file`` cannot be read
            toml.TomlDecodeError: If a config file is not valid TOML
            pydantic.ValidationError: If the merged values are invalid
        """
        config_dict: Dict[str, Any] = {}

        for source in (self._load_system_config(), self._load_user_config()):
            if source:
                config_dict = self._deep_merge(config_dict, source)

        if config_file is not None:
            config_dict = self._deep_merge(config_dict, self._load_file(Path(config_file)))

        config_dict = self._apply_env_overrides(config_dict)

        if self.config_class:
            return self.config_class(**config_dict)
        return config_dict

    def _load_file(self, path: Path) -> Dict[str, Any]:
        logger.debug(f"Loading config from {path}")
        with open(path, encoding="utf-8") as f:
            return toml.load(f)

    def _load_system_config(self) -> Optional[Dict[str, Any]]:
        """Load system-wide configuration."""
        if os.name == "nt":
            system_path = (
                Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData"))
                / self.app_name
                / "config.toml"
            )
        else:
            system_path = Path(f"/etc/{self.app_name}/config.toml")

        if system_path.exists():
            return self._load_file(system_path)
        return None

    def _load_user_config(self) -> Optional[Dict[str, Any]]:
        """Load user-specific configuration."""
        user_config_dir = platformdirs.user_config_dir(appname=self.app_name, appauthor=False)
        user_config_path = Path(user_config_dir) / "config.toml"

        if user_config_path.exists():
            return self._load_file(user_config_path)

        logger.debug(f"User config not found at {user_config_path}")
        return None

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Override config with environment variables.

        ``UNBOX_EXTRACTION_SKIP_UNKNOWN`` sets ``extraction.skip_unknown``.
        Variables naming a section the config class does not have are
        ignored.
        """
        prefix = f"{self.app_name.upper().replace('-', '_')}_"
        sections = set(self.config_class.model_fields) if self.config_class else None

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            # KEY may itself contain underscores, SECTION may not
            section, _, key = env_key[len(prefix):].lower().partition("_")
            if not key or (sections is not None and section not in sections):
                continue

            current = config.setdefault(section, {})
            if not isinstance(current, dict):
                continue
            current[key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert an environment string to a bool or number where it is one."""
        if value.lower() in ("true", "yes", "1"):
            return True
        if value.lower() in ("false", "no", "0"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            return value
