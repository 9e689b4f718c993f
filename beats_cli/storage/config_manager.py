"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from beats_cli.exceptions import ConfigurationError
from beats_cli.models.config import PlayerConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> PlayerConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing config file is not an error: defaults are used.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated PlayerConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self._get_config_as_dict()
        else:
            log.debug(f"No config file at '{self.config_file_path}'; using defaults.")

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return PlayerConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: Values to save; anything missing takes the model default.
        """
        settings = settings or {}
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = PlayerConfig()
        for key in sorted(PlayerConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = self._to_ini(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = PlayerConfig()
        try:
            return {
                "catalog_path": section.get("catalog_path", defaults.catalog_path),
                "max_concurrent": section.getint(
                    "max_concurrent", defaults.max_concurrent
                ),
                "fetch_attempts": section.getint(
                    "fetch_attempts", defaults.fetch_attempts
                ),
                "fetch_timeout": section.getfloat(
                    "fetch_timeout", defaults.fetch_timeout
                ),
                "track_timeout": section.getfloat(
                    "track_timeout", defaults.track_timeout
                ),
                "default_mime_type": section.get(
                    "default_mime_type", defaults.default_mime_type
                ),
                "tick_interval": section.getfloat(
                    "tick_interval", defaults.tick_interval
                ),
                "autoplay": section.getboolean("autoplay", defaults.autoplay),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = PlayerConfig()
        needs_saving = False
        config_section = self._parser["DEFAULT"]

        for key in sorted(PlayerConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving

    @staticmethod
    def _to_ini(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return ""
        return str(value)
