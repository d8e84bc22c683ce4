from typing import Any, Dict, Optional
import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RunConfig
from pgp.utils.exceptions import InvalidConfigError, MissingConfigError

logger = logging.getLogger(__name__)

ConfigDict = Dict[str, Any]


def load_config_file(config_path: str) -> ConfigDict:
    """
    Loads a single YAML configuration file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        A dictionary containing the configuration. An empty file yields an
        empty dictionary.

    Raises:
        MissingConfigError: If the config_path does not exist.
        InvalidConfigError: If the file is not valid YAML or not a mapping.
    """
    path = Path(config_path)
    if not path.is_file():
        raise MissingConfigError("config file", config_file=str(config_path))

    with open(path, 'r') as f:
        try:
            config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file {config_path}: {e}")
            raise InvalidConfigError(f"could not parse {config_path}: {e}", config_field="file") from e

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise InvalidConfigError(
            f"configuration file {config_path} did not load as a mapping",
            config_field="file",
            invalid_value=type(config_data).__name__
        )
    return config_data


class ConfigLoader:
    """
    Loads a run configuration from YAML and applies environment variable
    overrides before validating it into a RunConfig.
    """

    def __init__(self, primary_config_path: Optional[str] = None):
        """
        Initializes the ConfigLoader.

        Args:
            primary_config_path: Path to the YAML configuration file. When
                omitted, only defaults and environment overrides apply.
        """
        self.primary_config_path = Path(primary_config_path) if primary_config_path else None
        self.loaded_config: ConfigDict = {}

        if self.primary_config_path is not None:
            self.loaded_config = load_config_file(str(self.primary_config_path))
            logger.info(f"Loaded configuration from: {self.primary_config_path}")

    def load_resolved_config(self,
                             apply_env_overrides: bool = True,
                             env_prefix: str = "PGP_") -> RunConfig:
        """
        Resolves the final RunConfig.

        Args:
            apply_env_overrides: Whether to apply environment variable overrides.
            env_prefix: Prefix of the environment variables that override
                config values; ``__`` separates nested keys
                (e.g. ``PGP_SEARCH__GENERATIONS=50``).

        Returns:
            The validated RunConfig.

        Raises:
            InvalidConfigError: If the resolved values fail validation.
        """
        final_config_data = {
            key: dict(value) if isinstance(value, dict) else value
            for key, value in self.loaded_config.items()
        }

        if apply_env_overrides:
            applied = self._apply_env_overrides(final_config_data, prefix=env_prefix)
            if applied:
                logger.info(f"Applied {applied} environment variable override(s)")

        try:
            return RunConfig(**final_config_data)
        except ValidationError as e:
            source = self.primary_config_path or "defaults"
            raise InvalidConfigError(
                f"configuration validation failed ({source}): {e}",
                config_field="run_config"
            ) from e

    def _apply_env_overrides(self, config_dict: Dict, prefix: str) -> int:
        """
        Overrides values in config_dict with environment variables.
        Missing sections are created. Returns the number of applied overrides.
        """
        applied = 0
        for env_var, value in os.environ.items():
            if not env_var.startswith(prefix):
                continue

            keys = env_var[len(prefix):].lower().split('__')
            if not all(keys):
                continue

            current_level = config_dict
            for key_segment in keys[:-1]:
                if not isinstance(current_level.get(key_segment), dict):
                    current_level[key_segment] = {}
                current_level = current_level[key_segment]

            typed_value = _parse_env_value(value)
            original_value = current_level.get(keys[-1])
            if original_value != typed_value:
                current_level[keys[-1]] = typed_value
                applied += 1
                logger.debug(
                    f"Overridden '{'.'.join(keys)}' with '{typed_value}' from {env_var} (was '{original_value}')"
                )
        return applied


def _parse_env_value(value: str) -> Any:
    if value.lower() in ['true', 'false']:
        return value.lower() == 'true'
    if value.lower() in ['none', 'null']:
        return None
    if ',' in value:
        return [item.strip() for item in value.split(',') if item.strip()]
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value
