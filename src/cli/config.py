"""YAML configuration loading and validation.

This module handles loading and saving sync configuration from sbsync.yaml.
The file is optional; every field has a default and the space ids can also
come from the environment or the command line.
"""

import os
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError, ConfigNotFoundError, FilesystemError
from .models import HydrationConfig, RateLimitConfig, SbsyncConfig

DEFAULT_CONFIG_PATH = "sbsync.yaml"


class ConfigLoader:
    """Handles configuration file loading, validation, and saving.

    Configuration file structure:
        source_space_id: 12345
        target_space_id: 67890
        rate_limit:
          read_rps: 7
          write_rps: 7
          burst: 7
        hydration:
          enabled: true
          workers: 10
        publish: true
        report_dir: "./reports"
    """

    KNOWN_FIELDS = {
        'source_space_id', 'target_space_id', 'rate_limit',
        'hydration', 'publish', 'report_dir',
    }

    @classmethod
    def load(cls, config_path: str) -> SbsyncConfig:
        """Load and parse configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            SbsyncConfig object with parsed configuration

        Raises:
            ConfigNotFoundError: If the file does not exist
            FilesystemError: If file cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ConfigNotFoundError(config_path)
        except PermissionError:
            raise FilesystemError(
                config_path,
                'read',
                'Permission denied'
            )
        except OSError as e:
            raise FilesystemError(
                config_path,
                'read',
                str(e)
            )

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML syntax: {str(e)}"
            )

        if config_dict is None:
            return SbsyncConfig()

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls._parse_config(config_dict)

    @classmethod
    def load_or_default(cls, config_path: str, required: bool = False) -> SbsyncConfig:
        """Load config_path, falling back to defaults when it does not exist.

        Args:
            config_path: Path to the YAML configuration file
            required: Raise ConfigNotFoundError instead of using defaults
        """
        if not required and not os.path.exists(config_path):
            return SbsyncConfig()
        return cls.load(config_path)

    @classmethod
    def save(cls, config_path: str, config: SbsyncConfig) -> None:
        """Save configuration to a YAML file.

        Args:
            config_path: Path to the YAML configuration file
            config: SbsyncConfig object to save

        Raises:
            FilesystemError: If file cannot be written
        """
        config_dict: Dict[str, Any] = {}
        if config.source_space_id is not None:
            config_dict['source_space_id'] = config.source_space_id
        if config.target_space_id is not None:
            config_dict['target_space_id'] = config.target_space_id
        config_dict['rate_limit'] = {
            'read_rps': config.rate_limit.read_rps,
            'write_rps': config.rate_limit.write_rps,
            'burst': config.rate_limit.burst,
        }
        config_dict['hydration'] = {
            'enabled': config.hydration.enabled,
            'workers': config.hydration.workers,
        }
        config_dict['publish'] = config.publish
        config_dict['report_dir'] = config.report_dir

        yaml_str = yaml.safe_dump(
            config_dict,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )

        config_dir = os.path.dirname(config_path)
        if config_dir:
            try:
                os.makedirs(config_dir, exist_ok=True)
            except OSError as e:
                raise FilesystemError(
                    config_dir,
                    'create_directory',
                    str(e)
                )

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(yaml_str)
        except PermissionError:
            raise FilesystemError(
                config_path,
                'write',
                'Permission denied'
            )
        except OSError as e:
            raise FilesystemError(
                config_path,
                'write',
                str(e)
            )

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> SbsyncConfig:
        """Parse and validate configuration dictionary.

        Args:
            config_dict: Raw configuration dictionary from YAML

        Returns:
            Validated SbsyncConfig object

        Raises:
            ConfigError: If configuration is invalid
        """
        unknown = set(config_dict.keys()) - cls.KNOWN_FIELDS
        if unknown:
            raise ConfigError(
                f"Unknown fields: {', '.join(sorted(unknown))}"
            )

        source_space_id = cls._parse_space_id(config_dict, 'source_space_id')
        target_space_id = cls._parse_space_id(config_dict, 'target_space_id')

        rate_limit = RateLimitConfig()
        rate_raw = config_dict.get('rate_limit')
        if rate_raw is not None:
            if not isinstance(rate_raw, dict):
                raise ConfigError("Field 'rate_limit' must be a dictionary", 'rate_limit')
            try:
                rate_limit = RateLimitConfig(
                    read_rps=float(rate_raw.get('read_rps', rate_limit.read_rps)),
                    write_rps=float(rate_raw.get('write_rps', rate_limit.write_rps)),
                    burst=int(rate_raw.get('burst', rate_limit.burst)),
                )
            except (ValueError, TypeError) as e:
                raise ConfigError(f"Invalid value: {str(e)}", 'rate_limit')
            if rate_limit.read_rps <= 0 or rate_limit.write_rps <= 0:
                raise ConfigError("Rates must be greater than 0", 'rate_limit')
            if rate_limit.burst < 1:
                raise ConfigError(
                    f"Burst must be at least 1, got {rate_limit.burst}",
                    'rate_limit.burst'
                )

        hydration = HydrationConfig()
        hydration_raw = config_dict.get('hydration')
        if hydration_raw is not None:
            if not isinstance(hydration_raw, dict):
                raise ConfigError("Field 'hydration' must be a dictionary", 'hydration')
            try:
                hydration = HydrationConfig(
                    enabled=bool(hydration_raw.get('enabled', hydration.enabled)),
                    workers=int(hydration_raw.get('workers', hydration.workers)),
                )
            except (ValueError, TypeError) as e:
                raise ConfigError(f"Invalid value: {str(e)}", 'hydration')
            if hydration.workers < 1:
                raise ConfigError(
                    f"Workers must be at least 1, got {hydration.workers}",
                    'hydration.workers'
                )

        publish = bool(config_dict.get('publish', True))
        report_dir = str(config_dict.get('report_dir') or '.')

        return SbsyncConfig(
            source_space_id=source_space_id,
            target_space_id=target_space_id,
            rate_limit=rate_limit,
            hydration=hydration,
            publish=publish,
            report_dir=report_dir,
        )

    @staticmethod
    def _parse_space_id(config_dict: Dict[str, Any], name: str) -> Optional[int]:
        value = config_dict.get(name)
        if value is None:
            return None
        try:
            space_id = int(value)
        except (ValueError, TypeError):
            raise ConfigError(f"Space id must be an integer, got '{value}'", name)
        if space_id <= 0:
            raise ConfigError(f"Space id must be positive, got {space_id}", name)
        return space_id
