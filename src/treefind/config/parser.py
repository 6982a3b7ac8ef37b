"""
YAML configuration parser for Treefind.

This module loads default search options from a YAML file, validates them and
turns them into a FindConfig. The file is optional: without one, the built-in
defaults apply. Options given on the command line are applied on top by the
caller as ``overrides``.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Union
import logging
from dataclasses import dataclass

from ..errors import ConfigurationError
from ..models.config import FindConfig, merge_options, validate_config_dict


logger = logging.getLogger(__name__)


@dataclass
class ConfigParseResult:
    """
    Result of configuration parsing operation.

    Attributes:
        config: The parsed and validated configuration
        warnings: List of non-fatal warnings
        config_path: Path to the configuration file used
        is_default: Whether default configuration was used
    """
    config: FindConfig
    warnings: List[str]
    config_path: Optional[Path]
    is_default: bool


class ConfigParser:
    """
    YAML configuration parser with validation and error handling.

    This class handles configuration file discovery, loading and validation.
    Every failure is raised as a ConfigurationError, or one of its
    subclasses for invalid search options, and never exits the process.
    """

    DEFAULT_CONFIG_NAMES = [
        '.treefind.yaml',
        '.treefind.yml',
        'treefind.yaml',
        'treefind.yml'
    ]

    def __init__(self, strict_mode: bool = False):
        """
        Initialize the configuration parser.

        Args:
            strict_mode: If True, treat warnings as errors
        """
        self.strict_mode = strict_mode
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def load_config(self,
                    config_path: Optional[Union[str, Path]] = None,
                    overrides: Optional[Dict[str, Any]] = None) -> ConfigParseResult:
        """
        Load and parse configuration from file or use defaults.

        Args:
            config_path: Path to configuration file. If None, searches for default files.
            overrides: Options that take precedence over the file (None values are ignored)

        Returns:
            ConfigParseResult containing parsed configuration and metadata

        Raises:
            ConfigurationError: If configuration is invalid or file cannot be read
        """
        if config_path:
            config_path = Path(config_path)
            if not config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {config_path}")

            config_data = self._load_yaml_file(config_path)
            is_default = False
        else:
            config_path, config_data = self._find_and_load_config()
            is_default = config_data is None

            if is_default:
                config_data = {}

        config = self._build_config(config_data, overrides or {})

        warnings = config.validate_configuration()
        warnings.extend(self._get_parser_warnings(config_path))

        if self.strict_mode and warnings:
            raise ConfigurationError(f"Configuration warnings in strict mode: {'; '.join(warnings)}")

        self.logger.debug(f"Configuration loaded from {config_path or 'defaults'}: {config}")

        return ConfigParseResult(
            config=config,
            warnings=warnings,
            config_path=config_path,
            is_default=is_default
        )

    def _find_and_load_config(self) -> tuple[Optional[Path], Optional[Dict[str, Any]]]:
        """
        Find and load configuration file from default locations.

        Returns:
            Tuple of (config_path, config_data) or (None, None) if not found
        """
        search_paths = [
            Path.cwd(),
            Path.home(),
            Path.home() / '.config' / 'treefind',
        ]

        for search_path in search_paths:
            for config_name in self.DEFAULT_CONFIG_NAMES:
                config_file = search_path / config_name
                if config_file.is_file():
                    config_data = self._load_yaml_file(config_file)
                    self.logger.info(f"Found configuration file: {config_file}")
                    return config_file, config_data

        self.logger.debug("No configuration file found, using defaults")
        return None, None

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """
        Load and parse YAML file.

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed YAML data as dictionary

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()

            if not content.strip():
                self.logger.warning(f"Configuration file is empty: {file_path}")
                return {}

            data = yaml.safe_load(content)

            # A file holding only comments
            if data is None:
                return {}

            if not isinstance(data, dict):
                raise ConfigurationError(f"Configuration file must contain a YAML object, got {type(data).__name__}")

            return data

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {file_path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}") from e

    def _build_config(self,
                      config_data: Dict[str, Any],
                      overrides: Optional[Dict[str, Any]] = None) -> FindConfig:
        """
        Validate configuration data, apply overrides and build the model.

        Raises:
            ConfigurationError: If the data is malformed or an option is invalid
        """
        try:
            validated_data = validate_config_dict(config_data)
            if overrides:
                validated_data = merge_options(validated_data, validate_config_dict(overrides))
            return FindConfig.from_dict(validated_data)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _get_parser_warnings(self, config_path: Optional[Path]) -> List[str]:
        """
        Get parser-specific warnings.

        Args:
            config_path: Path to configuration file (if any)

        Returns:
            List of warning messages
        """
        warnings = []

        if config_path is not None and config_path.suffix not in ('.yaml', '.yml'):
            warnings.append(f"Configuration file {config_path} does not have a .yaml or .yml extension")

        return warnings

    def _generate_yaml_with_comments(self, config_dict: Dict[str, Any]) -> str:
        """
        Generate YAML content with helpful comments.

        Args:
            config_dict: Configuration dictionary

        Returns:
            YAML content with comments
        """
        lines = [
            "# Treefind Configuration",
            "# Default search options; command-line flags take precedence",
            "",
        ]

        sections = [
            ("root", "Directory the search starts from"),
            ("type", "Entry kind to report: f (file), d (directory) or s (symlink)"),
            ("size", "Size filter for regular files: [+-]N[KMG], + means at least, - at most"),
            ("name", "Glob pattern for the entry name (use only one of name, iname, regex)"),
            ("iname", "Case-insensitive glob pattern for the entry name"),
            ("regex", "Regular expression searched in the entry name"),
            ("depth", "Maximum number of directory levels to descend"),
        ]

        for key, comment in sections:
            lines.append(f"# {comment}")
            if key in config_dict:
                lines.append(yaml.dump({key: config_dict[key]}, default_flow_style=False, sort_keys=False).rstrip())
            else:
                lines.append(f"# {key}:")
            lines.append("")

        return "\n".join(lines)

    def validate_config_file(self, config_path: Union[str, Path]) -> List[str]:
        """
        Validate a configuration file without using it.

        Args:
            config_path: Path to configuration file

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        try:
            config_path = Path(config_path)

            if not config_path.exists():
                errors.append(f"Configuration file not found: {config_path}")
                return errors

            config_data = self._load_yaml_file(config_path)
            self._build_config(config_data)

        except ConfigurationError as e:
            errors.append(str(e))

        return errors

    def get_config_template(self) -> str:
        """
        Get a template configuration file with all options and comments.

        Returns:
            YAML template as string
        """
        template_config = {
            'root': '.',
            'type': 'f',
        }

        return self._generate_yaml_with_comments(template_config)


def load_config(config_path: Optional[Union[str, Path]] = None,
                overrides: Optional[Dict[str, Any]] = None,
                strict_mode: bool = False) -> ConfigParseResult:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to configuration file (optional)
        overrides: Options that take precedence over the file
        strict_mode: Whether to treat warnings as errors

    Returns:
        ConfigParseResult containing parsed configuration

    Raises:
        ConfigurationError: If configuration is invalid
    """
    parser = ConfigParser(strict_mode=strict_mode)
    return parser.load_config(config_path, overrides=overrides)


def validate_config_file(config_path: Union[str, Path]) -> List[str]:
    """
    Convenience function to validate a configuration file.

    Args:
        config_path: Path to configuration file

    Returns:
        List of validation errors (empty if valid)
    """
    parser = ConfigParser()
    return parser.validate_config_file(config_path)


def create_config_template(output_path: Union[str, Path]) -> None:
    """
    Create a template configuration file.

    Args:
        output_path: Where to save the template

    Raises:
        ConfigurationError: If template cannot be created
    """
    parser = ConfigParser()
    template_content = parser.get_config_template()

    try:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(template_content)

    except OSError as e:
        raise ConfigurationError(f"Cannot create template file {output_path}: {e}") from e
