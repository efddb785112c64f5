"""
Configuration management for Cloudflare Backup.

This module handles loading and validating configuration from TOML files
and command-line arguments. Configuration priority (high to low):
1. Command-line arguments
2. Configuration file
3. Default values
"""

from __future__ import annotations

import argparse
import copy
import logging
import sys
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_core import PydanticCustomError

from cloudflare_backup.logging_config import DATE_FORMAT, LOG_FORMAT, SensitiveFilter
from cloudflare_backup.models import ErrorPolicy

if TYPE_CHECKING:
    from typing import Any, Self

# Configure basic logging for early startup messages.
# Log messages emitted while the configuration is loaded (before "setup_logging()"
# is called) are visible with proper formatting and masking. "setup_logging()"
# reconfigures the "cloudflare_backup" logger with full settings later.
logger_basic = logging.getLogger(__name__)
logger_basic.setLevel(logging.DEBUG)
handler = logging.StreamHandler()
formatter = logging.Formatter(
    fmt=LOG_FORMAT,
    datefmt=DATE_FORMAT,
)
handler.setFormatter(formatter)
handler.addFilter(SensitiveFilter())
logger_basic.addHandler(handler)
logger_basic.propagate = False


DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4/"


class ConfigValidationError(Exception):
    """
    Exception raised when configuration validation fails.

    This exception is raised when the TOML configuration or the command-line
    arguments contain invalid types or values, or no usable API credential.

    Attributes
    ----------
    message : str
        Human-readable error message describing the validation failures.
    config_path : Path | None
        Path to the configuration file that failed validation.
    """

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        """
        Initialize ConfigValidationError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        config_path : Path | None, optional
            Path to the configuration file.
        """
        self.config_path = config_path
        super().__init__(message)


# Configuration models (Pydantic with type validation and coercion)


class ApiConfig(BaseModel):
    """
    CloudFlare API configuration.

    Exactly one of ``token`` and ``key`` must be given. A key on its own is
    sent as a Bearer token, like ``token``; a key together with the account
    e-mail is treated as a legacy global API key.

    Attributes
    ----------
    token : str | None
        API token, sent as a Bearer token.
    key : str | None
        API key. Bearer token without ``email``, global API key with it.
    email : str | None
        Account e-mail for the global API key.
    base_url : str
        API base URL.
    timeout : float
        HTTP timeout in seconds.
    """

    token: str | None = None
    key: str | None = None
    email: str | None = None
    base_url: str = DEFAULT_API_BASE_URL
    timeout: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def check_credentials(self) -> Self:
        """
        Validate that exactly one usable credential is configured.

        Returns
        -------
        Self
            The validated model.

        Raises
        ------
        PydanticCustomError
            If neither or both of token and key are given.
        """
        err_type = "credential_error"
        if not self.token and not self.key:
            raise PydanticCustomError(
                err_type,
                "An API token or an API key is required",
            )
        if self.token and self.key:
            raise PydanticCustomError(
                err_type,
                "Only one of API token or API key may be given",
            )
        return self

    @property
    def uses_global_key(self) -> bool:
        """Whether ``key`` is a legacy global API key (sent as X-Auth-Key)."""
        return bool(self.key and self.email)


class OutputConfig(BaseModel):
    """
    Output configuration.

    Attributes
    ----------
    directory : str
        Directory the zone backup files are written to.
    """

    directory: str = "output/"

    @property
    def directory_as_path(self) -> Path:
        """
        Get the output directory as a Path object.

        Returns
        -------
        Path
            The output directory path.
        """
        return Path(self.directory)


class ExportConfig(BaseModel):
    """
    Export behaviour configuration.

    Attributes
    ----------
    page_rules : bool
        Whether page rules are fetched and written after the DNS records.
    on_error : ErrorPolicy
        Whether a failed zone aborts the run or is skipped.
    """

    page_rules: bool = False
    on_error: ErrorPolicy = ErrorPolicy.ABORT


class LoggingConfig(BaseModel):
    """
    Logging configuration.

    Attributes
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    file_enabled : bool
        Whether to log to file.
    file_path : str
        Path to the log file.
    """

    level: str = "INFO"
    file_enabled: bool = False
    file_path: str = "/var/log/cloudflare-backup.log"

    @property
    def file_path_as_path(self) -> Path:
        """
        Get the log file path as a Path object.

        Returns
        -------
        Path
            The resolved log file path.
        """
        return Path(self.file_path)


class Config(BaseModel):
    """
    Application configuration.

    Attributes
    ----------
    api : ApiConfig
        API configuration. Always validated, so a missing credential is
        reported even when the section is absent.
    output : OutputConfig
        Output configuration.
    export : ExportConfig
        Export behaviour configuration.
    logging : LoggingConfig
        Logging configuration.
    """

    api: ApiConfig = Field(default_factory=dict, validate_default=True)  # pyright: ignore[reportAssignmentType]
    output: OutputConfig = OutputConfig()
    export: ExportConfig = ExportConfig()
    logging: LoggingConfig = LoggingConfig()


def _format_validation_errors(
    error: ValidationError,
    config_path: Path | None,
) -> str:
    """
    Format Pydantic validation errors into human-readable messages.

    Parameters
    ----------
    error : ValidationError
        Pydantic validation error.
    config_path : Path | None
        Path to the configuration file.

    Returns
    -------
    str
        Human-readable error message.
    """
    lines: list[str] = []

    if config_path:
        lines.append(f'Configuration error in "{config_path}":')
    else:
        lines.append("Configuration error:")

    for err in error.errors():
        # Build field path (e.g., "api.timeout")
        field_path = ".".join(str(loc) for loc in err["loc"])

        error_type = err["type"]
        error_input = err["input"]
        input_type = type(error_input).__name__

        value_repr = (
            f'"{error_input}"' if isinstance(error_input, str) else repr(error_input)
        )

        if error_type == "credential_error":
            # Never echo the section back, it may hold a secret
            lines.append(f"  [{field_path}]: {err['msg']}.")
        else:
            expected_type = _get_expected_type(error_type)
            lines.append(
                f"  [{field_path}]: Expected {expected_type}, got {input_type} (value: {value_repr}). {err['msg']}.",
            )

    return "\n".join(lines)


def _get_expected_type(error_type: str) -> str:
    """
    Get human-readable expected type from Pydantic error type.

    Parameters
    ----------
    error_type : str
        Pydantic error type string.

    Returns
    -------
    str
        Human-readable type name.
    """
    type_mapping = {
        "int_type": "int",
        "int_parsing": "int",
        "float_type": "float",
        "float_parsing": "float",
        "greater_than": "positive number",
        "bool_type": "bool",
        "bool_parsing": "bool",
        "string_type": "str",
        "enum": "one of 'abort', 'continue'",
    }
    return type_mapping.get(error_type, error_type)


def validate_config_dict(
    data: dict[str, Any],
    config_path: Path | None = None,
) -> None:
    """
    Validate configuration dictionary using Pydantic.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary to validate.
    config_path : Path | None, optional
        Path to the configuration file (for error messages).

    Raises
    ------
    ConfigValidationError
        If validation fails.
    """
    try:
        Config(**data)
    except ValidationError as e:
        msg = _format_validation_errors(e, config_path)
        raise ConfigValidationError(msg, config_path) from e


def load_config_from_file(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a TOML file.

    Parameters
    ----------
    config_path : Path
        Path to the configuration file.

    Returns
    -------
    dict[str, Any]
        Parsed configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    tomllib.TOMLDecodeError
        If the configuration file is not valid TOML.
    """
    with config_path.open("rb") as f:
        return tomllib.load(f)


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Parameters
    ----------
    base : dict[str, Any]
        Base configuration.
    override : dict[str, Any]
        Override configuration (takes precedence).

    Returns
    -------
    dict[str, Any]
        Merged configuration.
    """
    # Use deep copy to avoid modifying the original base configuration
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def dict_to_config(data: dict[str, Any]) -> Config:
    """
    Convert a dictionary to a Config object.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary.

    Returns
    -------
    Config
        Configuration object.
    """
    # Handle "~" expansion before Pydantic validation
    for section, key in (("logging", "file_path"), ("output", "directory")):
        if section in data and key in data[section]:
            data = copy.deepcopy(data)
            data[section][key] = str(Path(data[section][key]).expanduser())

    return Config.model_validate(data)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="cloudflare-backup",
        description="Cloudflare Backup - Export CloudFlare DNS zones to text files",
    )

    # Config arguments
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml)",
    )

    # API arguments
    credential_group = parser.add_mutually_exclusive_group()
    credential_group.add_argument(
        "--api-token",
        type=str,
        dest="api_token",
        default=None,
        help="The CloudFlare API token to use",
    )
    credential_group.add_argument(
        "--api-key",
        type=str,
        dest="api_key",
        default=None,
        help="The CloudFlare API key to use",
    )
    parser.add_argument(
        "--api-email",
        type=str,
        dest="api_email",
        default=None,
        help="The CloudFlare account e-mail; makes --api-key a legacy global API key",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="HTTP timeout in seconds",
    )

    # Output arguments
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="The output directory (default: output/)",
    )

    # Export arguments
    page_rules_group = parser.add_mutually_exclusive_group()
    page_rules_group.add_argument(
        "--page-rules",
        action="store_true",
        dest="page_rules",
        default=None,
        help="Also back up page rules",
    )
    page_rules_group.add_argument(
        "--no-page-rules",
        action="store_false",
        dest="page_rules",
        default=None,
        help="Do not back up page rules",
    )
    on_error_group = parser.add_mutually_exclusive_group()
    on_error_group.add_argument(
        "--continue-on-error",
        action="store_const",
        const=ErrorPolicy.CONTINUE,
        dest="on_error",
        default=None,
        help="Skip zones that fail to export",
    )
    on_error_group.add_argument(
        "--abort-on-error",
        action="store_const",
        const=ErrorPolicy.ABORT,
        dest="on_error",
        default=None,
        help="Stop on the first zone that fails to export",
    )

    # Logging arguments
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level",
    )
    log_file_group = parser.add_mutually_exclusive_group()
    log_file_group.add_argument(
        "--log-file-enabled",
        action="store_true",
        dest="log_file_enabled",
        default=None,
        help="Enable logging to file",
    )
    log_file_group.add_argument(
        "--log-file-disabled",
        action="store_false",
        dest="log_file_enabled",
        default=None,
        help="Disable logging to file",
    )
    parser.add_argument(
        "--log-file-path",
        type=Path,
        dest="log_file_path",
        default=None,
        help="Path to the log file",
    )

    return parser.parse_args(args)


def load_config(args: argparse.Namespace | None = None) -> Config:
    """
    Load configuration from file and command-line arguments.

    Priority (high to low):
    1. Command-line arguments
    2. Configuration file
    3. Default values

    Parameters
    ----------
    args : argparse.Namespace | None, optional
        Parsed command-line arguments.

    Returns
    -------
    Config
        Loaded configuration.

    Raises
    ------
    ConfigValidationError
        If the merged configuration is invalid.
    """
    if args is None:
        args = parse_args()

    config_dict: dict[str, Any] = {}

    # Load from config file if specified or if default exists
    config_path = args.config
    if config_path is not None:
        config_path = config_path.expanduser()
    if config_path is None:
        default_config = Path("config.toml")
        if default_config.exists():
            config_path = default_config

    if config_path is not None:
        if config_path.exists():
            logger_basic.info('Loading configuration from "%s".', config_path)
            try:
                config_dict = load_config_from_file(config_path)
            except tomllib.TOMLDecodeError as e:
                logger_basic.critical('Failed to parse configuration file: "%s".', e)
                sys.exit(1)
        else:
            logger_basic.critical("Configuration file not found: %s", config_path)
            sys.exit(1)

    # Apply command-line overrides
    cli_overrides: dict[str, Any] = {}

    # API overrides. A credential given on the command line replaces the
    # one from the file, whichever kind that was.
    if args.api_token is not None:
        api = cli_overrides.setdefault("api", {})
        api["token"] = args.api_token
        api["key"] = None
    if args.api_key is not None:
        api = cli_overrides.setdefault("api", {})
        api["key"] = args.api_key
        api["token"] = None
    if args.api_email is not None:
        cli_overrides.setdefault("api", {})["email"] = args.api_email
    if args.timeout is not None:
        cli_overrides.setdefault("api", {})["timeout"] = args.timeout

    # Output overrides
    if args.output is not None:
        cli_overrides.setdefault("output", {})["directory"] = args.output

    # Export overrides
    if args.page_rules is not None:
        cli_overrides.setdefault("export", {})["page_rules"] = args.page_rules
    if args.on_error is not None:
        cli_overrides.setdefault("export", {})["on_error"] = args.on_error

    # Logging overrides
    if args.log_level is not None:
        cli_overrides.setdefault("logging", {})["level"] = args.log_level
    if args.log_file_enabled is not None:
        cli_overrides.setdefault("logging", {})["file_enabled"] = args.log_file_enabled
    if args.log_file_path is not None:
        cli_overrides.setdefault("logging", {})["file_path"] = str(args.log_file_path)

    if cli_overrides:
        config_dict = merge_config(config_dict, cli_overrides)

    # Validate merged configuration
    validate_config_dict(config_dict, config_path)

    return dict_to_config(config_dict)
