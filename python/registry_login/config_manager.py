"""
Configuration Manager for registry provider login

This module handles loading and managing configuration from config.yaml
and environment variables.
"""

import logging
import os
from typing import Any, Dict, Optional

import yaml

from registry_login.constants import DEFAULT_TIMEOUT
from registry_login.login import ProviderOptions

TRUTHY = ("true", "1", "yes", "on")
FALSY = ("false", "0", "no", "off", "")

VALID_SCHEMES = ("http", "https")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""


def _parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise ConfigValidationError(f"{field} must be a boolean, got: {value} (type: {type(value).__name__})")


class ConfigManager:
    """Manages configuration for registry provider login"""

    # Environment variable overriding each provider's autologin setting
    AUTOLOGIN_ENV = {
        "aws": "AWS_AUTOLOGIN_FOR_ECR",
        "gcp": "GCP_AUTOLOGIN_FOR_GCR",
        "azure": "AZURE_AUTOLOGIN_FOR_ACR",
    }

    def __init__(self, config_file: Optional[str] = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to config.yaml or CONFIG_FILE env var)
            validate: If True, validate configuration on initialization
        """
        # Allow override via environment variable for containerized deployments
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = {
            "providers": {
                "aws": {"autologin": False},
                "gcp": {"autologin": False},
                "azure": {"autologin": False, "scheme": "https"},
            },
            "login": {"timeout": DEFAULT_TIMEOUT},
            "logging": {"level": "INFO"},
        }

        if not os.path.exists(self.config_file):
            logging.debug(f"Config file {self.config_file} not found, using defaults")
            return default_config

        try:
            with open(self.config_file, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Error loading config file {self.config_file}: {e}")
            raise ConfigValidationError(f"Error loading config file {self.config_file}: {e}") from e

        if not isinstance(user_config, dict):
            logging.error(f"Config file {self.config_file} must contain a mapping")
            raise ConfigValidationError(f"Config file {self.config_file} must contain a mapping")
        return self._merge_config(default_config, user_config)

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    # Provider configuration
    def is_autologin_enabled(self, provider: str) -> bool:
        """Get whether autologin is enabled for a provider ('aws', 'gcp' or 'azure')"""
        env_value = os.environ.get(self.AUTOLOGIN_ENV[provider])
        if env_value is not None:
            return _parse_bool(env_value, self.AUTOLOGIN_ENV[provider])
        value = self.config.get("providers", {}).get(provider, {}).get("autologin", False)
        return _parse_bool(value, f"providers.{provider}.autologin")

    def get_provider_options(self) -> ProviderOptions:
        """Get the per-provider autologin flags"""
        return ProviderOptions(
            aws_autologin=self.is_autologin_enabled("aws"),
            gcp_autologin=self.is_autologin_enabled("gcp"),
            azure_autologin=self.is_autologin_enabled("azure"),
        )

    def get_azure_scheme(self) -> str:
        """Get the scheme of the ACR token exchange request"""
        return str(self.config.get("providers", {}).get("azure", {}).get("scheme", "https")).lower()

    # Login configuration
    def get_login_timeout(self) -> float:
        """Get login timeout from environment or config, with type coercion"""
        timeout = os.environ.get("LOGIN_TIMEOUT") or self.config.get("login", {}).get("timeout", DEFAULT_TIMEOUT)
        try:
            return float(timeout)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"login.timeout must be a number, got: {timeout} (type: {type(timeout).__name__})"
            )

    # Logging configuration
    def get_log_level(self) -> str:
        """Get log level from environment or config"""
        return str(os.environ.get("LOG_LEVEL") or self.config.get("logging", {}).get("level", "INFO")).upper()

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        errors = []
        warnings = []

        for provider in self.AUTOLOGIN_ENV:
            try:
                self.is_autologin_enabled(provider)
            except ConfigValidationError as e:
                errors.append(str(e))

        scheme = self.get_azure_scheme()
        if scheme not in VALID_SCHEMES:
            errors.append(f"providers.azure.scheme must be one of {', '.join(VALID_SCHEMES)}, got: {scheme}")
        elif scheme == "http":
            warnings.append("providers.azure.scheme is 'http', tokens will be exchanged without TLS")

        try:
            timeout = self.get_login_timeout()
            if timeout <= 0:
                errors.append(f"login.timeout must be a positive number (seconds), got: {timeout}")
            elif timeout > 600:
                warnings.append(f"login.timeout is very high ({timeout}s), stuck logins will block reconciliation")
        except ConfigValidationError as e:
            errors.append(str(e))

        level = self.get_log_level()
        if level not in VALID_LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(VALID_LOG_LEVELS)}, got: {level}")

        # Log warnings
        for warning in warnings:
            logging.warning(f"Configuration warning: {warning}")

        # Raise error if there are validation errors
        if errors:
            error_msg = "Configuration validation failed:\n  " + "\n  ".join(errors)
            logging.error(error_msg)
            raise ConfigValidationError(error_msg)

    def print_config(self) -> None:
        """Log the effective configuration at debug level"""
        opts = self.get_provider_options()
        logging.debug(f"Effective configuration (from {self.config_file}):")
        logging.debug(f"  aws autologin: {opts.aws_autologin}")
        logging.debug(f"  gcp autologin: {opts.gcp_autologin}")
        logging.debug(f"  azure autologin: {opts.azure_autologin}")
        logging.debug(f"  azure scheme: {self.get_azure_scheme()}")
        logging.debug(f"  login timeout: {self.get_login_timeout()}s")
        logging.debug(f"  log level: {self.get_log_level()}")
