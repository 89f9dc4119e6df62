"""
Short-lived registry credentials from ambient cloud identity.

Classifies an image to the cloud provider hosting its registry (AWS ECR,
GCP GCR/Artifact Registry, Azure ACR) and exchanges the runtime's cloud
identity for registry-scoped credentials.
"""

from registry_login.authn import AuthConfig, Authenticator, Basic, Bearer, from_config
from registry_login.constants import Provider
from registry_login.context import LoginContext
from registry_login.errors import (
    EmptyAuthorizationData,
    ExchangeDecodeError,
    ExchangeHTTPError,
    ImageParseError,
    InvalidTokenFormat,
    LoginCancelledError,
    RegistryLoginError,
    SDKError,
    UnconfiguredProvider,
    is_retryable_error,
)
from registry_login.login import Manager, ProviderOptions, image_registry_provider
from registry_login.reference import ImageReference, parse_ecr_image, parse_reference

__version__ = "0.1.0"

__all__ = [
    "AuthConfig",
    "Authenticator",
    "Basic",
    "Bearer",
    "EmptyAuthorizationData",
    "ExchangeDecodeError",
    "ExchangeHTTPError",
    "ImageParseError",
    "ImageReference",
    "InvalidTokenFormat",
    "LoginCancelledError",
    "LoginContext",
    "Manager",
    "Provider",
    "ProviderOptions",
    "RegistryLoginError",
    "SDKError",
    "UnconfiguredProvider",
    "from_config",
    "image_registry_provider",
    "is_retryable_error",
    "parse_ecr_image",
    "parse_reference",
]
