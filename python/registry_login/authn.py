"""
Registry credentials handed to the registry API client.

AuthConfig is the raw material produced by a provider exchange; an
Authenticator wraps it for the client that lists tags. Neither is persisted,
and their reprs never include secret values.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AuthConfig:
    """Username/password or token credentials for a single registry call"""

    username: str = ""
    password: str = field(default="", repr=False)
    identity_token: Optional[str] = field(default=None, repr=False)
    registry_token: Optional[str] = field(default=None, repr=False)


class Authenticator(ABC):
    """Credential object consumed by the registry API client"""

    @abstractmethod
    def authorization(self) -> AuthConfig:
        """Return the credentials to present to the registry"""

    @abstractmethod
    def authorization_header(self) -> str:
        """Return the value for an HTTP Authorization header"""


class Basic(Authenticator):
    """HTTP basic authentication with a username and password"""

    def __init__(self, username: str, password: str):
        self.username = username
        self._password = password

    def authorization(self) -> AuthConfig:
        return AuthConfig(username=self.username, password=self._password)

    def authorization_header(self) -> str:
        raw = f"{self.username}:{self._password}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def __repr__(self) -> str:
        return f"Basic(username={self.username!r})"


class Bearer(Authenticator):
    """Registry bearer token authentication"""

    def __init__(self, token: str):
        self._token = token

    def authorization(self) -> AuthConfig:
        return AuthConfig(registry_token=self._token)

    def authorization_header(self) -> str:
        return f"Bearer {self._token}"

    def __repr__(self) -> str:
        return "Bearer(<redacted>)"


class _ConfigAuthenticator(Authenticator):
    """Passes an identity-token config through for the client to exchange"""

    def __init__(self, config: AuthConfig):
        self._config = config

    def authorization(self) -> AuthConfig:
        return self._config

    def authorization_header(self) -> str:
        # An identity token is exchanged by the registry client at the token endpoint
        raise ValueError("identity token credentials have no direct Authorization header")

    def __repr__(self) -> str:
        return f"Authenticator(username={self._config.username!r})"


def from_config(config: AuthConfig) -> Authenticator:
    """Build the Authenticator matching an AuthConfig.

    A registry token becomes a Bearer authenticator, an identity token is passed
    through untouched, anything else is basic authentication.
    """
    if config.registry_token:
        return Bearer(config.registry_token)
    if config.identity_token:
        return _ConfigAuthenticator(config)
    return Basic(config.username, config.password)
