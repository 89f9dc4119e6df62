"""
GCP GCR and Artifact Registry login.

Both registries accept a short-lived OAuth2 access token from the ambient
Google credentials as the password for the fixed user 'oauth2accesstoken'.
"""

import functools
import logging
import threading
from typing import Optional

import google.auth
from google.auth.credentials import Credentials
from google.auth.transport.requests import Request

from registry_login.authn import AuthConfig, Authenticator, from_config
from registry_login.constants import AUTOLOGIN_FLAGS, GCP_SCOPE, GCR_HOST, GCR_HOST_SUFFIXES, GCR_USERNAME, Provider
from registry_login.context import LoginContext, ensure_context
from registry_login.errors import EmptyAuthorizationData, RegistryLoginError, SDKError, UnconfiguredProvider
from registry_login.reference import ImageReference

logger = logging.getLogger(__name__)


def valid_host(host: str) -> bool:
    """Return whether a given host is a GCR or Artifact Registry host"""
    return host == GCR_HOST or any(host.endswith(suffix) for suffix in GCR_HOST_SUFFIXES)


class GcrClient:
    """GCP registry client which can log into the registry and return
    authorization information.
    """

    def __init__(self, credentials: Optional[Credentials] = None):
        """Initialize GcrClient

        Args:
            credentials: google-auth credentials to mint access tokens with.
                When not given, google.auth.default() is consulted on first use.
        """
        self._credentials = credentials
        self._credentials_lock = threading.Lock()

    def _get_credentials(self) -> Credentials:
        if self._credentials is None:
            with self._credentials_lock:
                if self._credentials is None:
                    credentials, _ = google.auth.default(scopes=[GCP_SCOPE])
                    self._credentials = credentials
        return self._credentials

    def _fetch_token(self, credentials: Credentials, timeout: float) -> Optional[str]:
        # Bound every HTTP call the refresh makes by the time left on the context
        credentials.refresh(functools.partial(Request(), timeout=timeout))
        return credentials.token

    def get_login_auth(self, ctx: Optional[LoginContext] = None) -> AuthConfig:
        """Return authentication for GCR from the ambient credentials.

        A fresh token is requested on every call; nothing is cached here.
        The first call also looks up the ambient credentials, which on GCE
        queries the metadata server; both steps are bounded by ``ctx``.

        Raises:
            SDKError: If the credentials could not be found or refreshed
            EmptyAuthorizationData: If the refresh produced no token
        """
        ctx = ensure_context(ctx)
        try:
            credentials = ctx.run(self._get_credentials)
            token = ctx.run(self._fetch_token, credentials, ctx.remaining())
        except RegistryLoginError:
            raise
        except Exception as e:
            raise SDKError(Provider.GCP, "access token request", e) from e

        if not token:
            raise EmptyAuthorizationData(Provider.GCP, "no access token")
        return AuthConfig(username=GCR_USERNAME, password=token)

    def login(self, auto_login: bool, image: str, ref: Optional[ImageReference] = None,
              ctx: Optional[LoginContext] = None) -> Authenticator:
        """Get the authentication material for GCR.

        Callers can make sure the image is a GCP registry image with valid_host().

        Raises:
            UnconfiguredProvider: If GCR auto login is disabled
        """
        if not auto_login:
            logger.info(
                f"GCR authentication is not enabled. To enable, set the controller flag {AUTOLOGIN_FLAGS[Provider.GCP]}"
            )
            raise UnconfiguredProvider(Provider.GCP)

        logger.info(f"logging in to GCP GCR for {image}")
        try:
            auth_config = self.get_login_auth(ctx)
        except RegistryLoginError as e:
            logger.info(f"error logging into GCR: {e.message}")
            raise
        return from_config(auth_config)
