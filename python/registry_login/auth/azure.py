"""
Azure ACR login.

Two hops: an Azure AD access token is obtained from a token credential, then
exchanged at the registry for an ACR refresh token which serves as the
basic-auth password.
"""

import logging
import os
import threading
from typing import Optional

import requests
from azure.core.credentials import TokenCredential
from azure.identity import (
    ChainedTokenCredential,
    EnvironmentCredential,
    ManagedIdentityCredential,
    WorkloadIdentityCredential,
)

from registry_login.auth.exchanger import Exchanger
from registry_login.authn import AuthConfig, Authenticator, from_config
from registry_login.constants import (
    ACR_HOST_SUFFIXES,
    ACR_USERNAME,
    ARM_SCOPE,
    AUTOLOGIN_FLAGS,
    DEFAULT_TIMEOUT,
    Provider,
)
from registry_login.context import LoginContext, ensure_context
from registry_login.errors import RegistryLoginError, SDKError, UnconfiguredProvider
from registry_login.reference import ImageReference, parse_reference

logger = logging.getLogger(__name__)


def new_default_credential(timeout: float = DEFAULT_TIMEOUT) -> TokenCredential:
    """Build the ambient credential chain: environment, managed identity,
    then workload identity.

    Every credential's transport is bounded by ``timeout`` seconds for both
    connecting and reading.

    Environment Variables:
        AZURE_CLIENT_ID: Client ID of the managed identity (required when
                        multiple user-assigned identities exist on the cluster)
        AZURE_FEDERATED_TOKEN_FILE: Presence enables workload identity
    """
    transport = {"connection_timeout": timeout, "read_timeout": timeout}
    client_id = os.environ.get("AZURE_CLIENT_ID")
    credentials = [
        EnvironmentCredential(**transport),
        ManagedIdentityCredential(client_id=client_id, **transport) if client_id
        else ManagedIdentityCredential(**transport),
    ]
    if os.environ.get("AZURE_FEDERATED_TOKEN_FILE"):
        credentials.append(WorkloadIdentityCredential(**transport))
    return ChainedTokenCredential(*credentials)


def valid_host(host: str) -> bool:
    """Return whether a given host is an Azure container registry"""
    return any(host.endswith(suffix) for suffix in ACR_HOST_SUFFIXES)


class AcrClient:
    """Azure ACR client which can log into the registry and return
    authorization information.
    """

    def __init__(self, credential: Optional[TokenCredential] = None, scheme: str = "https",
                 session: Optional[requests.Session] = None, credential_timeout: float = DEFAULT_TIMEOUT):
        """Initialize AcrClient

        Args:
            credential: Token credential to obtain AAD tokens with. When not
                given, the default chain is built on first use.
            scheme: Scheme of the exchange request, 'http' only for test servers
            session: requests session for the exchange request
            credential_timeout: Connect and read timeout of the default chain's
                identity requests
        """
        self.scheme = scheme
        self._session = session
        self.credential_timeout = credential_timeout
        self._credential = credential
        self._credential_lock = threading.Lock()

    def _get_credential(self) -> TokenCredential:
        # Building the default chain does a lot of environment lookup; do it
        # once, on first use, and publish it to every waiting caller.
        if self._credential is None:
            with self._credential_lock:
                if self._credential is None:
                    self._credential = new_default_credential(self.credential_timeout)
        return self._credential

    def get_login_auth(self, ref: ImageReference, ctx: Optional[LoginContext] = None) -> AuthConfig:
        """Return authentication for ACR.

        The details needed for authentication come from the environment, so
        no host path needs to be mounted.

        Raises:
            SDKError: If no AAD token could be obtained
            ExchangeHTTPError: If the registry refused the exchange
            ExchangeDecodeError: If the exchange response is unusable
        """
        ctx = ensure_context(ctx)

        try:
            credential = self._get_credential()
            arm_token = ctx.run(credential.get_token, ARM_SCOPE)
        except RegistryLoginError:
            raise
        except Exception as e:
            raise SDKError(Provider.AZURE, "access token request", e) from e

        exchanger = Exchanger(f"{self.scheme}://{ref.registry}", session=self._session)
        refresh_token = exchanger.exchange_acr_access_token(arm_token.token, ctx)

        return AuthConfig(username=ACR_USERNAME, password=refresh_token)

    def login(self, auto_login: bool, image: str, ref: Optional[ImageReference] = None,
              ctx: Optional[LoginContext] = None) -> Authenticator:
        """Get the authentication material for ACR.

        Callers can make sure the image is an ACR image with valid_host().

        Raises:
            UnconfiguredProvider: If ACR auto login is disabled
        """
        if not auto_login:
            logger.info(
                f"ACR authentication is not enabled. To enable, set the controller flag {AUTOLOGIN_FLAGS[Provider.AZURE]}"
            )
            raise UnconfiguredProvider(Provider.AZURE)

        logger.info(f"logging in to Azure ACR for {image}")
        try:
            auth_config = self.get_login_auth(ref or parse_reference(image), ctx)
        except RegistryLoginError as e:
            logger.info(f"error logging into ACR: {e.message}")
            raise
        return from_config(auth_config)
