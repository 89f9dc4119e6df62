"""
AWS ECR login.

Obtains a short-lived basic-auth token from the ECR GetAuthorizationToken API
for the account and region encoded in the image host.
"""

import base64
import binascii
import logging
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from registry_login.authn import AuthConfig, Authenticator, from_config
from registry_login.constants import AUTOLOGIN_FLAGS, Provider
from registry_login.context import LoginContext, ensure_context
from registry_login.errors import (
    EmptyAuthorizationData,
    ImageParseError,
    InvalidTokenFormat,
    SDKError,
    UnconfiguredProvider,
)
from registry_login.reference import parse_ecr_image

logger = logging.getLogger(__name__)


class EcrClient:
    """AWS ECR client which can log into the registry and return
    authorization information.
    """

    def __init__(self, session: Optional[boto3.session.Session] = None,
                 client_factory: Optional[Callable[..., Any]] = None):
        """Initialize EcrClient

        Args:
            session: boto3 session to build clients from (defaults to a new
                session using the ambient credential chain on each login)
            client_factory: Callable with the signature of ``Session.client``,
                mainly for tests
        """
        self._session = session
        self._client_factory = client_factory

    def _new_client(self, region: str, timeout: float):
        config = Config(
            region_name=region,
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        if self._client_factory is not None:
            return self._client_factory("ecr", region_name=region, config=config)
        session = self._session or boto3.session.Session()
        return session.client("ecr", region_name=region, config=config)

    def get_login_auth(self, account_id: str, region: str, ctx: Optional[LoginContext] = None) -> AuthConfig:
        """Obtain authentication for ECR given the account ID and region.

        This assumes the process has IAM permission to get an authorization
        token, which is usually the case on EKS with an instance or pod role.

        Args:
            account_id: AWS account ID owning the registry
            region: AWS region of the registry
            ctx: Login context bounding the API call

        Returns:
            AuthConfig with the decoded username and password

        Raises:
            SDKError: If the ECR API call fails
            EmptyAuthorizationData: If the response has no authorization token
            InvalidTokenFormat: If the token is not base64 of 'username:password'
        """
        # No caching of tokens is attempted; the quota for getting an auth
        # token is high enough that getting one on every scan is viable for
        # O(1000) images per region. See
        # https://docs.aws.amazon.com/general/latest/gr/ecr.html
        ctx = ensure_context(ctx)
        try:
            client = self._new_client(region, ctx.remaining())
            response = ctx.run(client.get_authorization_token, registryIds=[account_id])
        except (BotoCoreError, ClientError) as e:
            raise SDKError(Provider.AWS, "GetAuthorizationToken", e) from e

        authorization_data = response.get("authorizationData") or []
        if not authorization_data:
            raise EmptyAuthorizationData(Provider.AWS)
        token_b64 = authorization_data[0].get("authorizationToken")
        if token_b64 is None:
            raise EmptyAuthorizationData(Provider.AWS, "no authorization token")

        try:
            token = base64.b64decode(token_b64, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise InvalidTokenFormat(0, reason=f"invalid authorization token encoding: {type(e).__name__}") from e

        token_split = token.split(":")
        if len(token_split) != 2:
            raise InvalidTokenFormat(len(token_split))

        return AuthConfig(username=token_split[0], password=token_split[1])

    def login(self, auto_login: bool, image: str, ctx: Optional[LoginContext] = None) -> Authenticator:
        """Get the authentication material for ECR.

        The account and region are taken from the image URI; callers can make
        sure the image is a valid ECR image with parse_ecr_image().

        Raises:
            UnconfiguredProvider: If ECR auto login is disabled
            ImageParseError: If the image is not an ECR image
        """
        if not auto_login:
            logger.info(
                f"ECR authentication is not enabled. To enable, set the controller flag {AUTOLOGIN_FLAGS[Provider.AWS]}"
            )
            raise UnconfiguredProvider(Provider.AWS)

        logger.info(f"logging in to AWS ECR for {image}")
        account_id, region, ok = parse_ecr_image(image)
        if not ok:
            raise ImageParseError(image, "invalid ECR image", provider=Provider.AWS)

        auth_config = self.get_login_auth(account_id, region, ctx)
        return from_config(auth_config)
