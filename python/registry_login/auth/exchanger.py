"""
ACR OAuth2 token exchange.

Trades an Azure AD access token for an ACR refresh token at the registry's
``/oauth2/exchange`` endpoint.
"""

import json
from typing import Any, Dict, List, Optional

import requests

from registry_login.constants import Provider
from registry_login.context import LoginContext, ensure_context
from registry_login.errors import ExchangeDecodeError, ExchangeHTTPError, LoginCancelledError, SDKError


def _parse_error_entries(body: str) -> Optional[List[Dict[str, str]]]:
    """Parse an ACR error body, a JSON array of {code, message} entries"""
    try:
        entries = json.loads(body)
    except ValueError:
        return None
    if not isinstance(entries, list) or not entries:
        return None
    parsed = []
    for entry in entries:
        if not isinstance(entry, dict):
            return None
        parsed.append({"code": str(entry.get("code", "")), "message": str(entry.get("message", ""))})
    return parsed


class Exchanger:
    """Client for the ACR token exchange endpoint"""

    def __init__(self, endpoint: str, session: Optional[requests.Session] = None):
        """Initialize Exchanger

        Args:
            endpoint: Registry base URL, e.g. 'https://myregistry.azurecr.io'
            session: requests session to issue the POST with
        """
        self.endpoint = endpoint.rstrip("/")
        self._session = session

    @property
    def exchange_url(self) -> str:
        return f"{self.endpoint}/oauth2/exchange"

    def _post(self, data: Dict[str, str], timeout: float) -> requests.Response:
        poster = self._session.post if self._session is not None else requests.post
        return poster(
            self.exchange_url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=timeout,
        )

    def exchange_acr_access_token(self, arm_token: str, ctx: Optional[LoginContext] = None) -> str:
        """Exchange an AAD access token for an ACR refresh token.

        Args:
            arm_token: Azure AD access token scoped to Azure Resource Manager
            ctx: Login context bounding the HTTP call

        Returns:
            The ACR refresh token

        Raises:
            ExchangeHTTPError: If the endpoint answers with a non-2xx status
            ExchangeDecodeError: If a 2xx body has no usable refresh token
            SDKError: If the request could not be sent
        """
        ctx = ensure_context(ctx)
        service = self.endpoint.split("://", 1)[-1]
        data = {
            "grant_type": "access_token",
            "service": service,
            "access_token": arm_token,
        }

        try:
            response = ctx.run(self._post, data, ctx.remaining())
        except requests.Timeout as e:
            # Only a timeout that used up the context is a cancellation
            if ctx.done:
                raise LoginCancelledError(f"token exchange timed out: {type(e).__name__}", provider=Provider.AZURE) from e
            raise SDKError(Provider.AZURE, "token exchange request", e) from e
        except requests.RequestException as e:
            raise SDKError(Provider.AZURE, "token exchange request", e) from e

        if not 200 <= response.status_code < 300:
            body = response.text
            raise ExchangeHTTPError(response.status_code, errors=_parse_error_entries(body), body=body)

        try:
            result: Any = response.json()
        except ValueError as e:
            raise ExchangeDecodeError("body is not valid JSON") from e
        if not isinstance(result, dict):
            raise ExchangeDecodeError(f"expected a JSON object, got {type(result).__name__}")

        refresh_token = result.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token:
            raise ExchangeDecodeError("missing refresh_token")
        return refresh_token
