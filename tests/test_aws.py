"""Unit tests for registry_login/auth/aws.py"""

import base64
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from registry_login.authn import AuthConfig, Basic
from registry_login.auth.aws import EcrClient
from registry_login.constants import Provider
from registry_login.errors import (
    EmptyAuthorizationData,
    ImageParseError,
    InvalidTokenFormat,
    SDKError,
    UnconfiguredProvider,
)

ECR_IMAGE = "012345678901.dkr.ecr.us-east-1.amazonaws.com/foo:v1"


def _token_response(decoded: str):
    token = base64.b64encode(decoded.encode()).decode()
    return {"authorizationData": [{"authorizationToken": token}]}


def _client_with_response(response):
    mock_ecr_client = MagicMock()
    mock_ecr_client.get_authorization_token.return_value = response
    factory = MagicMock(return_value=mock_ecr_client)
    return EcrClient(client_factory=factory), factory, mock_ecr_client


class TestGetLoginAuth:
    """Tests for EcrClient.get_login_auth"""

    def test_decodes_username_and_password(self):
        """Test that 'user:pass' (dXNlcjpwYXNz) yields the matching AuthConfig"""
        client, _, _ = _client_with_response({"authorizationData": [{"authorizationToken": "dXNlcjpwYXNz"}]})

        auth = client.get_login_auth("012345678901", "us-east-1")

        assert auth == AuthConfig(username="user", password="pass")

    def test_requests_token_for_account_in_region(self):
        """Test that the client is region scoped and asks for the account's registry"""
        client, factory, mock_ecr_client = _client_with_response(_token_response("AWS:mytoken"))

        client.get_login_auth("012345678901", "eu-west-1")

        args, kwargs = factory.call_args
        assert args == ("ecr",)
        assert kwargs["region_name"] == "eu-west-1"
        assert kwargs["config"].connect_timeout > 0
        mock_ecr_client.get_authorization_token.assert_called_once_with(registryIds=["012345678901"])

    @pytest.mark.parametrize("decoded,segments", [("foobar", 1), ("a:b:c", 3), ("::", 3)])
    def test_rejects_tokens_without_exactly_one_colon(self, decoded, segments):
        """Test that malformed tokens fail with the actual segment count"""
        client, _, _ = _client_with_response(_token_response(decoded))

        with pytest.raises(InvalidTokenFormat) as exc_info:
            client.get_login_auth("012345678901", "us-east-1")

        assert exc_info.value.segments == segments
        assert f"have {segments}" in str(exc_info.value)

    def test_rejects_invalid_base64(self):
        """Test that a token that is not base64 fails as an invalid format"""
        client, _, _ = _client_with_response({"authorizationData": [{"authorizationToken": "not base64!"}]})

        with pytest.raises(InvalidTokenFormat) as exc_info:
            client.get_login_auth("012345678901", "us-east-1")
        assert exc_info.value.segments == 0

    def test_empty_authorization_data(self):
        """Test that an empty authorization data list fails"""
        client, _, _ = _client_with_response({"authorizationData": []})

        with pytest.raises(EmptyAuthorizationData):
            client.get_login_auth("012345678901", "us-east-1")

    def test_missing_authorization_token(self):
        """Test that a missing token field fails"""
        client, _, _ = _client_with_response({"authorizationData": [{"proxyEndpoint": "https://x"}]})

        with pytest.raises(EmptyAuthorizationData, match="no authorization token"):
            client.get_login_auth("012345678901", "us-east-1")

    def test_wraps_client_error(self):
        """Test that API errors surface as SDKError with the cause kept"""
        mock_ecr_client = MagicMock()
        error = ClientError({"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "GetAuthorizationToken")
        mock_ecr_client.get_authorization_token.side_effect = error
        client = EcrClient(client_factory=MagicMock(return_value=mock_ecr_client))

        with pytest.raises(SDKError) as exc_info:
            client.get_login_auth("012345678901", "us-east-1")

        assert exc_info.value.__cause__ is error
        assert exc_info.value.provider == Provider.AWS
        assert exc_info.value.retryable is True

    def test_wraps_transport_error(self):
        """Test that transport failures surface as SDKError"""
        mock_ecr_client = MagicMock()
        mock_ecr_client.get_authorization_token.side_effect = EndpointConnectionError(endpoint_url="https://ecr")
        client = EcrClient(client_factory=MagicMock(return_value=mock_ecr_client))

        with pytest.raises(SDKError, match="EndpointConnectionError"):
            client.get_login_auth("012345678901", "us-east-1")

    def test_uses_boto3_session_by_default(self):
        """Test that a boto3 session builds the client when no factory is given"""
        mock_session = MagicMock()
        mock_session.client.return_value.get_authorization_token.return_value = _token_response("AWS:mytoken")

        with patch("registry_login.auth.aws.boto3.session.Session", return_value=mock_session):
            auth = EcrClient().get_login_auth("012345678901", "us-west-2")

        assert auth.username == "AWS"
        assert auth.password == "mytoken"
        assert mock_session.client.call_args[1]["region_name"] == "us-west-2"


class TestLogin:
    """Tests for EcrClient.login"""

    def test_disabled_fails_without_calling_aws(self):
        """Test that a disabled provider fails before any API call"""
        factory = MagicMock()
        client = EcrClient(client_factory=factory)

        with pytest.raises(UnconfiguredProvider) as exc_info:
            client.login(False, ECR_IMAGE)

        factory.assert_not_called()
        assert exc_info.value.retryable is False
        assert any("--aws-autologin-for-ecr" in s for s in exc_info.value.suggestions)

    def test_returns_basic_authenticator(self):
        """Test that an enabled login returns basic credentials"""
        client, _, mock_ecr_client = _client_with_response(_token_response("AWS:mytoken"))

        auth = client.login(True, ECR_IMAGE)

        assert isinstance(auth, Basic)
        assert auth.authorization() == AuthConfig(username="AWS", password="mytoken")
        mock_ecr_client.get_authorization_token.assert_called_once_with(registryIds=["012345678901"])

    def test_rejects_non_ecr_image(self):
        """Test that an image outside ECR fails to parse"""
        client, factory, _ = _client_with_response(_token_response("AWS:mytoken"))

        with pytest.raises(ImageParseError):
            client.login(True, "gcr.io/foo/bar:v1")
        factory.assert_not_called()

    def test_logs_attempt_without_secret(self, caplog):
        """Test that the login attempt is logged and the password is not"""
        client, _, _ = _client_with_response(_token_response("AWS:supersecret"))

        with caplog.at_level("INFO", logger="registry_login"):
            client.login(True, ECR_IMAGE)

        assert f"logging in to AWS ECR for {ECR_IMAGE}" in caplog.text
        assert "supersecret" not in caplog.text
