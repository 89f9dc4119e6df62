"""Unit tests for registry_login/cli.py"""

import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from registry_login import cli
from registry_login.authn import Basic
from registry_login.constants import Provider
from registry_login.errors import SDKError, UnconfiguredProvider
from registry_login.login import ProviderOptions


@pytest.fixture(autouse=True)
def clean_environment():
    with patch.dict(os.environ, {"CONFIG_FILE": "/nonexistent/config.yaml"}):
        for name in ("AWS_AUTOLOGIN_FOR_ECR", "GCP_AUTOLOGIN_FOR_GCR", "AZURE_AUTOLOGIN_FOR_ACR", "LOG_LEVEL"):
            os.environ.pop(name, None)
        yield


class TestClassify:
    """Tests for the classify command"""

    @pytest.mark.parametrize(
        "image,provider",
        [
            ("123456789012.dkr.ecr.us-east-1.amazonaws.com/foo", "aws"),
            ("foo.azurecr.io/bar", "azure"),
            ("gcr.io/foo/bar", "gcp"),
            ("busybox", "generic"),
        ],
    )
    def test_prints_provider(self, capsys, image, provider):
        assert cli.main(["classify", image]) == cli.EXIT_OK
        assert capsys.readouterr().out.split("\t")[0] == provider

    def test_invalid_image(self):
        assert cli.main(["classify", "gcr.io/Bad/Name"]) == cli.EXIT_LOGIN_FAILED


class TestLogin:
    """Tests for the login command"""

    def test_generic_needs_no_credentials(self, capsys):
        assert cli.main(["login", "docker.io/library/busybox"]) == cli.EXIT_OK
        assert "no provider credentials needed" in capsys.readouterr().out

    def test_flags_enable_providers(self):
        mock_manager = MagicMock()
        mock_manager.login.return_value = Basic("AWS", "supersecret")

        with patch("registry_login.cli.Manager", return_value=mock_manager):
            cli.main(["login", "--aws-autologin-for-ecr", "123456789012.dkr.ecr.us-east-1.amazonaws.com/foo"])

        opts = mock_manager.login.call_args[0][2]
        assert opts == ProviderOptions(aws_autologin=True)

    def test_success_never_prints_secret(self, capsys):
        mock_manager = MagicMock()
        mock_manager.login.return_value = Basic("AWS", "supersecret")

        with patch("registry_login.cli.Manager", return_value=mock_manager):
            code = cli.main(["login", "--aws-autologin-for-ecr", "123456789012.dkr.ecr.us-east-1.amazonaws.com/foo"])

        out = capsys.readouterr().out
        assert code == cli.EXIT_OK
        assert "username=AWS" in out
        assert "supersecret" not in out

    def test_disabled_provider_fails(self):
        mock_manager = MagicMock()
        mock_manager.login.side_effect = UnconfiguredProvider(Provider.AZURE)

        with patch("registry_login.cli.Manager", return_value=mock_manager):
            assert cli.main(["login", "foo.azurecr.io/bar"]) == cli.EXIT_LOGIN_FAILED

    def test_login_error_fails(self):
        mock_manager = MagicMock()
        mock_manager.login.side_effect = SDKError(Provider.GCP, "access token request", RuntimeError("x"))

        with patch("registry_login.cli.Manager", return_value=mock_manager):
            assert cli.main(["login", "--gcp-autologin-for-gcr", "gcr.io/foo/bar"]) == cli.EXIT_LOGIN_FAILED

    def test_invalid_config(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("login:\n  timeout: -1\n")

        assert cli.main(["--config", str(config), "login", "busybox"]) == cli.EXIT_CONFIG_ERROR

    @pytest.mark.parametrize("timeout", ["0", "-5"])
    def test_non_positive_timeout_is_config_error(self, timeout):
        with patch("registry_login.cli.Manager") as mock_manager:
            code = cli.main(["login", "--timeout", timeout, "busybox"])

        assert code == cli.EXIT_CONFIG_ERROR
        mock_manager.return_value.login.assert_not_called()

    def test_timeout_bounds_azure_identity_requests(self):
        with patch("registry_login.cli.AcrClient") as mock_acr, patch("registry_login.cli.Manager"):
            cli.main(["login", "--timeout", "7", "foo.azurecr.io/bar"])

        mock_acr.assert_called_once_with(scheme="https", credential_timeout=7.0)


class TestMain:
    """Tests for startup ordering in main"""

    def test_logging_configured_before_config_loads(self):
        """Test that config validation warnings are emitted with logging already set up"""
        parent = MagicMock()
        parent.ConfigManager.return_value.get_log_level.return_value = "INFO"

        with patch("registry_login.cli.setup_logging", parent.setup_logging), \
                patch("registry_login.cli.ConfigManager", parent.ConfigManager):
            cli.main(["classify", "busybox"])

        names = [name for name, _, _ in parent.mock_calls]
        assert names.index("setup_logging") < names.index("ConfigManager")

    def test_effective_config_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG):
            cli.main(["--log-level", "debug", "classify", "busybox"])

        assert "Effective configuration" in caplog.text
