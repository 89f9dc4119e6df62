"""
Command line entrypoint for registry provider login diagnostics.

Secrets are never printed: a successful login reports the provider and the
username only.
"""

import argparse
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

from registry_login.auth.azure import AcrClient
from registry_login.config_manager import ConfigManager, ConfigValidationError
from registry_login.constants import AUTOLOGIN_FLAGS, PROVIDER_NAMES, Provider
from registry_login.context import LoginContext
from registry_login.errors import ImageParseError, RegistryLoginError, is_retryable_error
from registry_login.logging_utils import log_exception, redact, setup_logging
from registry_login.login import Manager, image_registry_provider
from registry_login.reference import parse_reference

EXIT_OK = 0
EXIT_LOGIN_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="registry-login",
        description="Obtain short-lived registry credentials from ambient cloud identity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration:
  The tool uses config.yaml for default settings. You can also use environment variables:
  - CONFIG_FILE: Path to the configuration file
  - AWS_AUTOLOGIN_FOR_ECR, GCP_AUTOLOGIN_FOR_GCR, AZURE_AUTOLOGIN_FOR_ACR: Enable provider login
  - LOGIN_TIMEOUT: Seconds before a login is abandoned
  - LOG_LEVEL: Logging level

Examples:
  registry-login classify 123456789012.dkr.ecr.us-east-1.amazonaws.com/foo
  registry-login login --aws-autologin-for-ecr 123456789012.dkr.ecr.us-east-1.amazonaws.com/foo:v1
  registry-login login --azure-autologin-for-acr myregistry.azurecr.io/team/app
""",
    )
    parser.add_argument("--config", help="Path to configuration YAML file")
    parser.add_argument("--log-level", help="Logging level (overrides config)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    classify = subparsers.add_parser("classify", help="Print the registry provider hosting an image")
    classify.add_argument("image", help="Image reference")

    login = subparsers.add_parser("login", help="Log in to the image's registry provider")
    login.add_argument("image", help="Image reference")
    login.add_argument(AUTOLOGIN_FLAGS[Provider.AWS], dest="aws_autologin", action="store_true",
                       help="Enable automatic login to AWS ECR")
    login.add_argument(AUTOLOGIN_FLAGS[Provider.GCP], dest="gcp_autologin", action="store_true",
                       help="Enable automatic login to GCP GCR and Artifact Registry")
    login.add_argument(AUTOLOGIN_FLAGS[Provider.AZURE], dest="azure_autologin", action="store_true",
                       help="Enable automatic login to Azure ACR")
    login.add_argument("--timeout", type=float, help="Seconds before the login is abandoned (overrides config)")
    return parser


def run_classify(image: str) -> int:
    try:
        ref = parse_reference(image)
    except ImageParseError as e:
        logging.error(e.message)
        return EXIT_LOGIN_FAILED
    provider = image_registry_provider(image, ref)
    print(f"{provider.value}\t{PROVIDER_NAMES[provider]}\t{ref.registry}")
    return EXIT_OK


def run_login(args: argparse.Namespace, config: ConfigManager) -> int:
    opts = config.get_provider_options()
    # Command line flags can only turn providers on
    opts = replace(
        opts,
        aws_autologin=opts.aws_autologin or args.aws_autologin,
        gcp_autologin=opts.gcp_autologin or args.gcp_autologin,
        azure_autologin=opts.azure_autologin or args.azure_autologin,
    )
    timeout = args.timeout if args.timeout is not None else config.get_login_timeout()
    if timeout <= 0:
        logging.error(f"--timeout must be a positive number (seconds), got: {timeout}")
        return EXIT_CONFIG_ERROR

    manager = Manager(acr=AcrClient(scheme=config.get_azure_scheme(), credential_timeout=timeout))
    try:
        ref = parse_reference(args.image)
        provider = image_registry_provider(args.image, ref)
        authenticator = manager.login(args.image, ref, opts, LoginContext(timeout=timeout))
    except RegistryLoginError as e:
        retryable, _ = is_retryable_error(e)
        logging.error(e.format_message())
        logging.info(f"Retryable on next interval: {retryable}")
        return EXIT_LOGIN_FAILED
    except Exception as e:
        log_exception(logging.getLogger(__name__), "Unexpected error during registry login", e)
        return EXIT_LOGIN_FAILED

    if authenticator is None:
        print(f"{provider.value}\tno provider credentials needed")
        return EXIT_OK

    auth_config = authenticator.authorization()
    secret = auth_config.password or auth_config.registry_token or auth_config.identity_token
    print(f"{provider.value}\tusername={auth_config.username}\tpassword={redact(secret)}")
    return EXIT_OK


def _log_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Must precede ConfigManager, which logs validation warnings
    setup_logging(level=_log_level(args.log_level or os.environ.get("LOG_LEVEL") or "INFO"))

    try:
        config = ConfigManager(config_file=args.config)
    except ConfigValidationError:
        return EXIT_CONFIG_ERROR

    setup_logging(level=_log_level(args.log_level or config.get_log_level()))
    config.print_config()

    if args.command == "classify":
        return run_classify(args.image)
    return run_login(args, config)


if __name__ == "__main__":
    sys.exit(main())
