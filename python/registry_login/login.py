"""
Login manager for the supported registry providers.

The manager classifies an image to the provider that hosts it and hands the
login to that provider's client. Images on any other registry need no
provider credentials and yield no authenticator.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from registry_login.auth.aws import EcrClient
from registry_login.auth.azure import AcrClient
from registry_login.auth.azure import valid_host as acr_valid_host
from registry_login.auth.gcp import GcrClient
from registry_login.auth.gcp import valid_host as gcr_valid_host
from registry_login.authn import Authenticator
from registry_login.constants import PROVIDER_NAMES, Provider
from registry_login.context import LoginContext, ensure_context
from registry_login.reference import ImageReference, parse_ecr_image, parse_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderOptions:
    """Options for registry provider login"""

    # Enables automatic attempt to get credentials for images in ECR
    aws_autologin: bool = False
    # Enables automatic attempt to get credentials for images in GCR
    gcp_autologin: bool = False
    # Enables automatic attempt to get credentials for images in ACR
    azure_autologin: bool = False

    def enabled(self, provider: Provider) -> bool:
        return {
            Provider.AWS: self.aws_autologin,
            Provider.GCP: self.gcp_autologin,
            Provider.AZURE: self.azure_autologin,
        }.get(provider, False)


# Evaluated in order, first match wins
CLASSIFIERS: List[Tuple[Callable[[str, ImageReference], bool], Provider]] = [
    (lambda image, ref: parse_ecr_image(image)[2], Provider.AWS),
    (lambda image, ref: gcr_valid_host(ref.registry), Provider.GCP),
    (lambda image, ref: acr_valid_host(ref.registry), Provider.AZURE),
]


def image_registry_provider(image: str, ref: ImageReference) -> Provider:
    """Return the registry provider hosting the image"""
    for matches, provider in CLASSIFIERS:
        if matches(image, ref):
            return provider
    return Provider.GENERIC


class Manager:
    """Login manager for the registry providers"""

    def __init__(self, ecr: Optional[EcrClient] = None, gcr: Optional[GcrClient] = None,
                 acr: Optional[AcrClient] = None):
        """Initialize Manager, using default clients where none is given"""
        self.ecr = ecr or EcrClient()
        self.gcr = gcr or GcrClient()
        self.acr = acr or AcrClient()

    def login(self, image: str, ref: Optional[ImageReference] = None,
              opts: ProviderOptions = ProviderOptions(),
              ctx: Optional[LoginContext] = None) -> Optional[Authenticator]:
        """Authenticate against the image's registry provider.

        Args:
            image: Image reference as written by the user
            ref: Parsed form of ``image`` (parsed here when omitted)
            opts: Which providers may be logged into
            ctx: Login context bounding the network calls

        Returns:
            Authenticator for the registry, or None for a generic registry,
            meaning the registry should be accessed without provider credentials

        Raises:
            RegistryLoginError: Whatever the provider's client raised
        """
        if ref is None:
            ref = parse_reference(image)
        provider = image_registry_provider(image, ref)
        if provider is Provider.GENERIC:
            logger.debug(f"{image} is on a {PROVIDER_NAMES[provider]}, no provider login needed")
            return None

        ctx = ensure_context(ctx)
        auto_login = opts.enabled(provider)
        if provider is Provider.AWS:
            return self.ecr.login(auto_login, image, ctx)
        if provider is Provider.GCP:
            return self.gcr.login(auto_login, image, ref, ctx)
        return self.acr.login(auto_login, image, ref, ctx)
