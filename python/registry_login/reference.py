"""
Image reference parsing.

Two parsers live here. parse_reference() turns an image string into a
structured ImageReference following the Docker reference convention and
raises ImageParseError on invalid input. parse_ecr_image() only recognises
AWS ECR hosts and reports a non-match with a boolean instead of raising.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from registry_login.constants import DEFAULT_REGISTRY, DEFAULT_TAG
from registry_login.errors import ImageParseError

_ECR_IMAGE_RE = re.compile(r"^(\d+)\.dkr\.ecr\.([^/.]+)\.amazonaws\.com(\.cn)?(?:/|:|$)")

_TAG_RE = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[0-9a-fA-F]{32,}$")
_PATH_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_HOST_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9.-]*[a-zA-Z0-9])?(?::\d+)?$|^\[[0-9a-fA-F:]+\](?::\d+)?$")


@dataclass(frozen=True)
class ImageReference:
    """A parsed container image reference. Immutable once constructed."""

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def identifier(self) -> str:
        """Digest if present, else tag, else the implicit 'latest'"""
        return self.digest or self.tag or DEFAULT_TAG

    @property
    def name(self) -> str:
        return f"{self.registry}/{self.repository}"

    def __str__(self) -> str:
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag or DEFAULT_TAG}"


def _is_registry_component(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_reference(image: str) -> ImageReference:
    """Parse an image string into an ImageReference.

    Args:
        image: Image reference, e.g. 'myregistry.azurecr.io/team/app:v1',
            'busybox', 'ghcr.io/org/app@sha256:...'

    Returns:
        ImageReference with the registry defaulted to Docker Hub when absent

    Raises:
        ImageParseError: If the reference is malformed
    """
    if not image or image != image.strip():
        raise ImageParseError(image, "empty or padded reference")

    remainder = image
    digest = None
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ImageParseError(image, f"invalid digest '{digest}'")

    tag = None
    # A colon after the last slash separates the tag; earlier colons belong to a port
    last_slash = remainder.rfind("/")
    last_colon = remainder.rfind(":")
    if last_colon > last_slash:
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1:]
        if not _TAG_RE.match(tag):
            raise ImageParseError(image, f"invalid tag '{tag}'")

    parts = remainder.split("/")
    if len(parts) > 1 and _is_registry_component(parts[0]):
        registry, path = parts[0], parts[1:]
        if not _HOST_RE.match(registry):
            raise ImageParseError(image, f"invalid registry '{registry}'")
    else:
        registry, path = DEFAULT_REGISTRY, parts

    if registry == "docker.io":
        registry = DEFAULT_REGISTRY
    if registry == DEFAULT_REGISTRY and len(path) == 1:
        path = ["library"] + path

    for component in path:
        if not _PATH_COMPONENT_RE.match(component):
            raise ImageParseError(image, f"invalid repository component '{component}'")

    return ImageReference(registry=registry, repository="/".join(path), tag=tag, digest=digest)


def parse_ecr_image(image: str) -> Tuple[str, str, bool]:
    """Extract the AWS account ID and region from an ECR image.

    Returns:
        (account_id, region, True) if the image is hosted in AWS ECR,
        otherwise ("", "", False). Never raises.
    """
    match = _ECR_IMAGE_RE.match(image or "")
    if not match:
        return "", "", False
    return match.group(1), match.group(2), True
