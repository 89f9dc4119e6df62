"""
Shared constants for registry provider login.
"""

from enum import Enum


class Provider(Enum):
    """Container registry providers the login manager knows how to handle"""

    GENERIC = "generic"
    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"


# ACR basic-auth exchange uses a placeholder GUID as the username
# See: https://learn.microsoft.com/en-us/azure/container-registry/container-registry-authentication#az-acr-login-with---expose-token
ACR_USERNAME = "00000000-0000-0000-0000-000000000000"

# GCR and Artifact Registry accept an OAuth2 access token with this username
GCR_USERNAME = "oauth2accesstoken"

# List from https://github.com/kubernetes/kubernetes/blob/v1.23.1/pkg/credentialprovider/azure/azure_credentials.go#L55
ACR_HOST_SUFFIXES = (".azurecr.io", ".azurecr.cn", ".azurecr.de", ".azurecr.us")

GCR_HOST = "gcr.io"
GCR_HOST_SUFFIXES = (".gcr.io", "-docker.pkg.dev")

ARM_SCOPE = "https://management.azure.com/.default"
GCP_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"
DEFAULT_TIMEOUT = 30.0

# Controller flags that enable each provider's login
AUTOLOGIN_FLAGS = {
    Provider.AWS: "--aws-autologin-for-ecr",
    Provider.GCP: "--gcp-autologin-for-gcr",
    Provider.AZURE: "--azure-autologin-for-acr",
}

PROVIDER_NAMES = {
    Provider.GENERIC: "generic registry",
    Provider.AWS: "AWS ECR",
    Provider.GCP: "GCP GCR",
    Provider.AZURE: "Azure ACR",
}
