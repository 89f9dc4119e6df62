"""
Registry login providers.

This package provides the credential exchange for each cloud registry type:
- AWS ECR (Elastic Container Registry)
- Azure ACR (Azure Container Registry)
- GCP GCR and Artifact Registry
"""

from registry_login.auth.aws import EcrClient
from registry_login.auth.azure import AcrClient
from registry_login.auth.exchanger import Exchanger
from registry_login.auth.gcp import GcrClient

__all__ = [
    "AcrClient",
    "EcrClient",
    "Exchanger",
    "GcrClient",
]
