"""Credential acquisition for the remote clients.

Workload identities are preferred: a managed identity on Azure, the default
boto3 credential chain (instance profile, IRSA, SSO) on AWS. Long-lived
secrets in the environment still work through the SDK chains but are
reported at startup so they can be removed.
"""

from __future__ import annotations

import logging
import os

import boto3
from azure.core.credentials import TokenCredential
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Environment variables that carry long-lived secrets
STATIC_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AWS_SECRET_ACCESS_KEY",
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_PASSWORD",
)


def detect_static_credentials() -> list[str]:
    """Return the names of static-secret variables present in the environment."""
    found = [name for name in STATIC_CREDENTIAL_ENV_VARS if os.environ.get(name)]
    for name in found:
        logger.warning(
            "Static credential found in environment",
            extra={"security_event": "static_credential_detected", "env_var": name},
        )
    return found


def get_azure_credential(client_id: str | None = None) -> TokenCredential:
    """Get an Azure credential, preferring managed identity.

    Args:
        client_id: Client ID of a user-assigned managed identity. Falls back
            to AZURE_MANAGED_IDENTITY_CLIENT_ID.

    Returns:
        ManagedIdentityCredential when a client id is known, otherwise
        DefaultAzureCredential (which still tries managed identity).
    """
    client_id = client_id or os.environ.get("AZURE_MANAGED_IDENTITY_CLIENT_ID")
    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using default Azure credential chain")
    return DefaultAzureCredential()


def get_aws_session(region: str | None = None, profile: str | None = None) -> boto3.session.Session:
    """Create a boto3 session using the default credential chain."""
    profile = profile or os.environ.get("AWS_PROFILE") or None
    session = boto3.session.Session(region_name=region, profile_name=profile)
    logger.info(
        "Using AWS credential chain",
        extra={"region": session.region_name, "profile": profile},
    )
    return session
