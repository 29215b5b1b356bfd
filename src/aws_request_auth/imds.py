"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Client for the EC2 instance metadata service.
"""

import logging

import requests

from ._identity import AWSCredentialIdentity
from .config import Configuration

logger = logging.getLogger(__name__)

ROLE_CREDENTIALS_PATH = "/latest/meta-data/iam/security-credentials/"


class InstanceMetadataClient:
    """Fetch instance role credentials from the metadata service.

    Failures never propagate: a missing role list is an empty list and
    missing credentials are an empty identity.
    """

    def __init__(
        self,
        *,
        config: Configuration | None = None,
        session: requests.Session | None = None,
    ):
        self._config = config or Configuration()
        self._session = session or requests.Session()

    @property
    def role_credentials_url(self) -> str:
        return f"{self._config.metadata_endpoint.rstrip('/')}{ROLE_CREDENTIALS_PATH}"

    def list_roles(self) -> list[str]:
        """The instance roles, in the order the service lists them."""
        if self._config.metadata_disabled:
            logger.debug("Metadata service is disabled, no roles listed")
            return []
        try:
            response = self._get(self.role_credentials_url)
        except requests.RequestException:
            logger.debug("Unable to list instance roles", exc_info=True)
            return []
        return [line.strip() for line in response.text.splitlines() if line.strip()]

    def fetch_role_credentials(self) -> AWSCredentialIdentity:
        """Credentials for the first listed role.

        Only the first role is used when several are attached.
        """
        roles = self.list_roles()
        if not roles:
            return AWSCredentialIdentity.empty()
        role = roles[0]
        try:
            response = self._get(self.role_credentials_url + role)
            document = response.json()
            if not isinstance(document, dict):
                raise ValueError(f"Expected a JSON object, got {type(document)}")
            credentials = AWSCredentialIdentity.from_metadata(document)
        except (requests.RequestException, ValueError, TypeError):
            logger.debug("Unable to fetch credentials for role %s", role, exc_info=True)
            return AWSCredentialIdentity.empty()
        logger.debug(
            "Fetched credentials for role %s expiring at %s",
            role,
            credentials.expiration,
        )
        return credentials

    def _get(self, url: str) -> requests.Response:
        response = self._session.get(url, timeout=self._config.metadata_timeout)
        response.raise_for_status()
        return response
