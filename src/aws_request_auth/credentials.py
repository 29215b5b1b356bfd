"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Credential resolution: explicit identity, then environment, then the
instance metadata service.
"""

from __future__ import annotations

import logging
import os
import socket
import threading
from collections.abc import Mapping
from enum import Enum

from ._identity import AWSCredentialIdentity
from .config import Configuration
from .imds import InstanceMetadataClient

logger = logging.getLogger(__name__)

ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_ACCESS_KEY = "AWS_ACCESS_KEY"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_SECRET_KEY = "AWS_SECRET_KEY"
ENV_SECURITY_TOKEN = "AWS_SECURITY_TOKEN"


class CredentialSource(Enum):
    NONE = "none"
    ENVIRONMENT = "environment"
    METADATA = "metadata"


def from_environment(environ: Mapping[str, str]) -> AWSCredentialIdentity:
    """Read credentials from the primary or legacy environment variables."""
    return AWSCredentialIdentity(
        access_key_id=environ.get(ENV_ACCESS_KEY_ID) or environ.get(ENV_ACCESS_KEY, ""),
        secret_access_key=(
            environ.get(ENV_SECRET_ACCESS_KEY) or environ.get(ENV_SECRET_KEY, "")
        ),
        session_token=environ.get(ENV_SECURITY_TOKEN) or None,
    )


class EC2Location:
    """Whether this process runs on EC2, probed once and then remembered."""

    def __init__(self, *, config: Configuration | None = None):
        self._config = config or Configuration()
        self._lock = threading.Lock()
        self._checked = False
        self._ec2 = False

    @property
    def checked(self) -> bool:
        return self._checked

    def is_ec2(self) -> bool:
        with self._lock:
            if not self._checked:
                self._ec2 = self._probe()
                self._checked = True
            return self._ec2

    def _probe(self) -> bool:
        address = (self._config.metadata_host, self._config.metadata_port)
        try:
            connection = socket.create_connection(
                address, timeout=self._config.probe_timeout
            )
        except OSError:
            logger.debug("Metadata service unreachable at %s:%s", *address)
            return False
        connection.close()
        logger.debug("Metadata service reachable at %s:%s", *address)
        return True


class CredentialResolver:
    """Resolve and cache the credentials used to sign requests.

    Environment credentials are read once and kept for the life of the
    resolver. Metadata credentials are refreshed once they expire, or once
    they come within ``config.expiry_window`` of expiring when a window is
    configured. Without an explicit ``config`` the standard metadata service
    overrides are read from ``environ``. When nothing can be resolved an
    empty, unusable identity is returned; check ``is_usable``.

    A single instance is meant to be shared by every caller in the process.
    """

    def __init__(
        self,
        *,
        config: Configuration | None = None,
        metadata_client: InstanceMetadataClient | None = None,
        location: EC2Location | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._environ = environ if environ is not None else os.environ
        self._config = config or Configuration.from_environment(self._environ)
        self._metadata_client = metadata_client or InstanceMetadataClient(
            config=self._config
        )
        self._location = location or EC2Location(config=self._config)
        self._lock = threading.Lock()
        self._credentials: AWSCredentialIdentity | None = None
        self._source = CredentialSource.NONE

    @property
    def source(self) -> CredentialSource:
        return self._source

    def resolve(
        self, identity: AWSCredentialIdentity | None = None
    ) -> AWSCredentialIdentity:
        """Return ``identity`` if given, otherwise the cached credentials."""
        if identity is not None:
            return identity
        with self._lock:
            if self._credentials is None:
                self._credentials, self._source = self._initial_credentials()
            elif self._needs_refresh():
                logger.debug("Refreshing instance role credentials")
                self._credentials = self._metadata_client.fetch_role_credentials()
            return self._credentials

    def invalidate(self) -> None:
        """Forget the cached credentials so the next resolve starts over."""
        with self._lock:
            self._credentials = None
            self._source = CredentialSource.NONE

    def _initial_credentials(
        self,
    ) -> tuple[AWSCredentialIdentity, CredentialSource]:
        credentials = from_environment(self._environ)
        if credentials.is_usable:
            logger.debug("Using credentials from environment variables")
            return credentials, CredentialSource.ENVIRONMENT
        if self._location.is_ec2():
            logger.debug("Using credentials from the instance metadata service")
            return (
                self._metadata_client.fetch_role_credentials(),
                CredentialSource.METADATA,
            )
        logger.debug("No credentials found in the environment or instance metadata")
        return AWSCredentialIdentity.empty(), CredentialSource.NONE

    def _needs_refresh(self) -> bool:
        if self._source is not CredentialSource.METADATA:
            return False
        assert self._credentials is not None
        return not self._credentials.is_usable or self._credentials.expires_within(
            self._config.expiry_window
        )
