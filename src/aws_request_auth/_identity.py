"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from .interfaces.identity import AWSCredentialsIdentity

METADATA_EXPIRATION_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True, kw_only=True)
class AWSCredentialIdentity(AWSCredentialsIdentity):
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    expiration: datetime | None = None

    @classmethod
    def empty(cls) -> AWSCredentialIdentity:
        """The zero-value identity returned when nothing could be resolved."""
        return cls(access_key_id="", secret_access_key="")

    @classmethod
    def from_metadata(cls, document: Mapping[str, Any]) -> AWSCredentialIdentity:
        """Build an identity from an instance metadata credentials document.

        The document carries ``AccessKeyId``, ``SecretAccessKey``, ``Token``
        and ``Expiration``. Absent keys produce an unusable identity rather
        than an error.

        :raises ValueError: If ``Expiration`` is present but not a timestamp.
        """
        return cls(
            access_key_id=document.get("AccessKeyId") or "",
            secret_access_key=document.get("SecretAccessKey") or "",
            session_token=document.get("Token") or None,
            expiration=_parse_expiration(document.get("Expiration")),
        )

    @property
    def is_usable(self) -> bool:
        """Whether both halves of the key pair are present."""
        return bool(self.access_key_id) and bool(self.secret_access_key)

    @property
    def is_expired(self) -> bool:
        """Whether the identity is expired."""
        if self.expiration is None:
            return False
        return self.expiration < datetime.now(UTC)

    def expires_within(self, window: timedelta) -> bool:
        if self.expiration is None:
            return False
        return self.expiration - window < datetime.now(UTC)

    def __repr__(self) -> str:
        # Keep the secret and token out of logs and tracebacks.
        return (
            f"AWSCredentialIdentity(access_key_id={self.access_key_id!r}, "
            f"expiration={self.expiration!r})"
        )


def _parse_expiration(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, METADATA_EXPIRATION_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
