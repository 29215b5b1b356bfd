"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class AWSCredentialsIdentity(Protocol):
    """A set of AWS credentials as handed out by a credential resolver.

    A set missing either half of the key pair is unusable; callers treat it
    as "no credentials" rather than as an error. A set without an expiration
    never expires.
    """

    access_key_id: str
    secret_access_key: str
    session_token: str | None
    expiration: datetime | None
    """UTC time after which the service rejects these credentials."""

    @property
    def is_usable(self) -> bool: ...

    @property
    def is_expired(self) -> bool: ...

    def expires_within(self, window: timedelta) -> bool: ...
