"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlsplit

from .exceptions import InvalidConfigurationError

METADATA_BASE_URL = "http://169.254.169.254"
DEFAULT_METADATA_SERVICE_TIMEOUT = 1.0
DEFAULT_PROBE_TIMEOUT = 0.1
# Zero refreshes metadata credentials only once they have expired.
DEFAULT_EXPIRY_WINDOW = timedelta(0)


@dataclass(frozen=True, kw_only=True)
class Configuration:
    metadata_endpoint: str = METADATA_BASE_URL
    metadata_timeout: float = DEFAULT_METADATA_SERVICE_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    expiry_window: timedelta = DEFAULT_EXPIRY_WINDOW
    metadata_disabled: bool = False

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None
    ) -> Configuration:
        """Build a configuration, honouring the standard AWS overrides.

        ``AWS_EC2_METADATA_SERVICE_ENDPOINT``, ``AWS_METADATA_SERVICE_TIMEOUT``
        and ``AWS_EC2_METADATA_DISABLED`` are read when set.
        """
        if environ is None:
            environ = os.environ
        endpoint = environ.get("AWS_EC2_METADATA_SERVICE_ENDPOINT") or METADATA_BASE_URL
        if not urlsplit(endpoint).hostname:
            raise InvalidConfigurationError(
                f"Invalid metadata service endpoint: {endpoint!r}"
            )
        timeout = DEFAULT_METADATA_SERVICE_TIMEOUT
        raw_timeout = environ.get("AWS_METADATA_SERVICE_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise InvalidConfigurationError(
                    "AWS_METADATA_SERVICE_TIMEOUT must be a number of seconds, "
                    f"got {raw_timeout!r}"
                ) from None
        disabled = environ.get("AWS_EC2_METADATA_DISABLED", "false").lower() == "true"
        return cls(
            metadata_endpoint=endpoint.rstrip("/"),
            metadata_timeout=timeout,
            metadata_disabled=disabled,
        )

    @property
    def metadata_host(self) -> str:
        return urlsplit(self.metadata_endpoint).hostname or ""

    @property
    def metadata_port(self) -> int:
        return urlsplit(self.metadata_endpoint).port or 80
