"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

AWS Request Auth resolves AWS credentials and provides the canonicalization
and hashing primitives needed to sign requests made with HTTP tools such as
Requests, urllib3 or Curl, without a full SDK.
"""

from __future__ import annotations

from ._http import URI, AWSRequest, Field, Fields
from ._identity import AWSCredentialIdentity
from ._version import __version__
from .canonical import (
    capture_body,
    merge_query_into_request,
    normalize_path,
    normalize_query,
)
from .config import Configuration
from .credentials import CredentialResolver, CredentialSource, EC2Location
from .endpoints import service_and_region
from .hashing import hmac_sha1, hmac_sha256, md5_base64, sha256_hex
from .imds import InstanceMetadataClient
from .signers import SigV4Signer, SigV4SigningProperties

__license__ = "Apache-2.0"
__version__ = __version__

__all__ = (
    "AWSCredentialIdentity",
    "AWSRequest",
    "Configuration",
    "CredentialResolver",
    "CredentialSource",
    "EC2Location",
    "Field",
    "Fields",
    "InstanceMetadataClient",
    "SigV4Signer",
    "SigV4SigningProperties",
    "URI",
    "capture_body",
    "hmac_sha1",
    "hmac_sha256",
    "md5_base64",
    "merge_query_into_request",
    "normalize_path",
    "normalize_query",
    "service_and_region",
    "sha256_hex",
)
