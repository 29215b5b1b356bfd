"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Keyed-hash and digest helpers used to build request signatures.
"""

import hmac
from base64 import b64encode
from hashlib import md5, sha1, sha256


def _to_bytes(content: str | bytes) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return content


def hmac_sha256(key: bytes, content: str | bytes) -> bytes:
    return hmac.new(key=key, msg=_to_bytes(content), digestmod=sha256).digest()


def hmac_sha1(key: bytes, content: str | bytes) -> bytes:
    return hmac.new(key=key, msg=_to_bytes(content), digestmod=sha1).digest()


def sha256_hex(content: bytes) -> str:
    return sha256(content).hexdigest()


def md5_base64(content: bytes) -> str:
    """Base64 MD5 digest, as carried by the ``Content-MD5`` header."""
    return b64encode(md5(content).digest()).decode("ascii")


def derive_signing_key(secret_key: str, date: str, region: str, service: str) -> bytes:
    """Derive the SigV4 signing key.

    DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
    DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
    DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
    SigningKey           = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
    """
    k_date = hmac_sha256(f"AWS4{secret_key}".encode(), date[0:8])
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, "aws4_request")
