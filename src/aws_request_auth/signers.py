"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import datetime
import io
import logging
import warnings
from copy import deepcopy
from typing import Required, TypedDict

from ._http import AWSRequest, Field
from ._identity import AWSCredentialIdentity
from .canonical import (
    capture_body,
    merge_query_into_request,
    normalize_path,
    normalize_query,
    parse_query,
)
from .credentials import CredentialResolver
from .endpoints import service_and_region
from .exceptions import AWSSDKWarning, MissingExpectedParameterException
from .hashing import derive_signing_key, hmac_sha256, sha256_hex

logger = logging.getLogger(__name__)

HEADERS_EXCLUDED_FROM_SIGNING: tuple[str, ...] = (
    "authorization",
    "expect",
    "user-agent",
    "x-amz-content-sha256",
    "x-amzn-trace-id",
)

SIGV4_ALGORITHM: str = "AWS4-HMAC-SHA256"
SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
UNSIGNED_PAYLOAD: str = "UNSIGNED-PAYLOAD"
DEFAULT_PRESIGN_EXPIRES: int = 3600
LARGE_PAYLOAD_WARNING_SIZE: int = 5 * 1024 * 1024


class SigV4SigningProperties(TypedDict, total=False):
    region: Required[str]
    service: Required[str]
    date: str
    expires: int
    payload_signing_enabled: bool


class SigV4Signer:
    """
    Request signer for applying the AWS Signature Version 4 algorithm.

    Credentials not passed to ``sign`` or ``presign`` are taken from the
    resolver, which defaults to the environment / instance metadata chain.
    """

    def __init__(self, *, resolver: CredentialResolver | None = None):
        self._resolver = resolver or CredentialResolver()

    def sign(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialIdentity | None = None,
        signing_properties: SigV4SigningProperties | None = None,
    ) -> AWSRequest:
        """Return a copy of ``request`` carrying an ``Authorization`` field."""
        identity = self._resolve_identity(identity=identity)
        new_signing_properties = self._normalize_signing_properties(
            signing_properties=signing_properties, request=request
        )
        date = new_signing_properties["date"]

        # Hashing consumes the body, so capture it on the caller's request
        # to keep that one sendable too.
        payload_hash = self._payload_hash(
            request=request, signing_properties=new_signing_properties
        )
        new_request = self._generate_new_request(request=request)
        new_request.fields.set_field(Field(name="X-Amz-Date", values=[date]))
        new_request.fields.set_field(
            Field(name="X-Amz-Content-SHA256", values=[payload_hash])
        )
        if identity.session_token:
            new_request.fields.set_field(
                Field(name="X-Amz-Security-Token", values=[identity.session_token])
            )

        signing_fields = self._normalize_signing_fields(request=new_request)
        canonical_request = self.canonical_request(
            request=new_request,
            signing_fields=signing_fields,
            payload_hash=payload_hash,
        )
        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request,
            signing_properties=new_signing_properties,
        )
        signature = self._signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            signing_properties=new_signing_properties,
        )

        credential_scope = self._scope(signing_properties=new_signing_properties)
        credential = f"{identity.access_key_id}/{credential_scope}"
        authorization = self.generate_authorization_field(
            credential=credential,
            signed_headers=list(signing_fields.keys()),
            signature=signature,
        )
        new_request.fields.set_field(authorization)

        return new_request

    def presign(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialIdentity | None = None,
        signing_properties: SigV4SigningProperties | None = None,
    ) -> AWSRequest:
        """Return a copy of ``request`` with the signature in its query string."""
        identity = self._resolve_identity(identity=identity)
        new_request = self._generate_new_request(request=request)
        new_signing_properties = self._normalize_signing_properties(
            signing_properties=signing_properties, request=new_request
        )

        signing_fields = self._normalize_signing_fields(request=new_request)
        credential_scope = self._scope(signing_properties=new_signing_properties)
        auth_params = {
            "X-Amz-Algorithm": SIGV4_ALGORITHM,
            "X-Amz-Credential": f"{identity.access_key_id}/{credential_scope}",
            "X-Amz-Date": new_signing_properties["date"],
            "X-Amz-Expires": str(
                new_signing_properties.get("expires", DEFAULT_PRESIGN_EXPIRES)
            ),
            "X-Amz-SignedHeaders": ";".join(signing_fields),
        }
        if identity.session_token:
            auth_params["X-Amz-Security-Token"] = identity.session_token
        merge_query_into_request(new_request, auth_params)

        canonical_request = self.canonical_request(
            request=new_request,
            signing_fields=signing_fields,
            payload_hash=UNSIGNED_PAYLOAD,
        )
        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request,
            signing_properties=new_signing_properties,
        )
        signature = self._signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            signing_properties=new_signing_properties,
        )
        return merge_query_into_request(new_request, {"X-Amz-Signature": signature})

    def generate_authorization_field(
        self, *, credential: str, signed_headers: list[str], signature: str
    ) -> Field:
        """Generate the `Authorization` field"""
        signed_headers_str = ";".join(signed_headers)
        auth_str = (
            f"{SIGV4_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers_str}, Signature={signature}"
        )
        return Field(name="Authorization", values=[auth_str])

    def _signature(
        self,
        *,
        string_to_sign: str,
        secret_key: str,
        signing_properties: SigV4SigningProperties,
    ) -> str:
        """Sign the string to sign with a key scoped to the date, region and
        service of the request.
        """
        signing_key = derive_signing_key(
            secret_key,
            signing_properties["date"],
            signing_properties["region"],
            signing_properties["service"],
        )
        return hmac_sha256(signing_key, string_to_sign).hex()

    def _resolve_identity(
        self, *, identity: AWSCredentialIdentity | None
    ) -> AWSCredentialIdentity:
        identity = self._resolver.resolve(identity)
        self._validate_identity(identity=identity)
        return identity

    def _validate_identity(self, *, identity: AWSCredentialIdentity) -> None:
        """Perform runtime and expiration checks before attempting signing."""
        if not isinstance(identity, AWSCredentialIdentity):
            raise ValueError(
                "Received unexpected value for identity parameter. Expected "
                f"AWSCredentialIdentity but received {type(identity)}."
            )
        elif not identity.is_usable:
            # The service will reject the request; that is the caller's signal.
            logger.warning("Signing request without usable AWS credentials")
        elif identity.is_expired:
            logger.warning(
                "Signing request with credentials that expired at %s",
                identity.expiration,
            )

    def _normalize_signing_properties(
        self,
        *,
        signing_properties: SigV4SigningProperties | None,
        request: AWSRequest,
    ) -> SigV4SigningProperties:
        # Create copy of signing properties to avoid mutating the original
        properties = dict(signing_properties or {})
        if "region" not in properties or "service" not in properties:
            host = request.destination.host
            if not host:
                raise MissingExpectedParameterException(
                    "Signing requires a region and service, and the request has "
                    "no host to infer them from."
                )
            service, region = service_and_region(host)
            properties.setdefault("service", service)
            properties.setdefault("region", region)
        new_signing_properties = SigV4SigningProperties(**properties)
        new_signing_properties["date"] = self._resolve_signing_date(
            date=new_signing_properties.get("date")
        )
        return new_signing_properties

    def _generate_new_request(self, *, request: AWSRequest) -> AWSRequest:
        body = request.body
        if isinstance(body, io.BytesIO):
            # A captured body is copied so either request can be sent.
            copied = io.BytesIO(body.getvalue())
            copied.seek(body.tell())
            body = copied
        return AWSRequest(
            destination=deepcopy(request.destination),
            method=request.method,
            body=body,
            fields=deepcopy(request.fields),
        )

    def _resolve_signing_date(self, *, date: str | None) -> str:
        if date is None:
            date_obj = datetime.datetime.now(datetime.timezone.utc)
            date = date_obj.strftime(SIGV4_TIMESTAMP_FORMAT)
        return date

    def canonical_request(
        self,
        *,
        request: AWSRequest,
        signing_fields: dict[str, str],
        payload_hash: str,
    ) -> str:
        canonical_path = self._format_canonical_path(path=request.destination.path)
        canonical_query = normalize_query(parse_query(request.destination.query))
        canonical_fields = self._format_canonical_fields(fields=signing_fields)
        return (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_fields}\n"
            f"{';'.join(signing_fields)}\n"
            f"{payload_hash}"
        )

    def string_to_sign(
        self,
        *,
        canonical_request: str,
        signing_properties: SigV4SigningProperties,
    ) -> str:
        date = signing_properties.get("date")
        if date is None:
            raise MissingExpectedParameterException(
                "Cannot generate string_to_sign without a valid date "
                f"in your signing_properties. Current value: {date}"
            )
        return (
            f"{SIGV4_ALGORITHM}\n"
            f"{date}\n"
            f"{self._scope(signing_properties=signing_properties)}\n"
            f"{sha256_hex(canonical_request.encode())}"
        )

    def _scope(self, signing_properties: SigV4SigningProperties) -> str:
        formatted_date = signing_properties["date"][0:8]
        region = signing_properties["region"]
        service = signing_properties["service"]
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        return f"{formatted_date}/{region}/{service}/aws4_request"

    def _format_canonical_path(self, *, path: str | None) -> str:
        if not path:
            return "/"
        return normalize_path(path)

    def _normalize_signing_fields(self, *, request: AWSRequest) -> dict[str, str]:
        normalized_fields = {
            field.name.lower(): field.as_string(delimiter=",")
            for field in request.fields
            if field.name.lower() not in HEADERS_EXCLUDED_FROM_SIGNING
        }
        if "host" not in normalized_fields:
            normalized_fields["host"] = request.destination.netloc

        return dict(sorted(normalized_fields.items()))

    def _format_canonical_fields(self, *, fields: dict[str, str]) -> str:
        return "".join(
            f"{key}:{' '.join(value.split())}\n" for key, value in fields.items()
        )

    def _payload_hash(
        self, *, request: AWSRequest, signing_properties: SigV4SigningProperties
    ) -> str:
        # Insecure connections always sign the payload.
        if request.destination.scheme == "https" and not signing_properties.get(
            "payload_signing_enabled", True
        ):
            return UNSIGNED_PAYLOAD
        payload = capture_body(request)
        if len(payload) > LARGE_PAYLOAD_WARNING_SIZE:
            warnings.warn(
                "Payload signing is enabled. This may result in "
                "decreased performance for large request bodies.",
                AWSSDKWarning,
            )
        return sha256_hex(payload)
