"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Canonical forms of request components: path, query string and body.
"""

import io
import logging
from collections.abc import Mapping, Sequence
from urllib.parse import parse_qsl, quote, unquote, urlencode

from ._http import AWSRequest

logger = logging.getLogger(__name__)

QueryParams = Mapping[str, str | Sequence[str]]


def normalize_path(path: str) -> str:
    """Percent-encode each segment of ``path`` independently.

    Letters, digits and ``-_.~`` are left as is, every other byte becomes an
    uppercase ``%XX``. Segments are decoded first so that an already
    normalized path comes back unchanged.
    """
    return "/".join(_encode_segment(segment) for segment in path.split("/"))


def _encode_segment(segment: str) -> str:
    return quote(unquote(segment), safe="")


def normalize_query(params: QueryParams) -> str:
    """Encode query parameters in canonical order.

    Form encoding turns a space into ``+`` and escapes a literal ``+`` as
    ``%2B``, so every remaining ``+`` was a space.
    """
    items = [
        (key, [value] if isinstance(value, str) else list(value))
        for key, value in sorted(params.items())
    ]
    return urlencode(items, doseq=True).replace("+", "%20")


def parse_query(query: str | None) -> dict[str, list[str]]:
    params: dict[str, list[str]] = {}
    if not query:
        return params
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, []).append(value)
    return params


def merge_query_into_request(request: AWSRequest, params: QueryParams) -> AWSRequest:
    """Combine ``params`` with the query already on the request URL.

    On a key collision the value from ``params`` wins. The merged, re-encoded
    query string is written back to ``request.destination``.
    """
    merged: dict[str, str | Sequence[str]] = dict(
        parse_query(request.destination.query)
    )
    merged.update(params)
    request.destination.query = normalize_query(merged)
    return request


def capture_body(request: AWSRequest) -> bytes:
    """Read the full request body and leave a replayable copy in its place.

    A missing, unreadable or malformed body counts as empty. Calling this
    repeatedly returns the same bytes each time.
    """
    body = request.body
    try:
        payload = _read_body(body)
    except (OSError, ValueError, TypeError):
        logger.debug("Unable to read request body, treating it as empty", exc_info=True)
        payload = b""
    request.body = io.BytesIO(payload)
    return payload


def _read_body(body) -> bytes:
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    if hasattr(body, "read"):
        data = body.read()
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data or b"")
    return b"".join(body)
