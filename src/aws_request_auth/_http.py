"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Minimal HTTP request model handed to the canonicalizers and the signer.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import BinaryIO
from urllib.parse import urlsplit, urlunsplit

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

Body = bytes | bytearray | BinaryIO | Iterable[bytes] | None


@dataclass(kw_only=True)
class URI:
    host: str
    scheme: str = "https"
    port: int | None = None
    path: str | None = None
    query: str | None = None
    fragment: str | None = None

    @classmethod
    def from_url(cls, url: str) -> URI:
        parts = urlsplit(url)
        return cls(
            scheme=parts.scheme or "https",
            host=parts.hostname or "",
            port=parts.port,
            path=parts.path or None,
            query=parts.query or None,
            fragment=parts.fragment or None,
        )

    @property
    def netloc(self) -> str:
        """The host, with the port appended unless it is the scheme default."""
        if self.port is None or DEFAULT_PORTS.get(self.scheme) == self.port:
            return self.host
        return f"{self.host}:{self.port}"

    def build(self) -> str:
        return urlunsplit(
            (
                self.scheme,
                self.netloc,
                self.path or "",
                self.query or "",
                self.fragment or "",
            )
        )


@dataclass
class Field:
    name: str
    values: list[str] = field(default_factory=list)

    def as_string(self, delimiter: str = ", ") -> str:
        return delimiter.join(self.values)


class Fields:
    """Header fields keyed case-insensitively by name."""

    def __init__(self, initial: Iterable[Field] | dict[str, str] | None = None):
        self._fields: dict[str, Field] = {}
        if isinstance(initial, dict):
            initial = [Field(name=k, values=[v]) for k, v in initial.items()]
        for item in initial or ():
            self.set_field(item)

    def set_field(self, field: Field) -> None:
        """Add a field, replacing any existing field of the same name."""
        self._fields[field.name.lower()] = field

    def get(self, name: str) -> Field | None:
        return self._fields.get(name.lower())

    def __getitem__(self, name: str) -> Field:
        return self._fields[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._fields

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Fields({list(self._fields.values())!r})"


@dataclass(kw_only=True)
class AWSRequest:
    destination: URI
    method: str = "GET"
    body: Body = None
    fields: Fields = field(default_factory=Fields)
