"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import json

import pytest
import requests

from aws_request_auth.config import Configuration

ROLES_URL = "http://169.254.169.254/latest/meta-data/iam/security-credentials/"


class StubResponse:
    def __init__(self, text: str = "", status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        return json.loads(self.text)


class StubSession:
    """Stands in for ``requests.Session``, answering GETs from a route table."""

    def __init__(self, routes: dict[str, StubResponse | Exception]):
        self.routes = routes
        self.calls: list[tuple[str, float | None]] = []

    def get(self, url: str, timeout: float | None = None) -> StubResponse:
        self.calls.append((url, timeout))
        route = self.routes.get(url, StubResponse(status_code=404))
        if isinstance(route, Exception):
            raise route
        return route

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


class StubLocation:
    def __init__(self, ec2: bool):
        self.ec2 = ec2
        self.calls = 0

    def is_ec2(self) -> bool:
        self.calls += 1
        return self.ec2


def credentials_document(
    access_key_id: str = "ASIAROLE",
    expiration: str = "2099-01-01T00:00:00Z",
) -> str:
    return json.dumps(
        {
            "Code": "Success",
            "LastUpdated": "2024-01-01T00:00:00Z",
            "Type": "AWS-HMAC",
            "AccessKeyId": access_key_id,
            "SecretAccessKey": "role-secret",
            "Token": "role-token",
            "Expiration": expiration,
        }
    )


@pytest.fixture
def config() -> Configuration:
    return Configuration()
