"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import threading
from datetime import UTC, datetime, timedelta

import pytest

from aws_request_auth import AWSCredentialIdentity
from aws_request_auth.config import Configuration
from aws_request_auth.credentials import (
    CredentialResolver,
    CredentialSource,
    EC2Location,
    from_environment,
)
from aws_request_auth.imds import InstanceMetadataClient

from conftest import (
    ROLES_URL,
    StubLocation,
    StubResponse,
    StubSession,
    credentials_document,
)

ENV_CREDENTIALS = {
    "AWS_ACCESS_KEY": "AKIDLEGACY",
    "AWS_SECRET_ACCESS_KEY": "env-secret",
    "AWS_SECURITY_TOKEN": "env-token",
}


class CountingMetadataClient:
    def __init__(self, *results: AWSCredentialIdentity):
        self.results = list(results)
        self.fetch_calls = 0

    def fetch_role_credentials(self) -> AWSCredentialIdentity:
        self.fetch_calls += 1
        return self.results.pop(0)


def _role_identity(expiration: datetime | None, key: str = "ASIAROLE"):
    return AWSCredentialIdentity(
        access_key_id=key,
        secret_access_key="role-secret",
        session_token="role-token",
        expiration=expiration,
    )


class TestFromEnvironment:
    def test_primary_names(self):
        identity = from_environment(
            {"AWS_ACCESS_KEY_ID": "AKID", "AWS_SECRET_ACCESS_KEY": "secret"}
        )
        assert identity.access_key_id == "AKID"
        assert identity.secret_access_key == "secret"
        assert identity.session_token is None

    def test_primary_wins_over_legacy(self):
        identity = from_environment(
            {
                "AWS_ACCESS_KEY_ID": "AKID",
                "AWS_ACCESS_KEY": "AKIDLEGACY",
                "AWS_SECRET_ACCESS_KEY": "",
                "AWS_SECRET_KEY": "legacy-secret",
            }
        )
        assert identity.access_key_id == "AKID"
        assert identity.secret_access_key == "legacy-secret"

    def test_empty_environment(self):
        assert not from_environment({}).is_usable


class TestCredentialResolver:
    def test_explicit_identity_returned_unchanged(self):
        metadata = CountingMetadataClient()
        location = StubLocation(ec2=True)
        resolver = CredentialResolver(
            metadata_client=metadata, location=location, environ={}
        )
        explicit = _role_identity(datetime.now(UTC) - timedelta(hours=1))
        assert resolver.resolve(explicit) is explicit
        assert metadata.fetch_calls == 0
        assert location.calls == 0

    def test_environment_credentials_cached_without_network(self):
        session = StubSession({})
        location = StubLocation(ec2=False)
        resolver = CredentialResolver(
            metadata_client=InstanceMetadataClient(session=session),
            location=location,
            environ=dict(ENV_CREDENTIALS),
        )
        first = resolver.resolve()
        second = resolver.resolve()
        assert first.is_usable
        assert first.access_key_id == "AKIDLEGACY"
        assert first.secret_access_key == "env-secret"
        assert first.session_token == "env-token"
        assert second is first
        assert resolver.source is CredentialSource.ENVIRONMENT
        assert session.calls == []
        assert location.calls == 0

    def test_environment_read_once(self):
        environ = dict(ENV_CREDENTIALS)
        resolver = CredentialResolver(
            metadata_client=CountingMetadataClient(),
            location=StubLocation(ec2=True),
            environ=environ,
        )
        first = resolver.resolve()
        environ["AWS_SECRET_ACCESS_KEY"] = "rotated"
        assert resolver.resolve() is first

    def test_metadata_credentials_on_ec2(self):
        session = StubSession(
            {
                ROLES_URL: StubResponse("web-role"),
                ROLES_URL + "web-role": StubResponse(credentials_document()),
            }
        )
        resolver = CredentialResolver(
            metadata_client=InstanceMetadataClient(session=session),
            location=StubLocation(ec2=True),
            environ={},
        )
        identity = resolver.resolve()
        assert identity.access_key_id == "ASIAROLE"
        assert session.urls() == [ROLES_URL, ROLES_URL + "web-role"]
        assert resolver.source is CredentialSource.METADATA

        assert resolver.resolve() is identity
        assert len(session.calls) == 2

    def test_empty_role_list(self):
        session = StubSession({ROLES_URL: StubResponse("")})
        resolver = CredentialResolver(
            metadata_client=InstanceMetadataClient(session=session),
            location=StubLocation(ec2=True),
            environ={},
        )
        identity = resolver.resolve()
        assert identity == AWSCredentialIdentity.empty()
        assert session.urls() == [ROLES_URL]

    def test_nothing_resolvable_off_cloud(self):
        metadata = CountingMetadataClient()
        location = StubLocation(ec2=False)
        resolver = CredentialResolver(
            metadata_client=metadata, location=location, environ={}
        )
        assert not resolver.resolve().is_usable
        assert not resolver.resolve().is_usable
        assert resolver.source is CredentialSource.NONE
        assert metadata.fetch_calls == 0
        assert location.calls == 1

    def test_expired_metadata_credentials_refreshed_once(self):
        stale = _role_identity(datetime.now(UTC) - timedelta(minutes=1), "ASIAOLD")
        fresh = _role_identity(datetime.now(UTC) + timedelta(hours=6), "ASIANEW")
        metadata = CountingMetadataClient(stale, fresh)
        resolver = CredentialResolver(
            metadata_client=metadata, location=StubLocation(ec2=True), environ={}
        )
        assert resolver.resolve() is stale
        assert metadata.fetch_calls == 1

        assert resolver.resolve() is fresh
        assert metadata.fetch_calls == 2

        assert resolver.resolve() is fresh
        assert metadata.fetch_calls == 2

    def test_unexpired_metadata_credentials_not_refetched(self):
        expiring = _role_identity(datetime.now(UTC) + timedelta(minutes=3))
        metadata = CountingMetadataClient(expiring)
        resolver = CredentialResolver(
            metadata_client=metadata, location=StubLocation(ec2=True), environ={}
        )
        assert resolver.resolve() is expiring
        assert resolver.resolve() is expiring
        assert metadata.fetch_calls == 1

    def test_configured_expiry_window_refreshes_early(self):
        expiring = _role_identity(datetime.now(UTC) + timedelta(minutes=3))
        fresh = _role_identity(datetime.now(UTC) + timedelta(hours=6))
        metadata = CountingMetadataClient(expiring, fresh)
        resolver = CredentialResolver(
            config=Configuration(expiry_window=timedelta(minutes=4)),
            metadata_client=metadata,
            location=StubLocation(ec2=True),
            environ={},
        )
        resolver.resolve()
        assert resolver.resolve() is fresh
        assert metadata.fetch_calls == 2

    def test_default_config_read_from_environ(self):
        location = StubLocation(ec2=True)
        resolver = CredentialResolver(
            location=location, environ={"AWS_EC2_METADATA_DISABLED": "true"}
        )
        # Disabled metadata never reaches the network.
        assert not resolver.resolve().is_usable
        assert resolver.source is CredentialSource.METADATA
        assert location.calls == 1

    def test_unusable_metadata_credentials_refetched(self):
        fresh = _role_identity(datetime.now(UTC) + timedelta(hours=6))
        metadata = CountingMetadataClient(AWSCredentialIdentity.empty(), fresh)
        resolver = CredentialResolver(
            metadata_client=metadata, location=StubLocation(ec2=True), environ={}
        )
        assert not resolver.resolve().is_usable
        assert resolver.resolve() is fresh

    def test_invalidate_rereads_environment(self):
        environ: dict[str, str] = {}
        resolver = CredentialResolver(
            metadata_client=CountingMetadataClient(),
            location=StubLocation(ec2=False),
            environ=environ,
        )
        assert not resolver.resolve().is_usable
        environ.update(ENV_CREDENTIALS)
        resolver.invalidate()
        assert resolver.resolve().access_key_id == "AKIDLEGACY"

    def test_concurrent_refresh_fetches_once(self):
        stale = _role_identity(datetime.now(UTC) - timedelta(minutes=1))
        fresh = _role_identity(datetime.now(UTC) + timedelta(hours=6))
        metadata = CountingMetadataClient(stale, fresh)
        resolver = CredentialResolver(
            metadata_client=metadata, location=StubLocation(ec2=True), environ={}
        )
        resolver.resolve()

        results: list[AWSCredentialIdentity] = []
        threads = [
            threading.Thread(target=lambda: results.append(resolver.resolve()))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert metadata.fetch_calls == 2
        assert all(result is fresh for result in results)


class FakeConnection:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class TestEC2Location:
    def test_probe_success_is_memoized(self, monkeypatch: pytest.MonkeyPatch):
        attempts = []
        connection = FakeConnection()

        def create_connection(address, timeout):
            attempts.append((address, timeout))
            return connection

        monkeypatch.setattr(
            "aws_request_auth.credentials.socket.create_connection", create_connection
        )
        location = EC2Location()
        assert not location.checked
        assert location.is_ec2()
        assert location.is_ec2()
        assert location.checked
        assert connection.closed
        assert attempts == [(("169.254.169.254", 80), 0.1)]

    def test_probe_failure_is_memoized(self, monkeypatch: pytest.MonkeyPatch):
        attempts = []

        def create_connection(address, timeout):
            attempts.append(address)
            raise TimeoutError("timed out")

        monkeypatch.setattr(
            "aws_request_auth.credentials.socket.create_connection", create_connection
        )
        location = EC2Location(config=Configuration(probe_timeout=0.05))
        assert not location.is_ec2()
        assert not location.is_ec2()
        assert len(attempts) == 1
