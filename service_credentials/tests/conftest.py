"""
Shared fixtures for credentials tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from service_credentials.app.credentials import Credentials


def _generate_key_pair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode()
    return private_pem, public_pem


@pytest.fixture(scope="session")
def key_pair():
    """RSA key pair used to sign test tokens."""
    return _generate_key_pair()


@pytest.fixture(scope="session")
def other_key_pair():
    """RSA key pair unrelated to the configured key."""
    return _generate_key_pair()


@pytest.fixture
def claims():
    """Claims carried by test tokens."""
    return {
        "sub": "user1",
        "tenant_id": "tenant-1",
        "email": "john.doe@example.com",
        "scope": "read write",
        "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
        "iat": int(datetime.now(timezone.utc).timestamp())
    }


@pytest.fixture
def token(key_pair, claims):
    """Token signed with the configured key."""
    private_pem, _ = key_pair
    return jwt.encode(claims, private_pem, algorithm="RS256")


@pytest.fixture
def foreign_token(other_key_pair, claims):
    """Well-formed token signed with a key the verifier does not know."""
    private_pem, _ = other_key_pair
    return jwt.encode(claims, private_pem, algorithm="RS256")


@pytest.fixture
def credentials(key_pair):
    """Credentials verifying against the test public key."""
    _, public_pem = key_pair
    return Credentials(key=public_pem)


@pytest.fixture
def decode_only_credentials():
    """Credentials without a key."""
    return Credentials()
