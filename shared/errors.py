"""
Shared error handling for gRPC JWT credentials.

Every credential failure is a :class:`CredentialsError` whose ``kind`` is one
of a closed set of :class:`ErrorKind` values. All kinds map to
``UNAUTHENTICATED`` at the RPC boundary and differ only by message.
"""

from enum import Enum
from typing import Any, Dict, Optional

import grpc


class ErrorKind(Enum):
    """Named credential failures and their caller-visible messages."""

    VERIFICATION = "credentials: verification error"
    DECODING = "credentials: decoding error"
    CREDENTIALS_MISSING = "credentials: missing credentials"
    AUTHORIZATION_REQUIRED = "credentials: authorization required"
    TOKEN_TYPE_INVALID = "credentials: token type invalid"

    @property
    def message(self) -> str:
        return self.value


class CredentialsError(Exception):
    """Base exception for credential failures on a call."""

    kind: ErrorKind
    status_code = grpc.StatusCode.UNAUTHENTICATED

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(self.kind.message)

    @property
    def code(self) -> str:
        return self.kind.name

    @property
    def message(self) -> str:
        return self.kind.message


class VerificationError(CredentialsError):
    """Token signature did not verify against the configured key."""

    kind = ErrorKind.VERIFICATION


class DecodingError(CredentialsError):
    """Token claims could not be decoded."""

    kind = ErrorKind.DECODING


class CredentialsMissingError(CredentialsError):
    """The call carries no metadata at all."""

    kind = ErrorKind.CREDENTIALS_MISSING


class AuthorizationRequiredError(CredentialsError):
    """The call metadata has no authorization entry."""

    kind = ErrorKind.AUTHORIZATION_REQUIRED


class TokenTypeInvalidError(CredentialsError):
    """The authorization value is malformed or uses the wrong scheme."""

    kind = ErrorKind.TOKEN_TYPE_INVALID


class ConfigurationError(Exception):
    """Configuration cannot be used to build a verifier."""
