"""
Bearer token credentials for gRPC calls.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from jose import jws, jwt
from jose.exceptions import JOSEError, JWTError

from shared.config import DEFAULT_TOKEN_TYPE, CredentialsConfig
from shared.errors import (
    AuthorizationRequiredError,
    CredentialsMissingError,
    DecodingError,
    TokenTypeInvalidError,
    VerificationError,
)

from .claims import ClaimSet

AUTHORIZATION_KEY = "authorization"

Metadata = Union[Iterable[Tuple[str, Any]], Mapping[str, Any]]


@dataclass(frozen=True)
class Credentials:
    """
    Verifies bearer tokens presented in gRPC call metadata.

    Built once at startup and shared by every call. When ``key`` is None
    the signature is not checked at all and tokens are only decoded; this
    decode-only mode is reported by :attr:`verifies_signature`.

    .. code-block:: python

       credentials = Credentials(key=public_pem)
       claims = credentials.from_metadata(context.invocation_metadata())
    """

    key: Optional[Union[str, Mapping[str, Any]]] = None
    token_type: Optional[str] = DEFAULT_TOKEN_TYPE
    algorithms: Tuple[str, ...] = ("RS256",)

    @classmethod
    def from_config(cls, config: CredentialsConfig) -> "Credentials":
        """Build credentials from service configuration."""
        return cls(
            key=config.load_public_key(),
            token_type=config.token_type,
            algorithms=tuple(config.algorithms),
        )

    @property
    def scheme(self) -> str:
        return self.token_type or DEFAULT_TOKEN_TYPE

    @property
    def verifies_signature(self) -> bool:
        return self.key is not None

    def from_string(self, token: str) -> ClaimSet:
        """
        Verify and decode a raw token.

        Raises
        ------
        :class:`.VerificationError`
            A key is configured and the signature does not match it.
        :class:`.DecodingError`
            The token payload is not a JSON object.

        """
        if self.key is not None:
            try:
                jws.verify(token, self.key, list(self.algorithms))
            except JOSEError as e:
                raise VerificationError({"reason": str(e)}) from e

        try:
            return jwt.get_unverified_claims(token)
        except JWTError as e:
            raise DecodingError({"reason": str(e)}) from e

    def from_metadata(self, metadata: Optional[Metadata]) -> ClaimSet:
        """Verify the bearer token carried in a call's metadata."""
        if not metadata:
            raise CredentialsMissingError()

        value = first_metadata_value(metadata, AUTHORIZATION_KEY)
        if value is None:
            raise AuthorizationRequiredError()

        return self.from_string(self.parse_authorization(value))

    def from_context(self, context: Any) -> ClaimSet:
        """Verify the bearer token of the call behind a servicer context."""
        return self.from_metadata(context.invocation_metadata())

    def parse_authorization(self, value: str) -> str:
        """Split ``"<scheme> <token>"`` and return the token."""
        parts = value.split(" ")
        if len(parts) != 2 or parts[0].lower() != self.scheme.lower():
            raise TokenTypeInvalidError()
        return parts[1]


def first_metadata_value(metadata: Metadata, name: str) -> Optional[str]:
    """Return the first value stored under ``name``, or None."""
    items = metadata.items() if isinstance(metadata, Mapping) else metadata
    for key, value in items:
        if key.lower() != name:
            continue
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            if not value:
                continue
            value = value[0]
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        return value
    return None
