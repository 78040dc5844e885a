"""
Request-scoped access to verified claims.

Handlers behind the credentials interceptor receive an
:class:`AuthenticatedContext` whose ``claims`` attribute holds the verified
claim set. Code further down the call stack, which has no access to the
servicer context, can read the same claims with :func:`get_current_claims`.
"""

import contextvars
from typing import Any, Dict, Optional

ClaimSet = Dict[str, Any]

_claims_var: contextvars.ContextVar[Optional[ClaimSet]] = contextvars.ContextVar(
    'claims', default=None
)


def get_current_claims() -> Optional[ClaimSet]:
    """Get the verified claims of the call being handled, if any."""
    return _claims_var.get()


def set_current_claims(claims: Optional[ClaimSet]) -> contextvars.Token:
    """Bind claims to the current context.

    Returns:
        A token that can be used to reset the context variable.
    """
    return _claims_var.set(claims)


class AuthenticatedContext:
    """Servicer context of an authenticated call.

    Carries the verified ``claims`` and delegates everything else (abort,
    metadata, peer, deadlines) to the wrapped gRPC context.
    """

    def __init__(self, context: Any, claims: ClaimSet):
        self._context = context
        self.claims = claims

    @property
    def raw_context(self) -> Any:
        return self._context

    def __getattr__(self, name: str) -> Any:
        return getattr(self._context, name)
