"""
Bearer token verification and enforcement for gRPC servers.
"""

from .claims import AuthenticatedContext, get_current_claims
from .credentials import Credentials
from .interceptor import AsyncCredentialsInterceptor, CredentialsInterceptor, intercept
from .main import create_aio_server, create_server

__all__ = [
    'AuthenticatedContext',
    'get_current_claims',
    'Credentials',
    'CredentialsInterceptor',
    'AsyncCredentialsInterceptor',
    'intercept',
    'create_server',
    'create_aio_server',
]
