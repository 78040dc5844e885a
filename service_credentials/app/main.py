"""
gRPC server factories with credential enforcement.
"""

from concurrent import futures
from typing import Optional, Sequence, Tuple

import grpc

from shared.config import CredentialsConfig, get_config
from shared.logging import configure_logging, get_logger

from .credentials import Credentials
from .interceptor import AsyncCredentialsInterceptor, CredentialsInterceptor

SERVICE_NAME = "credentials"

logger = get_logger("credentials.main")


def _prepare(credentials: Optional[Credentials],
             config: Optional[CredentialsConfig]) -> Tuple[Credentials, CredentialsConfig]:
    config = config or get_config()
    configure_logging(SERVICE_NAME, config.log_level, config.log_format)
    credentials = credentials or Credentials.from_config(config)
    logger.info(
        "Credentials configured",
        env=config.env,
        token_type=credentials.scheme,
        verifies_signature=credentials.verifies_signature
    )
    return credentials, config


def create_server(credentials: Optional[Credentials] = None,
                  config: Optional[CredentialsConfig] = None,
                  handlers: Sequence[grpc.GenericRpcHandler] = (),
                  interceptors: Sequence[grpc.ServerInterceptor] = (),
                  exempt_methods: Sequence[str] = ()) -> grpc.Server:
    """Create a sync gRPC server whose calls all require valid credentials.

    The credentials interceptor runs before ``interceptors``. Ports are left
    to the caller.
    """
    credentials, config = _prepare(credentials, config)
    return grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.max_workers),
        handlers=list(handlers),
        interceptors=[CredentialsInterceptor(credentials, exempt_methods), *interceptors],
    )


def create_aio_server(credentials: Optional[Credentials] = None,
                      config: Optional[CredentialsConfig] = None,
                      handlers: Sequence[grpc.GenericRpcHandler] = (),
                      interceptors: Sequence[grpc.aio.ServerInterceptor] = (),
                      exempt_methods: Sequence[str] = ()) -> grpc.aio.Server:
    """Create a ``grpc.aio`` server whose calls all require valid credentials."""
    credentials, config = _prepare(credentials, config)
    return grpc.aio.server(
        handlers=list(handlers),
        interceptors=[AsyncCredentialsInterceptor(credentials, exempt_methods), *interceptors],
    )
