"""
Server interceptors enforcing bearer token credentials.

:class:`CredentialsInterceptor` guards a sync ``grpc.server`` and
:class:`AsyncCredentialsInterceptor` a ``grpc.aio.server``. Both verify the
token of every call before its handler runs; a failed check aborts the call
with ``UNAUTHENTICATED`` and the handler is never invoked.

.. code-block:: python

   credentials = Credentials(key=public_pem)
   server = grpc.server(
       futures.ThreadPoolExecutor(max_workers=10),
       interceptors=[CredentialsInterceptor(credentials)],
   )
"""

import asyncio
import contextvars
import inspect
from typing import Any, Callable, Iterable, Iterator, Optional

import grpc

from shared.errors import CredentialsError
from shared.logging import get_logger, set_request_id, set_rpc_method

from .claims import AuthenticatedContext, ClaimSet, set_current_claims
from .credentials import Credentials, first_metadata_value

REQUEST_ID_KEY = "x-request-id"

logger = get_logger("credentials.interceptor")

_END = object()


def intercept(credentials: Credentials, context: Any, request: Any,
              handler: Callable[[Any, Any], Any]) -> Any:
    """
    Authenticate a call and hand it to ``handler``.

    The claims are bound with :func:`.set_current_claims` and not reset, so
    this must run inside a context owned by the call: a copied
    :class:`contextvars.Context` or the call's own asyncio task.

    Raises
    ------
    :class:`.CredentialsError`
        Verification failed; ``handler`` was not called.

    """
    claims = credentials.from_context(context)
    return _call_handler(claims, context, request, handler)


def _call_handler(claims: ClaimSet, context: Any, request: Any,
                  handler: Callable[[Any, Any], Any]) -> Any:
    set_current_claims(claims)
    logger.debug("Call authenticated")
    return handler(request, AuthenticatedContext(context, claims))


def _bind_call(method: str, context: Any) -> None:
    set_rpc_method(method)
    set_request_id(first_metadata_value(context.invocation_metadata() or (), REQUEST_ID_KEY))


def _iterate_in(ctx: contextvars.Context, responses: Iterable[Any]) -> Iterator[Any]:
    iterator = iter(responses)
    while True:
        try:
            response = ctx.run(next, iterator)
        except StopIteration:
            return
        yield response


async def _stream_in_executor(claims: ClaimSet, context: Any, request: Any, behavior: Callable):
    """Produce the responses of a sync streaming behavior off the event loop."""
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    responses = await loop.run_in_executor(None, ctx.run, _call_handler, claims, context, request, behavior)
    if responses is None:
        return
    iterator = iter(responses)
    while True:
        response = await loop.run_in_executor(None, ctx.run, next, iterator, _END)
        if response is _END:
            return
        yield response


def _is_async(behavior: Callable) -> bool:
    return inspect.iscoroutinefunction(behavior) or inspect.isasyncgenfunction(behavior)


def _wrap_handler(handler: grpc.RpcMethodHandler,
                  guard: Callable[[Callable, bool], Callable]) -> grpc.RpcMethodHandler:
    """Rebuild ``handler`` with its behavior passed through ``guard``."""
    if handler.request_streaming and handler.response_streaming:
        factory, behavior = grpc.stream_stream_rpc_method_handler, handler.stream_stream
    elif handler.request_streaming:
        factory, behavior = grpc.stream_unary_rpc_method_handler, handler.stream_unary
    elif handler.response_streaming:
        factory, behavior = grpc.unary_stream_rpc_method_handler, handler.unary_stream
    else:
        factory, behavior = grpc.unary_unary_rpc_method_handler, handler.unary_unary

    return factory(
        guard(behavior, handler.response_streaming),
        request_deserializer=handler.request_deserializer,
        response_serializer=handler.response_serializer,
    )


class _BaseCredentialsInterceptor:

    def __init__(self, credentials: Credentials, exempt_methods: Iterable[str] = ()):
        self.credentials = credentials
        self.exempt_methods = frozenset(exempt_methods)
        if not credentials.verifies_signature:
            logger.warning("Token signatures are not verified: no public key configured")

    def _should_guard(self, handler: Optional[grpc.RpcMethodHandler], method: str) -> bool:
        return handler is not None and method not in self.exempt_methods

    def _log_rejection(self, method: str, error: CredentialsError) -> None:
        logger.warning("Call rejected", rpc_method=method, error_code=error.code)


class CredentialsInterceptor(_BaseCredentialsInterceptor, grpc.ServerInterceptor):
    """Interceptor for sync gRPC servers.

    Verification runs in the worker thread handling the call. Each call gets
    a copied :class:`contextvars.Context`, so claims bound for one call are
    never visible to another.
    """

    def intercept_service(self, continuation, handler_call_details):
        handler = continuation(handler_call_details)
        method = handler_call_details.method
        if not self._should_guard(handler, method):
            return handler
        return _wrap_handler(handler, lambda behavior, streaming: self._guard(method, behavior, streaming))

    def _guard(self, method: str, behavior: Callable, response_streaming: bool) -> Callable:
        def guarded(request_or_iterator, context):
            ctx = contextvars.copy_context()
            ctx.run(_bind_call, method, context)
            try:
                claims = ctx.run(self.credentials.from_context, context)
            except CredentialsError as e:
                ctx.run(self._log_rejection, method, e)
                context.abort(e.status_code, e.message)

            result = ctx.run(_call_handler, claims, context, request_or_iterator, behavior)
            if response_streaming:
                return _iterate_in(ctx, result)
            return result

        return guarded


class AsyncCredentialsInterceptor(_BaseCredentialsInterceptor, grpc.aio.ServerInterceptor):
    """Interceptor for ``grpc.aio`` servers.

    Each call runs in its own asyncio task, which already isolates the bound
    claims between calls. Sync behaviors run in the loop's default executor,
    inside a copy of the call's context.
    """

    async def intercept_service(self, continuation, handler_call_details):
        handler = await continuation(handler_call_details)
        method = handler_call_details.method
        if not self._should_guard(handler, method):
            return handler
        return _wrap_handler(handler, lambda behavior, streaming: self._guard(method, behavior, streaming))

    async def _authenticate(self, method: str, context) -> ClaimSet:
        _bind_call(method, context)
        try:
            return self.credentials.from_context(context)
        except CredentialsError as e:
            self._log_rejection(method, e)
            await context.abort(e.status_code, e.message)

    def _guard(self, method: str, behavior: Callable, response_streaming: bool) -> Callable:
        is_async = _is_async(behavior)

        if response_streaming:
            async def guarded_stream(request_or_iterator, context):
                claims = await self._authenticate(method, context)
                if not is_async:
                    async for response in _stream_in_executor(claims, context, request_or_iterator, behavior):
                        yield response
                    return

                responses = _call_handler(claims, context, request_or_iterator, behavior)
                # Behaviors may also write through context.write() and return None.
                if inspect.isawaitable(responses):
                    responses = await responses
                if responses is None:
                    return
                if hasattr(responses, "__aiter__"):
                    async for response in responses:
                        yield response
                else:
                    for response in responses:
                        yield response

            return guarded_stream

        async def guarded(request_or_iterator, context):
            claims = await self._authenticate(method, context)
            if is_async:
                return await _call_handler(claims, context, request_or_iterator, behavior)

            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                None, contextvars.copy_context().run,
                _call_handler, claims, context, request_or_iterator, behavior,
            )
            if inspect.isawaitable(response):
                response = await response
            return response

        return guarded
