"""
Test doubles for gRPC servicer contexts.
"""

from collections import namedtuple


CallDetails = namedtuple("CallDetails", ["method", "invocation_metadata"])


class Aborted(Exception):
    """Raised by fake contexts on abort, like a real servicer context."""


class FakeContext:
    """Minimal sync servicer context."""

    def __init__(self, metadata=()):
        self._metadata = metadata
        self.aborted = None

    def invocation_metadata(self):
        return self._metadata

    def peer(self):
        return "ipv6:[::1]:50000"

    def abort(self, code, details):
        self.aborted = (code, details)
        raise Aborted(details)


class FakeAsyncContext(FakeContext):
    """Minimal ``grpc.aio`` servicer context."""

    async def abort(self, code, details):
        self.aborted = (code, details)
        raise Aborted(details)
