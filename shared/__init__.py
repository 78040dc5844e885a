"""
Shared utilities for gRPC JWT credentials.

This package aggregates common building blocks consumed by the credentials
service:

- config: Verifier and server configuration via pydantic-settings
- logging: Structured logging with per-call correlation
- errors: Credential error kinds and their status mapping

Do not import from service_* packages into shared/.
"""
