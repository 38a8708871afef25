"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""

import asyncio

import aiohttp
from web3.exceptions import BadResponseFormat, ProviderConnectionError


class SecurityError(Exception):
    """Raised when a security-critical operation fails."""
    pass


# Exception categories based on handling strategy

# Endpoint transport failures - failover handles these
TRANSPORT_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
    TimeoutError,
    ProviderConnectionError,
    BadResponseFormat,  # Malformed or non-JSON-RPC endpoint response
)


def is_transport_error(exc: BaseException) -> bool:
    """
    Check if exception comes from the endpoint connection itself.

    Transport errors and malformed endpoint responses say nothing about
    the transaction, unlike an RPC error response (insufficient funds,
    revert, nonce too low).

    Args:
        exc: Exception to check

    Returns:
        True if exception is an endpoint-level failure
    """
    return isinstance(exc, TRANSPORT_ERRORS)


class AuthenticationError(Exception):
    """Raised when credentials do not match."""
    pass


class NotFoundError(Exception):
    """Raised when a requested entity does not exist."""
    pass


class ConflictError(Exception):
    """Raised when an entity already exists."""
    pass
