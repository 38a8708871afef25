"""
Error middleware.

Maps the typed errors raised below the HTTP layer to JSON responses.
Anything unexpected becomes a logged 500.
"""

from typing import Any

from aiohttp import web
from loguru import logger
from pydantic import ValidationError
from web3.exceptions import Web3Exception

from custody.services.blockchain.errors import (
    ConfigurationError,
    ConfirmationTimeout,
    EndpointUnavailable,
    OnChainRevert,
    SimulationRevert,
    SubmissionError,
)
from custody.utils.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    SecurityError,
    is_transport_error,
)


def error_response(status: int, error: str, **extra: Any) -> web.Response:
    return web.json_response({"success": False, "error": error, **extra}, status=status)


def map_exception(exc: Exception) -> web.Response:
    """
    Build the JSON response for an exception.

    Args:
        exc: Exception raised by a handler

    Returns:
        Error response with the mapped status code
    """
    if isinstance(exc, ValidationError):
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        return error_response(400, "Invalid request", details=details)
    if isinstance(exc, SimulationRevert):
        return error_response(422, exc.message, reason=exc.reason.value)
    if isinstance(exc, OnChainRevert):
        return error_response(422, str(exc), hash=exc.tx_hash, status="failed")
    if isinstance(exc, ConfirmationTimeout):
        return error_response(504, str(exc), hash=exc.tx_hash, status="pending")
    if isinstance(exc, SubmissionError | EndpointUnavailable):
        return error_response(502, str(exc))
    if isinstance(exc, ConfigurationError):
        return error_response(500, str(exc))
    # Covers InvalidTransactionIntent too
    if isinstance(exc, ValueError):
        return error_response(400, str(exc))
    if isinstance(exc, AuthenticationError):
        return error_response(401, str(exc))
    if isinstance(exc, SecurityError):
        return error_response(401, "Could not unlock wallet")
    if isinstance(exc, NotFoundError):
        return error_response(404, str(exc))
    if isinstance(exc, ConflictError):
        return error_response(409, str(exc))
    if is_transport_error(exc) or isinstance(exc, Web3Exception):
        return error_response(502, f"Blockchain endpoint error: {exc}")
    return error_response(500, "Internal server error")


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Convert raised errors into JSON responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        response = map_exception(e)
        if response.status >= 500:
            logger.opt(exception=response.status == 500).error(
                f"{request.method} {request.path} failed with {response.status}: "
                f"{type(e).__name__}: {e}",
            )
        else:
            logger.warning(
                f"{request.method} {request.path} -> {response.status}: {type(e).__name__}: {e}"
            )
        return response
