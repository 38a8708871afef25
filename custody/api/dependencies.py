"""
Request helpers shared by handlers.

The container lives on the application; the authenticated user id is
taken from the X-User-Id header set by the upstream auth gateway.
"""

import json
from typing import TypeVar

from aiohttp import web
from pydantic import BaseModel

from custody.container import Container
from custody.utils.exceptions import AuthenticationError

CONTAINER_KEY = web.AppKey("container", Container)
USER_ID_HEADER = "X-User-Id"

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_container(request: web.Request) -> Container:
    return request.app[CONTAINER_KEY]


def get_user_id(request: web.Request) -> int:
    """
    Authenticated user id of the request.

    Raises:
        AuthenticationError: Header missing or not an integer
    """
    raw = request.headers.get(USER_ID_HEADER)
    if not raw:
        raise AuthenticationError(f"Missing {USER_ID_HEADER} header")
    try:
        user_id = int(raw)
    except ValueError as e:
        raise AuthenticationError(f"Invalid {USER_ID_HEADER} header") from e
    if user_id <= 0:
        raise AuthenticationError(f"Invalid {USER_ID_HEADER} header")
    return user_id


def resolve_network(request: web.Request, network: str | None) -> str:
    """
    Requested network, falling back to the configured default.

    Raises:
        ValueError: Network is not in the configured table
    """
    settings = get_container(request).settings
    name = (network or settings.default_network).lower()
    if name not in settings.networks:
        raise ValueError(f"Unsupported network: {name}")
    return name


async def parse_body(request: web.Request, model: type[ModelT]) -> ModelT:
    """
    Parse and validate a JSON body.

    Raises:
        ValueError: Body is not a JSON object
        pydantic.ValidationError: Body does not match the model
    """
    try:
        payload = await request.json()
    except json.JSONDecodeError as e:
        raise ValueError("Request body must be valid JSON") from e
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return model.model_validate(payload)


def parse_query(request: web.Request, model: type[ModelT]) -> ModelT:
    """Validate query string parameters against a model."""
    return model.model_validate(dict(request.query))
