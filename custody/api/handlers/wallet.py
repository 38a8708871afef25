"""Wallet read routes."""

from aiohttp import web

from custody.api.dependencies import get_container, get_user_id, resolve_network
from custody.services.user_service import UserService

routes = web.RouteTableDef()


async def _own_address(request: web.Request) -> str:
    container = get_container(request)
    async with container.session_factory() as session:
        user = await UserService(session, container.vault).get_user(get_user_id(request))
    return user.wallet_address


@routes.get("/api/wallet/balance")
async def balance_handler(request: web.Request) -> web.Response:
    """
    Native (or ERC-20 with ?token=) balance.

    Defaults to the caller's own wallet when no address is given.
    """
    container = get_container(request)
    network = resolve_network(request, request.query.get("network"))
    address = request.query.get("address") or await _own_address(request)
    token = request.query.get("token")

    if token:
        balance = await container.wallet.get_token_balance(network, token, address)
    else:
        balance = await container.wallet.get_balance(network, address)
    return web.json_response({"success": True, **balance})


@routes.get("/api/wallet/gas-prices")
async def gas_prices_handler(request: web.Request) -> web.Response:
    network = resolve_network(request, request.query.get("network"))
    prices = await get_container(request).wallet.get_gas_prices(network)
    return web.json_response({"success": True, **prices})
