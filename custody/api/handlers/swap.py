"""Token swap routes."""

from aiohttp import web
from loguru import logger

from custody.api.dependencies import get_container, get_user_id, parse_body, resolve_network
from custody.api.schemas import SwapExecuteRequest, SwapQuoteRequest
from custody.models.enums import TransactionStatus
from custody.utils.security import mask_tx_hash

routes = web.RouteTableDef()


@routes.post("/api/swap/quote")
async def quote_handler(request: web.Request) -> web.Response:
    body = await parse_body(request, SwapQuoteRequest)
    quote = await get_container(request).swap.get_quote(
        resolve_network(request, body.network), body.from_token, body.to_token, body.amount
    )
    return web.json_response({"success": True, "quote": quote.to_dict()})


@routes.post("/api/swap/execute")
async def execute_handler(request: web.Request) -> web.Response:
    """
    Execute a swap from the caller's wallet.

    Returns:
        JSON with the quote used and the swap transaction
    """
    user_id = get_user_id(request)
    body = await parse_body(request, SwapExecuteRequest)
    network = resolve_network(request, body.network)

    execution = await get_container(request).transfers.swap(
        user_id=user_id,
        password=body.password,
        network=network,
        from_token=body.from_token,
        to_token=body.to_token,
        amount=body.amount,
        force=body.force,
    )
    logger.info(
        f"User {user_id} swapped {body.from_token} -> {body.to_token} on {network}: "
        f"{mask_tx_hash(execution.transaction.hash)}"
    )
    return web.json_response(
        {
            "success": execution.transaction.status is not TransactionStatus.FAILED,
            "swap": execution.to_dict(),
        }
    )
