"""
Transaction routes.

Estimate, simulate and send transactions, query receipts and nonces,
cancel or speed up pending transactions, and read the ledger history.
"""

from aiohttp import web
from loguru import logger

from custody.api.dependencies import (
    get_container,
    get_user_id,
    parse_body,
    parse_query,
    resolve_network,
)
from custody.api.schemas import (
    CancelRequest,
    EstimateRequest,
    HistoryQuery,
    NonceRequest,
    ReceiptRequest,
    SendRequest,
    SpeedUpRequest,
)
from custody.models.enums import TransactionStatus
from custody.services.blockchain.types import SubmittedTransaction, TransactionIntent
from custody.services.history_service import TransactionHistoryService
from custody.utils.security import mask_tx_hash

routes = web.RouteTableDef()


def _intent_from(request: web.Request, body: EstimateRequest) -> TransactionIntent:
    return TransactionIntent(
        sender=body.from_address,
        recipient=body.to,
        value=body.value,
        network=resolve_network(request, body.network),
        data=body.data,
        gas_limit=body.gas_limit,
        max_fee_per_gas=body.max_fee_per_gas,
        max_priority_fee_per_gas=body.max_priority_fee_per_gas,
    )


def _transaction_response(submitted: SubmittedTransaction) -> web.Response:
    return web.json_response(
        {
            "success": submitted.status is not TransactionStatus.FAILED,
            "transaction": submitted.to_dict(),
        }
    )


@routes.post("/api/transaction/estimate-gas")
async def estimate_gas_handler(request: web.Request) -> web.Response:
    """
    Estimate gas for a transaction.

    Returns:
        JSON with buffered gas limit, fee quote and speed tiers
    """
    body = await parse_body(request, EstimateRequest)
    estimate = await get_container(request).orchestrator.estimate(_intent_from(request, body))
    return web.json_response({"success": True, "estimate": estimate.to_dict()})


@routes.post("/api/transaction/simulate")
async def simulate_handler(request: web.Request) -> web.Response:
    """Dry-run a transaction; a predicted revert is reported, not raised."""
    body = await parse_body(request, EstimateRequest)
    result = await get_container(request).orchestrator.simulate(_intent_from(request, body))
    return web.json_response({"success": True, "simulation": result.to_dict()})


@routes.post("/api/transaction/send-with-password")
async def send_with_password_handler(request: web.Request) -> web.Response:
    """
    Send a transaction from the caller's custodial wallet.

    Returns:
        JSON with the submitted transaction; status may still be pending
    """
    user_id = get_user_id(request)
    body = await parse_body(request, SendRequest)
    network = resolve_network(request, body.network)

    submitted = await get_container(request).transfers.send_with_password(
        user_id=user_id,
        password=body.password,
        to=body.to,
        value=body.value,
        network=network,
        data=body.data,
        gas_limit=body.gas_limit,
        max_fee_per_gas=body.max_fee_per_gas,
        max_priority_fee_per_gas=body.max_priority_fee_per_gas,
        sender=body.from_address,
        force=body.force,
    )
    logger.info(
        f"User {user_id} sent {mask_tx_hash(submitted.hash)} on {network}: "
        f"{submitted.status.value}"
    )
    return _transaction_response(submitted)


@routes.post("/api/transaction/receipt")
async def receipt_handler(request: web.Request) -> web.Response:
    body = await parse_body(request, ReceiptRequest)
    network = resolve_network(request, body.network)
    receipt = await get_container(request).receipts.get_receipt(network, body.hash)
    return web.json_response({"success": True, "receipt": receipt})


@routes.post("/api/transaction/nonce")
async def nonce_handler(request: web.Request) -> web.Response:
    body = await parse_body(request, NonceRequest)
    network = resolve_network(request, body.network)
    nonce = await get_container(request).receipts.get_nonce(network, body.address)
    return web.json_response({"success": True, "address": body.address, **nonce})


@routes.post("/api/transaction/cancel")
async def cancel_handler(request: web.Request) -> web.Response:
    """Cancel a pending transaction by nonce or by hash."""
    user_id = get_user_id(request)
    body = await parse_body(request, CancelRequest)
    if body.nonce is None and body.tx_hash is None:
        raise ValueError("Either nonce or txHash is required")

    submitted = await get_container(request).transfers.cancel(
        user_id=user_id,
        password=body.password,
        network=resolve_network(request, body.network),
        nonce=body.nonce,
        tx_hash=body.tx_hash,
    )
    return _transaction_response(submitted)


@routes.post("/api/transaction/speed-up")
async def speed_up_handler(request: web.Request) -> web.Response:
    """Resubmit a pending transaction with bumped fees."""
    user_id = get_user_id(request)
    body = await parse_body(request, SpeedUpRequest)
    submitted = await get_container(request).transfers.speed_up(
        user_id=user_id,
        password=body.password,
        network=resolve_network(request, body.network),
        tx_hash=body.tx_hash,
    )
    return _transaction_response(submitted)


@routes.get("/api/transaction/history")
async def history_handler(request: web.Request) -> web.Response:
    """
    Paginated ledger history of the caller.

    Query:
        limit, offset, network, perspective, status, counterparty
    """
    user_id = get_user_id(request)
    query = parse_query(request, HistoryQuery)
    async with get_container(request).session_factory() as session:
        history = await TransactionHistoryService(session).get_history(
            user_id,
            limit=query.limit,
            offset=query.offset,
            network=query.network,
            perspective=query.perspective,
            status=query.status,
            counterparty=query.counterparty,
        )
    return web.json_response({"success": True, **history})


@routes.get("/api/transaction/history/{tx_hash}")
async def history_by_hash_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    tx_hash = request.match_info["tx_hash"]
    async with get_container(request).session_factory() as session:
        entries = await TransactionHistoryService(session).get_by_hash(user_id, tx_hash)
    if not entries:
        return web.json_response(
            {"success": False, "error": "Transaction not found"}, status=404
        )
    return web.json_response({"success": True, "entries": entries})


@routes.get("/api/transaction/stats")
async def stats_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    async with get_container(request).session_factory() as session:
        stats = await TransactionHistoryService(session).get_stats(user_id)
    return web.json_response({"success": True, "stats": stats})
