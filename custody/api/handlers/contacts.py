"""Contact book routes."""

from aiohttp import web

from custody.api.dependencies import get_container, get_user_id, parse_body, parse_query
from custody.api.schemas import (
    ContactCreateRequest,
    ContactTransactionsQuery,
    ContactUpdateRequest,
)
from custody.services.contact_service import ContactService, serialize_contact
from custody.utils.exceptions import NotFoundError

routes = web.RouteTableDef()


def _contact_id(request: web.Request) -> int:
    try:
        return int(request.match_info["contact_id"])
    except ValueError as e:
        raise ValueError("Contact id must be an integer") from e


@routes.get("/api/contacts")
async def list_contacts_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    async with get_container(request).session_factory() as session:
        contacts = await ContactService(session).list_contacts(user_id)
    return web.json_response(
        {"success": True, "contacts": [serialize_contact(c) for c in contacts]}
    )


@routes.post("/api/contacts")
async def create_contact_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    body = await parse_body(request, ContactCreateRequest)
    async with get_container(request).session_factory() as session:
        contact = await ContactService(session).add_contact(
            user_id,
            alias=body.alias,
            wallet_address=body.wallet_address,
            notes=body.notes,
            favorite=body.favorite,
        )
        payload = serialize_contact(contact)
    return web.json_response({"success": True, "contact": payload}, status=201)


@routes.get("/api/contacts/alias/{alias}")
async def contact_by_alias_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    alias = request.match_info["alias"]
    async with get_container(request).session_factory() as session:
        contact = await ContactService(session).get_by_alias(user_id, alias)
        if contact is None:
            raise NotFoundError(f"No contact named {alias!r}")
        payload = serialize_contact(contact)
    return web.json_response({"success": True, "contact": payload})


@routes.patch("/api/contacts/{contact_id}")
async def update_contact_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    contact_id = _contact_id(request)
    body = await parse_body(request, ContactUpdateRequest)
    async with get_container(request).session_factory() as session:
        contact = await ContactService(session).update_contact(
            user_id, contact_id, body.model_dump(exclude_unset=True)
        )
        payload = serialize_contact(contact)
    return web.json_response({"success": True, "contact": payload})


@routes.get("/api/contacts/{contact_id}/transactions")
async def contact_transactions_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    contact_id = _contact_id(request)
    query = parse_query(request, ContactTransactionsQuery)
    async with get_container(request).session_factory() as session:
        result = await ContactService(session).get_contact_transactions(
            user_id, contact_id, limit=query.limit
        )
    return web.json_response({"success": True, **result})


@routes.delete("/api/contacts/{contact_id}")
async def delete_contact_handler(request: web.Request) -> web.Response:
    user_id = get_user_id(request)
    contact_id = _contact_id(request)
    async with get_container(request).session_factory() as session:
        await ContactService(session).delete_contact(user_id, contact_id)
    return web.json_response({"success": True})
