from typing import List, Optional

from beanie import PydanticObjectId
from beanie.operators import Or
from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from campushire.core.auth import get_current_user
from campushire.core.responses import (
    bad_request,
    forbidden,
    not_found,
    parse_object_id,
    public_user,
    serialize,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import AlertType, Connection, ConnectionStatus, User
from campushire.schemas.messaging import ConnectionRequestCreate
from campushire.services.alerts import notify
from campushire.services.state_machines import CONNECTION_FSM, InvalidTransition, transition

router = APIRouter()


async def find_between(user_a: PydanticObjectId, user_b: PydanticObjectId) -> Optional[Connection]:
    """The connection document for an unordered pair, in either direction"""
    return await Connection.find_one(
        Or(
            {"requester_id": user_a, "target_id": user_b},
            {"requester_id": user_b, "target_id": user_a},
        )
    )


async def are_connected(user_a: PydanticObjectId, user_b: PydanticObjectId) -> bool:
    connection = await find_between(user_a, user_b)
    return connection is not None and connection.status == ConnectionStatus.APPROVED


async def populate(connections: List[Connection]) -> List[dict]:
    user_ids = list({c.requester_id for c in connections} | {c.target_id for c in connections})
    users = {u.id: u for u in await User.find({"_id": {"$in": user_ids}}).to_list()}
    items = []
    for connection in connections:
        item = serialize(connection)
        item["requester"] = public_user(users.get(connection.requester_id))
        item["target"] = public_user(users.get(connection.target_id))
        items.append(item)
    return items


async def decide(connection_id: str, action: str, current_user: User) -> Connection:
    connection = await Connection.get(parse_object_id(connection_id, "Connection"))
    if not connection:
        raise not_found("Connection")
    if connection.target_id != current_user.id:
        raise forbidden("Not authorized")
    try:
        connection.status = ConnectionStatus(transition(CONNECTION_FSM, connection.status, action))
    except InvalidTransition:
        raise bad_request("Connection request is not pending")
    await connection.save()
    return connection


@router.post("/request", status_code=201)
async def request_connection(payload: ConnectionRequestCreate, current_user: User = Depends(get_current_user)):
    try:
        target_id = parse_object_id(payload.target_id, "User")
        if target_id == current_user.id:
            raise bad_request("You cannot connect with yourself")
        if not await User.get(target_id):
            raise not_found("User")

        if await find_between(current_user.id, target_id):
            raise bad_request("Connection already exists or pending")

        connection = Connection(requester_id=current_user.id, target_id=target_id)
        await connection.insert()
        await notify(target_id, AlertType.CONNECTION_REQUEST, "New connection request received.")

        return success_response({"connection": serialize(connection)}, "Connection requested")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Request connection error: {e}")
        raise server_error("Failed to request connection", e)


@router.patch("/{connection_id}/approve")
async def approve_connection(connection_id: str, current_user: User = Depends(get_current_user)):
    try:
        connection = await decide(connection_id, "approve", current_user)
        await notify(connection.requester_id, AlertType.APPROVAL, "Your connection request was approved.")
        return success_response({"connection": serialize(connection)}, "Connection approved")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Approve connection error: {e}")
        raise server_error("Failed to approve connection", e)


@router.patch("/{connection_id}/reject")
async def reject_connection(connection_id: str, current_user: User = Depends(get_current_user)):
    try:
        connection = await decide(connection_id, "reject", current_user)
        return success_response({"connection": serialize(connection)}, "Connection rejected")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Reject connection error: {e}")
        raise server_error("Failed to reject connection", e)


@router.get("")
async def list_connections(current_user: User = Depends(get_current_user)):
    try:
        connections = await Connection.find(
            Or({"requester_id": current_user.id}, {"target_id": current_user.id}),
            Connection.status == ConnectionStatus.APPROVED,
        ).sort("-updated_at").to_list()
        return success_response({"connections": await populate(connections)})
    except Exception as e:
        logger.error(f"List connections error: {e}")
        raise server_error("Failed to get connections", e)


@router.get("/incoming")
async def list_incoming(current_user: User = Depends(get_current_user)):
    try:
        pending = await Connection.find(
            Connection.target_id == current_user.id,
            Connection.status == ConnectionStatus.PENDING,
        ).sort("-created_at").to_list()
        return success_response({"incoming": await populate(pending)})
    except Exception as e:
        logger.error(f"List incoming error: {e}")
        raise server_error("Failed to get incoming requests", e)


@router.get("/outgoing")
async def list_outgoing(current_user: User = Depends(get_current_user)):
    try:
        pending = await Connection.find(
            Connection.requester_id == current_user.id,
            Connection.status == ConnectionStatus.PENDING,
        ).sort("-created_at").to_list()
        return success_response({"outgoing": await populate(pending)})
    except Exception as e:
        logger.error(f"List outgoing error: {e}")
        raise server_error("Failed to get outgoing requests", e)


@router.get("/status")
async def connection_status(
    user_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
):
    """Relation of the caller to another user: none, approved, pendingIn, pendingOut or rejected"""
    try:
        if not user_id:
            raise bad_request("user_id is required")
        connection = await find_between(current_user.id, parse_object_id(user_id, "User"))
        if connection is None:
            return success_response({"status": "none"})

        if connection.status == ConnectionStatus.PENDING:
            relation = "pendingIn" if connection.target_id == current_user.id else "pendingOut"
        else:
            relation = connection.status.value
        return success_response({"status": relation, "connection_id": str(connection.id)})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Connection status error: {e}")
        raise server_error("Failed to get status", e)
