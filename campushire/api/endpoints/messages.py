from beanie.operators import Or
from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from campushire.api.endpoints.connections import are_connected
from campushire.core.auth import get_current_user
from campushire.core.responses import (
    bad_request,
    forbidden,
    parse_object_id,
    public_user,
    serialize,
    serialize_many,
    server_error,
    success_response,
)
from campushire.middleware.rate_limiting import message_rate_limit
from campushire.models.mongodb_models import Message, User
from campushire.schemas.messaging import MessageSend
from campushire.services.content_filter import moderate

router = APIRouter()


@router.post("/send", status_code=201, dependencies=[Depends(message_rate_limit)])
async def send_message(payload: MessageSend, current_user: User = Depends(get_current_user)):
    try:
        receiver_id = parse_object_id(payload.receiver_id, "User")
        if receiver_id == current_user.id:
            raise bad_request("You cannot message yourself")
        if not await are_connected(current_user.id, receiver_id):
            raise forbidden("You can only message connected users")

        warning = await moderate({"message": payload.message}, current_user)

        message = Message(sender_id=current_user.id, receiver_id=receiver_id, message=payload.message)
        await message.insert()

        data = {"message": serialize(message)}
        if warning:
            data["spam_warning"] = warning
        return success_response(data, "Message sent")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Send message error: {e}")
        raise server_error("Failed to send message", e)


@router.get("/inbox")
async def get_inbox(current_user: User = Depends(get_current_user)):
    """One thread per counterpart carrying the latest message, newest first"""
    try:
        messages = await Message.find(
            Or({"sender_id": current_user.id}, {"receiver_id": current_user.id})
        ).sort("-created_at").to_list()

        latest = {}
        for message in messages:
            other_id = message.receiver_id if message.sender_id == current_user.id else message.sender_id
            latest.setdefault(other_id, message)

        others = {u.id: u for u in await User.find({"_id": {"$in": list(latest)}}).to_list()}
        threads = [
            {"other": public_user(others.get(other_id)), "last_message": serialize(message)}
            for other_id, message in latest.items()
        ]
        return success_response({"threads": threads})
    except Exception as e:
        logger.error(f"Get inbox error: {e}")
        raise server_error("Failed to get messages", e)


@router.get("/conversation/{user_id}")
async def get_conversation(user_id: str, current_user: User = Depends(get_current_user)):
    try:
        other_id = parse_object_id(user_id, "User")
        messages = await Message.find(
            Or(
                {"sender_id": current_user.id, "receiver_id": other_id},
                {"sender_id": other_id, "receiver_id": current_user.id},
            )
        ).sort("+created_at").to_list()
        return success_response({"messages": serialize_many(messages)})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get conversation error: {e}")
        raise server_error("Failed to get conversation", e)
