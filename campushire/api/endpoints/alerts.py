from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from campushire.core.auth import get_current_user
from campushire.core.responses import (
    forbidden,
    not_found,
    parse_object_id,
    serialize,
    serialize_many,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import Alert, User, UserRole
from campushire.schemas.messaging import AlertCreate

router = APIRouter()


@router.post("/create", status_code=201)
async def create_alert(payload: AlertCreate, current_user: User = Depends(get_current_user)):
    """Create an alert for the caller, or for any user when the caller is an admin"""
    try:
        user_id = parse_object_id(payload.user_id, "User") if payload.user_id else current_user.id
        if user_id != current_user.id and current_user.role != UserRole.ADMIN:
            raise forbidden("Not authorized to create alerts for other users")
        if not await User.get(user_id):
            raise not_found("User")

        alert = Alert(user_id=user_id, type=payload.type, message=payload.message)
        await alert.insert()
        return success_response({"alert": serialize(alert)}, "Alert created")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create alert error: {e}")
        raise server_error("Failed to create alert", e)


@router.get("")
async def get_alerts(current_user: User = Depends(get_current_user)):
    try:
        alerts = await Alert.find(Alert.user_id == current_user.id).sort("-created_at").to_list()
        return success_response({"alerts": serialize_many(alerts)})
    except Exception as e:
        logger.error(f"Get alerts error: {e}")
        raise server_error("Failed to fetch alerts", e)


@router.patch("/{alert_id}/mark-seen")
async def mark_alert_seen(alert_id: str, current_user: User = Depends(get_current_user)):
    try:
        alert = await Alert.find_one(
            Alert.id == parse_object_id(alert_id, "Alert"),
            Alert.user_id == current_user.id,
        )
        if not alert:
            raise not_found("Alert")

        alert.seen = True
        await alert.save()
        return success_response({"alert": serialize(alert)}, "Alert marked as seen")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Mark seen error: {e}")
        raise server_error("Failed to update alert", e)
