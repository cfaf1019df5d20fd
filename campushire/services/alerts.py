from typing import Optional

from beanie import PydanticObjectId
from loguru import logger

from campushire.models.mongodb_models import Alert, AlertType, User, UserRole

JOB_BROADCAST_LIMIT = 2000


async def notify(user_id: PydanticObjectId, alert_type: AlertType, message: str) -> Optional[Alert]:
    """Create a single alert. Failures are logged, never raised to the caller."""
    try:
        return await Alert(user_id=user_id, type=alert_type, message=message).insert()
    except Exception as e:
        logger.warning(f"Failed to create {alert_type.value} alert for {user_id}: {e}")
        return None


async def broadcast_job_post(title: str) -> int:
    """Alert verified students about a new job. Returns the number of alerts sent."""
    try:
        students = await User.find(
            User.role == UserRole.STUDENT,
            User.is_verified == True,  # noqa: E712
        ).limit(JOB_BROADCAST_LIMIT).to_list()
        alerts = [
            Alert(user_id=student.id, type=AlertType.JOB_POST, message=f"New job posted: {title}")
            for student in students
        ]
        if alerts:
            await Alert.insert_many(alerts)
        return len(alerts)
    except Exception as e:
        logger.warning(f"Alert broadcast failed: {e}")
        return 0
