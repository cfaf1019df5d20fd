from typing import Optional

from pydantic import BaseModel, Field

from campushire.models.mongodb_models import AlertType


class ConnectionRequestCreate(BaseModel):
    target_id: str


class MessageSend(BaseModel):
    receiver_id: str
    message: str = Field(..., min_length=1, max_length=2000)


class AlertCreate(BaseModel):
    user_id: Optional[str] = None
    type: AlertType
    message: str = Field(..., min_length=1)
