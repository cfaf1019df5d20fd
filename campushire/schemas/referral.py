from pydantic import BaseModel, Field
from typing import Literal, Optional


class ReferralDecision(BaseModel):
    alumni_response: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)


class MarkRead(BaseModel):
    read_by: Literal["student", "alumni"]
