from pydantic import BaseModel, Field
from typing import Literal, Optional, List

from campushire.models.mongodb_models import SpamReportReason


class VerificationDecision(BaseModel):
    verified: bool
    notes: Optional[str] = None


class BlockUserRequest(BaseModel):
    is_blocked: bool
    reason: Optional[str] = None


class SpamScoreUpdate(BaseModel):
    spam_score: int
    reason: Optional[str] = None


class SpamCheckRequest(BaseModel):
    text: str = Field(..., min_length=1)


class SpamReportCreate(BaseModel):
    reported_user_id: str
    reason: SpamReportReason
    description: Optional[str] = Field(None, max_length=500)
    evidence: List[str] = Field(default_factory=list)


class SpamReportInvestigate(BaseModel):
    notes: Optional[str] = None


class SpamReportResolve(BaseModel):
    action: Literal["resolve", "dismiss"]
    notes: str = Field(..., min_length=1)
