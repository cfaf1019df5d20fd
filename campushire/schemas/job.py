from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from campushire.models.mongodb_models import ApplicantStatus, JobRequirements, JobType, SalaryRange


class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    company: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    type: JobType = JobType.FULL_TIME
    salary: SalaryRange = Field(default_factory=SalaryRange)
    requirements: JobRequirements = Field(default_factory=JobRequirements)
    tags: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    company: Optional[str] = None
    location: Optional[str] = None
    type: Optional[JobType] = None
    salary: Optional[SalaryRange] = None
    requirements: Optional[JobRequirements] = None
    tags: Optional[List[str]] = None
    deadline: Optional[datetime] = None
    is_active: Optional[bool] = None


class ApplicantStatusUpdate(BaseModel):
    status: ApplicantStatus
    notes: Optional[str] = None
