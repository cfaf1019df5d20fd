from pydantic import BaseModel, Field
from typing import Optional, List


class ProfileUpdate(BaseModel):
    """Partial update; only provided fields are merged into the profile"""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    photo: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None
    school: Optional[str] = None
    college: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    links: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    interests: Optional[List[str]] = None


class ExperienceCreate(BaseModel):
    title: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    duration: Optional[str] = None
    description: Optional[str] = None


class ExperienceUpdate(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None


class AwardCreate(BaseModel):
    title: str = Field(..., min_length=1)
    organization: Optional[str] = None
    year: Optional[str] = None
    description: Optional[str] = None


class AwardUpdate(BaseModel):
    title: Optional[str] = None
    organization: Optional[str] = None
    year: Optional[str] = None
    description: Optional[str] = None


class SkillsAdd(BaseModel):
    skills: List[str] = Field(..., min_length=1)

