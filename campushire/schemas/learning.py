from pydantic import BaseModel, Field
from typing import Optional, List

from campushire.models.mongodb_models import FAQCategory


class CheckpointCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    order: Optional[int] = None


class CourseCreate(BaseModel):
    course_name: str = Field(..., min_length=1)
    duration: str = "6 months"
    description: str = ""
    banner: str = ""
    video_url: str = ""
    checkpoints: List[CheckpointCreate] = Field(default_factory=list)


class EnrollRequest(BaseModel):
    course_id: str


class CompleteCheckpointRequest(BaseModel):
    course_id: str
    checkpoint_id: str


class QASessionCreate(BaseModel):
    session_title: str = Field(..., min_length=1)
    job_id: Optional[str] = None
    questions: List[str] = Field(..., min_length=1)


class AnswersSubmit(BaseModel):
    answers: List[str] = Field(..., min_length=1)


class FAQCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1, max_length=2000)
    category: FAQCategory
    tags: List[str] = Field(default_factory=list)
    job_id: Optional[str] = None


class FAQUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1, max_length=500)
    answer: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[FAQCategory] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


class FAQFeedback(BaseModel):
    is_helpful: bool
