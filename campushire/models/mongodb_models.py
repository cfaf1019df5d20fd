"""MongoDB models using Beanie ODM for the CampusHire platform"""

from beanie import Document, PydanticObjectId, before_event, Replace, Save
from pydantic import BaseModel, Field, EmailStr, ConfigDict, computed_field, field_validator
from pymongo import IndexModel, ASCENDING, DESCENDING
from typing import Optional, List
from datetime import datetime, timedelta
from enum import Enum

REFERRAL_EXPIRY_DAYS = 30
ENROLLMENT_EXPIRY_DAYS = 183


# Enums
class UserRole(str, Enum):
    STUDENT = "Student"
    ALUMNI = "Alumni"
    RECRUITER = "Recruiter"
    ADMIN = "Admin"

class VerificationStatus(str, Enum):
    UNVERIFIED = "unverified"
    APPROVED = "approved"
    REJECTED = "rejected"

class ConnectionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ReferralStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ApplicantStatus(str, Enum):
    APPLIED = "applied"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    HIRED = "hired"

class JobType(str, Enum):
    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    INTERNSHIP = "Internship"
    CONTRACT = "Contract"

class SpamReportReason(str, Enum):
    FAKE_PROFILE = "fake_profile"
    SPAM_MESSAGES = "spam_messages"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    FAKE_JOB_POSTING = "fake_job_posting"
    OTHER = "other"

class SpamReportStatus(str, Enum):
    PENDING = "pending"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

class ScoreSource(str, Enum):
    CONTENT = "content"
    PROFILE = "profile"
    MANUAL = "manual"
    BLOCK_TOGGLE = "block_toggle"

class AlertType(str, Enum):
    CONNECTION_REQUEST = "connectionRequest"
    JOB_POST = "jobPost"
    APPROVAL = "approval"

class QAStudentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"

class FAQCategory(str, Enum):
    APPLICATION_PROCESS = "Application Process"
    JOB_REQUIREMENTS = "Job Requirements"
    COMPANY_CULTURE = "Company Culture"
    INTERVIEW_PROCESS = "Interview Process"
    BENEFITS = "Benefits & Compensation"
    REMOTE_WORK = "Remote Work"
    CAREER_GROWTH = "Career Growth"
    OTHER = "Other"


# Base Document with common fields
class BaseDocument(Document):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @before_event(Replace, Save)
    def refresh_updated_at(self):
        self.updated_at = datetime.utcnow()


# User Management Models
class VerificationRecord(BaseModel):
    document_uploaded: bool = False
    verified: bool = False
    status: VerificationStatus = VerificationStatus.UNVERIFIED
    verified_by: Optional[PydanticObjectId] = None
    verified_at: Optional[datetime] = None
    notes: Optional[str] = None

class ExperienceEntry(BaseModel):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    title: Optional[str] = None
    company: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None

class AwardEntry(BaseModel):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    title: Optional[str] = None
    organization: Optional[str] = None
    year: Optional[str] = None
    description: Optional[str] = None

class UserProfile(BaseModel):
    photo: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None
    school: Optional[str] = None
    college: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    id_card: Optional[str] = None
    company_document: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    links: List[str] = Field(default_factory=list)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    awards: List[AwardEntry] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)

class User(BaseDocument):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password_hash: str
    role: UserRole = Field(default=UserRole.STUDENT)
    is_verified: bool = Field(default=False)
    student_verification: VerificationRecord = Field(default_factory=VerificationRecord)
    alumni_verification: VerificationRecord = Field(default_factory=VerificationRecord)
    recruiter_verification: VerificationRecord = Field(default_factory=VerificationRecord)
    profile: UserProfile = Field(default_factory=UserProfile)
    resume: Optional[str] = None
    spam_score: int = Field(default=0, ge=0, le=100)
    is_blocked: bool = Field(default=False)
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @computed_field
    @property
    def can_perform_action(self) -> bool:
        """Verified and not blocked"""
        return self.is_verified and not self.is_blocked

    @computed_field
    @property
    def profile_complete(self) -> bool:
        if self.role in (UserRole.STUDENT, UserRole.ALUMNI):
            return bool(self.profile.department and self.profile.batch)
        if self.role == UserRole.RECRUITER:
            return bool(self.profile.company and self.profile.job_title)
        return True

    def verification_for(self, role: Optional[UserRole] = None) -> Optional[VerificationRecord]:
        """Verification sub-document for a role (defaults to the user's own role)"""
        role = role or self.role
        return {
            UserRole.STUDENT: self.student_verification,
            UserRole.ALUMNI: self.alumni_verification,
            UserRole.RECRUITER: self.recruiter_verification,
        }.get(role)

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("email", ASCENDING)], unique=True),
            "role",
            "is_verified",
            "spam_score",
        ]

class SpamScoreEvent(BaseDocument):
    user_id: PydanticObjectId
    source: ScoreSource
    reason: str
    requested_delta: int
    applied_delta: int
    previous_score: int
    new_score: int
    blocked: bool = False
    actor_id: Optional[PydanticObjectId] = None

    class Settings:
        name = "spam_score_events"
        indexes = [
            "user_id",
            [("created_at", DESCENDING)],
        ]


# Moderation Models
class SpamReport(BaseDocument):
    reporter_id: PydanticObjectId
    reported_user_id: PydanticObjectId
    reason: SpamReportReason
    description: Optional[str] = Field(None, max_length=500)
    evidence: List[str] = Field(default_factory=list)
    status: SpamReportStatus = Field(default=SpamReportStatus.PENDING)
    admin_notes: Optional[str] = None
    investigated_by: Optional[PydanticObjectId] = None
    resolved_by: Optional[PydanticObjectId] = None
    resolved_at: Optional[datetime] = None

    class Settings:
        name = "spam_reports"
        indexes = [
            "status",
            "reported_user_id",
            "reporter_id",
        ]


# Networking Models
class Connection(BaseDocument):
    requester_id: PydanticObjectId
    target_id: PydanticObjectId
    status: ConnectionStatus = Field(default=ConnectionStatus.PENDING)

    class Settings:
        name = "connections"
        indexes = [
            IndexModel([("requester_id", ASCENDING), ("target_id", ASCENDING)], unique=True),
            "target_id",
            "status",
        ]

class Message(BaseDocument):
    sender_id: PydanticObjectId
    receiver_id: PydanticObjectId
    message: str = Field(..., min_length=1, max_length=2000)

    class Settings:
        name = "messages"
        indexes = [
            "sender_id",
            "receiver_id",
        ]

class Alert(BaseDocument):
    user_id: PydanticObjectId
    type: AlertType
    message: str
    seen: bool = Field(default=False)

    class Settings:
        name = "alerts"
        indexes = [
            "user_id",
            "seen",
        ]


# Job Models
class SalaryRange(BaseModel):
    min: Optional[int] = None
    max: Optional[int] = None
    currency: str = "USD"

class JobRequirements(BaseModel):
    skills: List[str] = Field(default_factory=list)
    experience: Optional[str] = None
    education: str = "Any"

class Applicant(BaseModel):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    user_id: PydanticObjectId
    status: ApplicantStatus = ApplicantStatus.APPLIED
    applied_at: datetime = Field(default_factory=datetime.utcnow)
    resume: Optional[str] = None
    cover_letter: Optional[str] = None
    notes: Optional[str] = None

class Job(BaseDocument):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    company: str
    location: str
    type: JobType = Field(default=JobType.FULL_TIME)
    salary: SalaryRange = Field(default_factory=SalaryRange)
    requirements: JobRequirements = Field(default_factory=JobRequirements)
    tags: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None
    posted_by: PydanticObjectId
    is_active: bool = Field(default=True)
    applicants: List[Applicant] = Field(default_factory=list)
    views: int = 0
    applications: int = 0

    def find_applicant(self, user_id: PydanticObjectId) -> Optional[Applicant]:
        return next((a for a in self.applicants if a.user_id == user_id), None)

    class Settings:
        name = "jobs"
        indexes = [
            "posted_by",
            "is_active",
            "company",
            [("created_at", DESCENDING)],
        ]

class Referral(BaseDocument):
    job_id: PydanticObjectId
    student_id: PydanticObjectId
    alumni_id: PydanticObjectId
    status: ReferralStatus = Field(default=ReferralStatus.PENDING)
    notes: Optional[str] = None
    student_message: str = Field(..., min_length=1, max_length=1000)
    alumni_response: Optional[str] = None
    resume: Optional[str] = None
    cover_letter: Optional[str] = None
    is_read_by_alumni: bool = False
    is_read_by_student: bool = True

    @computed_field
    @property
    def is_expired(self) -> bool:
        return datetime.utcnow() - self.created_at > timedelta(days=REFERRAL_EXPIRY_DAYS)

    class Settings:
        name = "referrals"
        indexes = [
            IndexModel(
                [("job_id", ASCENDING), ("student_id", ASCENDING), ("alumni_id", ASCENDING)],
                unique=True,
            ),
            "alumni_id",
            "status",
        ]


# Learning Models
class Checkpoint(BaseModel):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    name: str
    description: str = ""
    order: int = 1

class CompletedCheckpoint(BaseModel):
    checkpoint_id: PydanticObjectId
    completed_at: datetime = Field(default_factory=datetime.utcnow)

class Enrollment(BaseModel):
    student_id: PydanticObjectId
    enrolled_at: datetime = Field(default_factory=datetime.utcnow)
    completed_checkpoints: List[CompletedCheckpoint] = Field(default_factory=list)
    is_expired: bool = False

    def refresh_expiry(self, now: Optional[datetime] = None) -> bool:
        """Flag the enrollment expired once it is older than six months. Returns True if it changed."""
        if self.is_expired:
            return False
        now = now or datetime.utcnow()
        if now - self.enrolled_at > timedelta(days=ENROLLMENT_EXPIRY_DAYS):
            self.is_expired = True
            return True
        return False

class Course(BaseDocument):
    course_name: str = Field(..., min_length=1)
    posted_by: Optional[PydanticObjectId] = None
    duration: str = "6 months"
    description: str = ""
    banner: str = ""
    video_url: str = ""
    students_enrolled: List[PydanticObjectId] = Field(default_factory=list)
    checkpoints: List[Checkpoint] = Field(default_factory=list)
    enrollments: List[Enrollment] = Field(default_factory=list)

    def enrollment_for(self, student_id: PydanticObjectId) -> Optional[Enrollment]:
        return next((e for e in self.enrollments if e.student_id == student_id), None)

    class Settings:
        name = "courses"
        indexes = [
            "posted_by",
            [("created_at", DESCENDING)],
        ]

class QAStudentEntry(BaseModel):
    user_id: PydanticObjectId
    answers: List[str] = Field(default_factory=list)
    status: QAStudentStatus = QAStudentStatus.PENDING

class QASession(BaseDocument):
    recruiter_id: PydanticObjectId
    job_id: Optional[PydanticObjectId] = None
    session_title: str = Field(..., min_length=1)
    questions: List[str] = Field(default_factory=list)
    students: List[QAStudentEntry] = Field(default_factory=list)

    class Settings:
        name = "qa_sessions"
        indexes = [
            "recruiter_id",
            "job_id",
        ]

class JobFAQ(BaseDocument):
    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1, max_length=2000)
    category: FAQCategory
    tags: List[str] = Field(default_factory=list)
    created_by: PydanticObjectId
    job_id: Optional[PydanticObjectId] = None
    is_active: bool = True
    helpful_count: int = 0
    not_helpful_count: int = 0
    helpful_score: int = 0
    views: int = 0

    def record_feedback(self, is_helpful: bool) -> None:
        if is_helpful:
            self.helpful_count += 1
        else:
            self.not_helpful_count += 1
        self.helpful_score = self.helpful_count - self.not_helpful_count

    class Settings:
        name = "job_faqs"
        indexes = [
            "category",
            "created_by",
            "job_id",
            [("helpful_score", DESCENDING), ("created_at", DESCENDING)],
        ]


DOCUMENT_MODELS = [
    User,
    SpamScoreEvent,
    SpamReport,
    Connection,
    Message,
    Alert,
    Job,
    Referral,
    Course,
    QASession,
    JobFAQ,
]
