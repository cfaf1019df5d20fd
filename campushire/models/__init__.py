from campushire.models.mongodb_models import (
    DOCUMENT_MODELS,
    User, UserRole, UserProfile, VerificationRecord, VerificationStatus,
    ExperienceEntry, AwardEntry, SpamScoreEvent, ScoreSource,
    SpamReport, SpamReportReason, SpamReportStatus,
    Connection, ConnectionStatus, Message, Alert, AlertType,
    Job, JobType, Applicant, ApplicantStatus, SalaryRange, JobRequirements,
    Referral, ReferralStatus,
    Course, Checkpoint, Enrollment, CompletedCheckpoint,
    QASession, QAStudentEntry, QAStudentStatus, JobFAQ, FAQCategory,
)

__all__ = [
    "DOCUMENT_MODELS",
    "User", "UserRole", "UserProfile", "VerificationRecord", "VerificationStatus",
    "ExperienceEntry", "AwardEntry", "SpamScoreEvent", "ScoreSource",
    "SpamReport", "SpamReportReason", "SpamReportStatus",
    "Connection", "ConnectionStatus", "Message", "Alert", "AlertType",
    "Job", "JobType", "Applicant", "ApplicantStatus", "SalaryRange", "JobRequirements",
    "Referral", "ReferralStatus",
    "Course", "Checkpoint", "Enrollment", "CompletedCheckpoint",
    "QASession", "QAStudentEntry", "QAStudentStatus", "JobFAQ", "FAQCategory",
]
