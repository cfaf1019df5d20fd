from fastapi import APIRouter

from campushire.api.endpoints import (
    admin,
    alerts,
    auth,
    connections,
    courses,
    health,
    job_faq,
    jobs,
    messages,
    qa_sessions,
    referrals,
    resume,
    spam_reports,
    users,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(referrals.router, prefix="/referrals", tags=["referrals"])
api_router.include_router(spam_reports.admin_router, prefix="/admin/spam-reports", tags=["admin"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(connections.router, prefix="/connections", tags=["connections"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
api_router.include_router(courses.router, prefix="/courses", tags=["courses"])
api_router.include_router(qa_sessions.router, prefix="/qa-sessions", tags=["qa-sessions"])
api_router.include_router(job_faq.router, prefix="/job-faq", tags=["job-faq"])
api_router.include_router(resume.router, prefix="/resume", tags=["resume"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
api_router.include_router(spam_reports.router, prefix="/spam-reports", tags=["spam-reports"])
