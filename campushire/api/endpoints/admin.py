"""Admin console: verification review, spam monitoring and content management"""

import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from campushire.api.endpoints.jobs import with_posters
from campushire.api.endpoints.referrals import populate as populate_referrals
from campushire.core.audit_logger import get_audit_logger
from campushire.core.auth import get_admin
from campushire.core.responses import (
    bad_request,
    not_found,
    pagination,
    parse_object_id,
    public_user,
    serialize,
    serialize_many,
    serialize_user,
    serialize_users,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import (
    Job,
    Message,
    Referral,
    ReferralStatus,
    ScoreSource,
    SpamScoreEvent,
    User,
    UserRole,
    VerificationStatus,
)
from campushire.schemas.moderation import (
    BlockUserRequest,
    SpamCheckRequest,
    SpamScoreUpdate,
    VerificationDecision,
)
from campushire.services.spam_detection import content_spam_scorer, profile_spam_evaluator
from campushire.services.spam_score import spam_score_service

router = APIRouter()

HIGH_SPAM_SCORE = 5
SPAM_MONITOR_SCORE = 3

# role -> (verification field, display name, article for "User is not ...")
VERIFIABLE_ROLES = {
    UserRole.ALUMNI: ("alumni_verification", "Alumni", "an alumni"),
    UserRole.STUDENT: ("student_verification", "Student", "a student"),
    UserRole.RECRUITER: ("recruiter_verification", "Recruiter", "a recruiter"),
}


def _regex(value: str) -> dict:
    return {"$regex": re.escape(value.strip()), "$options": "i"}


def pending_verification_query(role: Optional[UserRole] = None) -> dict:
    roles = [role] if role else list(VERIFIABLE_ROLES)
    clauses = [
        {"role": r.value, "is_verified": False, f"{VERIFIABLE_ROLES[r][0]}.status": VerificationStatus.UNVERIFIED.value}
        for r in roles
    ]
    return clauses[0] if len(clauses) == 1 else {"$or": clauses}


async def get_user_or_404(user_id: str, entity: str = "User") -> User:
    user = await User.get(parse_object_id(user_id, entity))
    if not user:
        raise not_found(entity)
    return user


@router.get("/dashboard")
async def get_dashboard(admin: User = Depends(get_admin)):
    try:
        stats = {
            "total_users": await User.find_all().count(),
            "total_jobs": await Job.find_all().count(),
            "total_referrals": await Referral.find_all().count(),
            "pending_verifications": await User.find(pending_verification_query()).count(),
            "high_spam_users": await User.find(User.spam_score >= HIGH_SPAM_SCORE).count(),
            "active_jobs": await Job.find(Job.is_active == True).count(),  # noqa: E712
        }
        recent_users = await User.find_all().sort("-created_at").limit(5).to_list()
        recent_jobs = await Job.find_all().sort("-created_at").limit(5).to_list()
        recent_referrals = await Referral.find_all().sort("-created_at").limit(5).to_list()

        return success_response({
            "stats": stats,
            "recent_users": [
                {**public_user(u), "is_verified": u.is_verified} for u in recent_users
            ],
            "recent_jobs": [
                {"id": str(j.id), "title": j.title, "company": j.company, "is_active": j.is_active}
                for j in recent_jobs
            ],
            "recent_referrals": await populate_referrals(recent_referrals),
        })
    except Exception as e:
        logger.error(f"Get dashboard stats error: {e}")
        raise server_error("Failed to get dashboard statistics", e)


@router.get("/users")
async def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    is_verified: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    spam_score: Optional[int] = Query(None, ge=0),
    admin: User = Depends(get_admin),
):
    try:
        query: dict = {}
        if role:
            query["role"] = role.value
        if is_verified is not None:
            query["is_verified"] = is_verified
        if spam_score:
            query["spam_score"] = {"$gte": spam_score}
        if search and search.strip():
            query["$or"] = [{"name": _regex(search)}, {"email": _regex(search)}]

        total = await User.find(query).count()
        users = await User.find(query).sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "users": serialize_users(users),
            "pagination": pagination(page, limit, total, "Users"),
        })
    except Exception as e:
        logger.error(f"Get all users error: {e}")
        raise server_error("Failed to get users", e)


async def list_pending(role: UserRole, page: int, limit: int) -> dict:
    _, display, _ = VERIFIABLE_ROLES[role]
    query = pending_verification_query(role)
    total = await User.find(query).count()
    users = await User.find(query).sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
    entity = display if role == UserRole.ALUMNI else f"{display}s"
    return success_response({
        entity.lower(): serialize_users(users),
        "pagination": pagination(page, limit, total, entity),
    })


async def review_verification(user_id: str, role: UserRole, payload: VerificationDecision, admin: User) -> dict:
    """Approve or reject a role verification. Rejected accounts can be reviewed again later."""
    field, display, article = VERIFIABLE_ROLES[role]
    user = await get_user_or_404(user_id, display)
    if user.role != role:
        raise bad_request(f"User is not {article}")

    record = getattr(user, field)
    record.verified = payload.verified
    record.status = VerificationStatus.APPROVED if payload.verified else VerificationStatus.REJECTED
    record.verified_by = admin.id
    record.verified_at = datetime.utcnow()
    record.notes = payload.notes or ("Approved by admin" if payload.verified else "Rejected by admin")
    user.is_verified = payload.verified
    await user.save()

    await get_audit_logger().log_admin_action(
        str(admin.id), admin.email, f"verify_{role.value.lower()}", user.id,
        {"approved": payload.verified, "notes": record.notes},
    )
    message = (
        f"{display} account verified successfully" if payload.verified
        else f"{display} account verification rejected"
    )
    return success_response({display.lower(): serialize_user(user)}, message)


@router.get("/alumni-verifications")
async def get_alumni_verifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(get_admin),
):
    try:
        return await list_pending(UserRole.ALUMNI, page, limit)
    except Exception as e:
        logger.error(f"Get pending alumni verifications error: {e}")
        raise server_error("Failed to get pending alumni verifications", e)


@router.patch("/verify-alumni/{alumni_id}")
async def verify_alumni(alumni_id: str, payload: VerificationDecision, admin: User = Depends(get_admin)):
    try:
        return await review_verification(alumni_id, UserRole.ALUMNI, payload, admin)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Verify alumni account error: {e}")
        raise server_error("Failed to verify alumni account", e)


@router.get("/student-verifications")
async def get_student_verifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(get_admin),
):
    try:
        return await list_pending(UserRole.STUDENT, page, limit)
    except Exception as e:
        logger.error(f"Get pending student verifications error: {e}")
        raise server_error("Failed to get pending student verifications", e)


@router.patch("/verify-student/{student_id}")
async def verify_student(student_id: str, payload: VerificationDecision, admin: User = Depends(get_admin)):
    try:
        return await review_verification(student_id, UserRole.STUDENT, payload, admin)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Verify student account error: {e}")
        raise server_error("Failed to verify student account", e)


@router.get("/recruiter-verifications")
async def get_recruiter_verifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(get_admin),
):
    try:
        return await list_pending(UserRole.RECRUITER, page, limit)
    except Exception as e:
        logger.error(f"Get pending recruiter verifications error: {e}")
        raise server_error("Failed to get pending recruiter verifications", e)


@router.patch("/verify-recruiter/{recruiter_id}")
async def verify_recruiter(recruiter_id: str, payload: VerificationDecision, admin: User = Depends(get_admin)):
    try:
        return await review_verification(recruiter_id, UserRole.RECRUITER, payload, admin)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Verify recruiter account error: {e}")
        raise server_error("Failed to verify recruiter account", e)


# Spam monitoring
@router.get("/spam-monitor")
async def get_spam_monitor(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(get_admin),
):
    try:
        query = {"spam_score": {"$gte": SPAM_MONITOR_SCORE}}
        total = await User.find(query).count()
        users = await User.find(query).sort([("spam_score", -1), ("created_at", -1)]) \
            .skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "users": serialize_users(users),
            "pagination": pagination(page, limit, total, "Users"),
        })
    except Exception as e:
        logger.error(f"Get spam monitor error: {e}")
        raise server_error("Failed to get spam monitor data", e)


@router.get("/users/spam-detection")
async def get_users_with_spam_detection(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    spam_threshold: Optional[int] = Query(None, ge=0),
    admin: User = Depends(get_admin),
):
    """Run the profile evaluator over a page of users and charge what it finds to their score"""
    try:
        query: dict = {}
        if role:
            query["role"] = role.value
        if spam_threshold:
            query["spam_score"] = {"$gte": spam_threshold}

        total = await User.find(query).count()
        users = await User.find(query).sort([("spam_score", -1), ("created_at", -1)]) \
            .skip((page - 1) * limit).limit(limit).to_list()

        items = []
        for user in users:
            sent = await Message.find(Message.sender_id == user.id).to_list()
            result = profile_spam_evaluator.evaluate(
                links=user.profile.links,
                messages=[m.message for m in sent],
                linkedin=user.profile.linkedin,
                github=user.profile.github,
            )
            if result.spam_score > 0:
                await spam_score_service.adjust(
                    user,
                    result.spam_score,
                    ScoreSource.PROFILE,
                    "; ".join(result.detected_patterns) or "Profile spam detection",
                    actor_id=admin.id,
                )
            items.append({**serialize_user(user), "spam_detection": result.model_dump()})

        return success_response({
            "users": items,
            "pagination": pagination(page, limit, total, "Users"),
        })
    except Exception as e:
        logger.error(f"Get users with spam detection error: {e}")
        raise server_error("Failed to get users with spam detection", e)


@router.post("/spam-check")
async def spam_check(payload: SpamCheckRequest, admin: User = Depends(get_admin)):
    """Score a piece of text without charging anyone"""
    return success_response({"result": content_spam_scorer.score(payload.text).model_dump()})


@router.get("/users/{user_id}/spam-history")
async def get_spam_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(get_admin),
):
    try:
        user = await get_user_or_404(user_id)
        events = await SpamScoreEvent.find(SpamScoreEvent.user_id == user.id) \
            .sort("-created_at").limit(limit).to_list()
        return success_response({
            "user": public_user(user),
            "spam_score": user.spam_score,
            "is_blocked": user.is_blocked,
            "events": serialize_many(events),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get spam history error: {e}")
        raise server_error("Failed to get spam history", e)


@router.patch("/block-user/{user_id}")
async def toggle_user_block(user_id: str, payload: BlockUserRequest, admin: User = Depends(get_admin)):
    try:
        user = await get_user_or_404(user_id)
        change = await spam_score_service.toggle_block(user, payload.is_blocked, admin.id, payload.reason)
        await get_audit_logger().log_admin_action(
            str(admin.id), admin.email, "block_user" if payload.is_blocked else "unblock_user", user.id,
            {"reason": payload.reason, "spam_score": change.new_score},
        )
        return success_response(
            {"user": serialize_user(user)},
            f"User {'blocked' if payload.is_blocked else 'unblocked'} successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Toggle user block error: {e}")
        raise server_error("Failed to update user status", e)


@router.patch("/update-spam-score/{user_id}")
async def update_spam_score(user_id: str, payload: SpamScoreUpdate, admin: User = Depends(get_admin)):
    try:
        user = await get_user_or_404(user_id)
        try:
            change = await spam_score_service.set_manual(user, payload.spam_score, admin.id, payload.reason)
        except ValueError as e:
            raise bad_request(str(e))

        await get_audit_logger().log_admin_action(
            str(admin.id), admin.email, "update_spam_score", user.id,
            {"previous_score": change.previous_score, "new_score": change.new_score, "reason": payload.reason},
        )
        return success_response({"user": serialize_user(user)}, "Spam score updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update spam score error: {e}")
        raise server_error("Failed to update spam score", e)


# Content management
@router.get("/jobs")
async def get_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_active: Optional[bool] = Query(None),
    company: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    admin: User = Depends(get_admin),
):
    try:
        query: dict = {}
        if is_active is not None:
            query["is_active"] = is_active
        if company:
            query["company"] = _regex(company)
        if search and search.strip():
            query["$or"] = [{"title": _regex(search)}, {"description": _regex(search)}]

        total = await Job.find(query).count()
        jobs = await Job.find(query).sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "jobs": await with_posters(jobs, exclude=None),
            "pagination": pagination(page, limit, total, "Jobs"),
        })
    except Exception as e:
        logger.error(f"Get all jobs error: {e}")
        raise server_error("Failed to get jobs", e)


@router.patch("/toggle-job/{job_id}")
async def toggle_job(job_id: str, admin: User = Depends(get_admin)):
    try:
        job = await Job.get(parse_object_id(job_id, "Job"))
        if not job:
            raise not_found("Job")
        job.is_active = not job.is_active
        await job.save()

        await get_audit_logger().log_admin_action(
            str(admin.id), admin.email, "toggle_job", job.id, {"is_active": job.is_active}
        )
        return success_response(
            {"job": serialize(job)},
            f"Job {'activated' if job.is_active else 'deactivated'} successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Toggle job status error: {e}")
        raise server_error("Failed to update job status", e)


@router.delete("/delete-job/{job_id}")
async def delete_job(job_id: str, admin: User = Depends(get_admin)):
    try:
        job = await Job.get(parse_object_id(job_id, "Job"))
        if not job:
            raise not_found("Job")
        await job.delete()
        await get_audit_logger().log_admin_action(str(admin.id), admin.email, "delete_job", job_id)
        return success_response(message="Job deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete job error: {e}")
        raise server_error("Failed to delete job", e)


@router.get("/referrals")
async def get_referrals(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ReferralStatus] = Query(None),
    search: Optional[str] = Query(None),
    admin: User = Depends(get_admin),
):
    try:
        query: dict = {}
        if status:
            query["status"] = status.value
        if search and search.strip():
            matched = [u.id for u in await User.find({"name": _regex(search)}).to_list()]
            query["$or"] = [{"student_id": {"$in": matched}}, {"alumni_id": {"$in": matched}}]

        total = await Referral.find(query).count()
        referrals = await Referral.find(query).sort("-created_at") \
            .skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "referrals": await populate_referrals(referrals),
            "pagination": pagination(page, limit, total, "Referrals"),
        })
    except Exception as e:
        logger.error(f"Get all referrals error: {e}")
        raise server_error("Failed to get referrals", e)


@router.delete("/delete-referral/{referral_id}")
async def delete_referral(referral_id: str, admin: User = Depends(get_admin)):
    try:
        referral = await Referral.get(parse_object_id(referral_id, "Referral"))
        if not referral:
            raise not_found("Referral")
        await referral.delete()
        await get_audit_logger().log_admin_action(str(admin.id), admin.email, "delete_referral", referral_id)
        return success_response(message="Referral deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete referral error: {e}")
        raise server_error("Failed to delete referral", e)


@router.get("/audit-logs")
async def get_audit_logs(
    user_id: Optional[str] = Query(None),
    event_type: Optional[str] = Query(None),
    target_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    admin: User = Depends(get_admin),
):
    logs = await get_audit_logger().get_audit_logs(
        user_id=user_id, event_type=event_type, target_id=target_id, limit=limit
    )
    return success_response({"logs": logs, "count": len(logs)})
