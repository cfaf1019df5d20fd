import re
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from loguru import logger

from campushire.core.audit_logger import get_audit_logger
from campushire.core.auth import get_admin, get_current_user, get_student
from campushire.core.responses import (
    bad_request,
    forbidden,
    not_found,
    pagination,
    parse_object_id,
    public_user,
    serialize_user,
    serialize_users,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import (
    AwardEntry,
    ExperienceEntry,
    Job,
    Referral,
    User,
    UserRole,
    VerificationStatus,
)
from campushire.schemas.moderation import BlockUserRequest
from campushire.schemas.user import (
    AwardCreate,
    AwardUpdate,
    ExperienceCreate,
    ExperienceUpdate,
    ProfileUpdate,
    SkillsAdd,
)
from campushire.services.spam_score import spam_score_service
from campushire.utils.file_upload import save_upload

router = APIRouter()

NOT_AUTHORIZED_PROFILE = "Not authorized to update this profile"


async def get_editable_user(user_id: str, current_user: User) -> User:
    """Load a user that the caller may edit (themselves, or anyone for admins)"""
    user = await User.get(parse_object_id(user_id, "User"))
    if not user:
        raise not_found("User")
    if user.id != current_user.id and current_user.role != UserRole.ADMIN:
        raise forbidden(NOT_AUTHORIZED_PROFILE)
    return user


def search_filter(search: Optional[str]) -> dict:
    if not search or not search.strip():
        return {}
    pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
    return {"$or": [{"name": pattern}, {"email": pattern}]}


@router.get("/profile/{user_id}")
async def get_user_profile(user_id: str, current_user: User = Depends(get_current_user)):
    try:
        user = await User.get(parse_object_id(user_id, "User"))
        if not user:
            raise not_found("User")
        return success_response({"user": serialize_user(user)})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get user profile error: {e}")
        raise server_error("Failed to get user profile", e)


@router.put("/profile/{user_id}")
async def update_user_profile(
    user_id: str,
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
):
    try:
        user = await get_editable_user(user_id, current_user)

        changes = payload.model_dump(exclude_unset=True)
        name = changes.pop("name", None)
        if name:
            user.name = name
        for field, value in changes.items():
            setattr(user.profile, field, value)

        await user.save()
        return success_response({"user": serialize_user(user)}, "Profile updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update profile error: {e}")
        raise server_error("Failed to update profile", e)


@router.post("/{user_id}/upload-verification")
async def upload_verification_document(
    user_id: str,
    document: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
):
    """Upload the role's verification document and reset its review state"""
    try:
        user = await User.get(parse_object_id(user_id, "User"))
        if not user:
            raise not_found("User")
        if user.id != current_user.id:
            raise forbidden("Not authorized to upload documents for this user")
        if document is None or not document.filename:
            raise bad_request("No document file provided")

        record = user.verification_for()
        if record is None:
            raise bad_request("Invalid document type for user role")

        if user.role == UserRole.RECRUITER:
            user.profile.company_document = await save_upload(document, "misc")
        else:
            user.profile.id_card = await save_upload(document, "id_card")

        record.document_uploaded = True
        record.verified = False
        record.status = VerificationStatus.UNVERIFIED
        await user.save()

        return success_response(
            {"verification": record.model_dump(mode="json")},
            "Verification document uploaded successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Upload verification document error: {e}")
        raise server_error("Failed to upload verification document", e)


@router.get("/search")
async def search_users(
    q: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
):
    try:
        if not q or not q.strip():
            return success_response({"users": []})
        query = {"is_blocked": False, **search_filter(q)}
        users = await User.find(query).limit(limit).to_list()
        return success_response({"users": [public_user(u) for u in users]})
    except Exception as e:
        logger.error(f"Search users error: {e}")
        raise server_error("Failed to search users", e)


# Experience
@router.post("/{user_id}/experience")
async def add_experience(user_id: str, payload: ExperienceCreate, current_user: User = Depends(get_current_user)):
    try:
        user = await get_editable_user(user_id, current_user)
        user.profile.experience.append(ExperienceEntry(**payload.model_dump()))
        await user.save()
        return success_response(
            {"experience": [e.model_dump(mode="json") for e in user.profile.experience]},
            "Experience added successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Add experience error: {e}")
        raise server_error("Failed to add experience", e)


@router.put("/{user_id}/experience/{experience_id}")
async def update_experience(
    user_id: str,
    experience_id: str,
    payload: ExperienceUpdate,
    current_user: User = Depends(get_current_user),
):
    try:
        user = await get_editable_user(user_id, current_user)
        entry_id = parse_object_id(experience_id, "Experience entry")
        entry = next((e for e in user.profile.experience if e.id == entry_id), None)
        if entry is None:
            raise not_found("Experience entry")

        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(entry, field, value)
        await user.save()
        return success_response({"experience": entry.model_dump(mode="json")}, "Experience updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update experience error: {e}")
        raise server_error("Failed to update experience", e)


@router.delete("/{user_id}/experience/{experience_id}")
async def delete_experience(user_id: str, experience_id: str, current_user: User = Depends(get_current_user)):
    try:
        user = await get_editable_user(user_id, current_user)
        entry_id = parse_object_id(experience_id, "Experience entry")
        user.profile.experience = [e for e in user.profile.experience if e.id != entry_id]
        await user.save()
        return success_response(
            {"experience": [e.model_dump(mode="json") for e in user.profile.experience]},
            "Experience deleted successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete experience error: {e}")
        raise server_error("Failed to delete experience", e)


# Awards
@router.post("/{user_id}/awards")
async def add_award(user_id: str, payload: AwardCreate, current_user: User = Depends(get_current_user)):
    try:
        user = await get_editable_user(user_id, current_user)
        user.profile.awards.append(AwardEntry(**payload.model_dump()))
        await user.save()
        return success_response(
            {"awards": [a.model_dump(mode="json") for a in user.profile.awards]},
            "Award added successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Add award error: {e}")
        raise server_error("Failed to add award", e)


@router.put("/{user_id}/awards/{award_id}")
async def update_award(
    user_id: str,
    award_id: str,
    payload: AwardUpdate,
    current_user: User = Depends(get_current_user),
):
    try:
        user = await get_editable_user(user_id, current_user)
        entry_id = parse_object_id(award_id, "Award")
        award = next((a for a in user.profile.awards if a.id == entry_id), None)
        if award is None:
            raise not_found("Award")

        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(award, field, value)
        await user.save()
        return success_response({"award": award.model_dump(mode="json")}, "Award updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update award error: {e}")
        raise server_error("Failed to update award", e)


@router.delete("/{user_id}/awards/{award_id}")
async def delete_award(user_id: str, award_id: str, current_user: User = Depends(get_current_user)):
    try:
        user = await get_editable_user(user_id, current_user)
        entry_id = parse_object_id(award_id, "Award")
        user.profile.awards = [a for a in user.profile.awards if a.id != entry_id]
        await user.save()
        return success_response(
            {"awards": [a.model_dump(mode="json") for a in user.profile.awards]},
            "Award deleted successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete award error: {e}")
        raise server_error("Failed to delete award", e)


# Skills
@router.post("/{user_id}/skills")
async def add_skills(user_id: str, payload: SkillsAdd, current_user: User = Depends(get_current_user)):
    try:
        user = await get_editable_user(user_id, current_user)
        for skill in (s.strip() for s in payload.skills):
            if skill and skill not in user.profile.skills:
                user.profile.skills.append(skill)
        await user.save()
        return success_response({"skills": user.profile.skills}, "Skill added successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Add skill error: {e}")
        raise server_error("Failed to add skill", e)


@router.delete("/{user_id}/skills/{skill}")
async def delete_skill(user_id: str, skill: str, current_user: User = Depends(get_current_user)):
    try:
        user = await get_editable_user(user_id, current_user)
        user.profile.skills = [s for s in user.profile.skills if s != skill]
        await user.save()
        return success_response({"skills": user.profile.skills}, "Skill deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete skill error: {e}")
        raise server_error("Failed to delete skill", e)


@router.get("/student/application-history")
async def get_student_application_history(current_user: User = Depends(get_student)):
    """Job applications and referral requests of the student, newest first"""
    try:
        applications = []

        jobs = await Job.find({"applicants.user_id": current_user.id}).to_list()
        recruiters = {
            u.id: u for u in await User.find({"_id": {"$in": list({j.posted_by for j in jobs})}}).to_list()
        }
        for job in jobs:
            applicant = job.find_applicant(current_user.id)
            recruiter = recruiters.get(job.posted_by)
            applications.append({
                "type": "job",
                "job_id": str(job.id),
                "job_title": job.title,
                "company": job.company,
                "status": applicant.status.value,
                "applied_at": applicant.applied_at,
                "recruiter_name": recruiter.name if recruiter else None,
                "recruiter_email": recruiter.email if recruiter else None,
            })

        referrals = await Referral.find(Referral.student_id == current_user.id).to_list()
        referral_jobs = {
            j.id: j for j in await Job.find({"_id": {"$in": list({r.job_id for r in referrals})}}).to_list()
        }
        alumni = {
            u.id: u for u in await User.find({"_id": {"$in": list({r.alumni_id for r in referrals})}}).to_list()
        }
        for referral in referrals:
            job = referral_jobs.get(referral.job_id)
            alumnus = alumni.get(referral.alumni_id)
            applications.append({
                "type": "referral",
                "referral_id": str(referral.id),
                "job_title": job.title if job else None,
                "company": job.company if job else None,
                "status": referral.status.value,
                "applied_at": referral.created_at,
                "alumni_name": alumnus.name if alumnus else None,
                "alumni_email": alumnus.email if alumnus else None,
            })

        applications.sort(key=lambda a: a["applied_at"], reverse=True)
        statuses = [a["status"] for a in applications]
        stats = {
            "total_applications": len(applications),
            "job_applications": len(jobs),
            "referral_applications": len(referrals),
            "pending": statuses.count("pending"),
            "applied": statuses.count("applied"),
            "shortlisted": statuses.count("shortlisted"),
            "rejected": statuses.count("rejected"),
            "approved": statuses.count("approved"),
            "hired": statuses.count("hired"),
        }
        for application in applications:
            application["applied_at"] = application["applied_at"].isoformat()

        return success_response({"applications": applications, "stats": stats})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get student application history error: {e}")
        raise server_error("Failed to get application history", e)


async def list_users_by_role(role: UserRole, page: int, limit: int, search: Optional[str]):
    query = {"role": role.value, "is_verified": True, "is_blocked": False, **search_filter(search)}
    users = await User.find(query).sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
    total = await User.find(query).count()
    return success_response({
        "users": serialize_users(users),
        "pagination": pagination(page, limit, total, "Users"),
    })


@router.get("/alumni")
async def get_alumni(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
):
    try:
        return await list_users_by_role(UserRole.ALUMNI, page, limit, search)
    except Exception as e:
        logger.error(f"Get alumni error: {e}")
        raise server_error("Failed to get users", e)


@router.get("/students")
async def get_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
):
    try:
        return await list_users_by_role(UserRole.STUDENT, page, limit, search)
    except Exception as e:
        logger.error(f"Get students error: {e}")
        raise server_error("Failed to get users", e)


@router.get("/recruiters")
async def get_recruiters(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
):
    try:
        return await list_users_by_role(UserRole.RECRUITER, page, limit, search)
    except Exception as e:
        logger.error(f"Get recruiters error: {e}")
        raise server_error("Failed to get users", e)


@router.patch("/block/{user_id}")
async def toggle_user_block(user_id: str, payload: BlockUserRequest, admin: User = Depends(get_admin)):
    try:
        user = await User.get(parse_object_id(user_id, "User"))
        if not user:
            raise not_found("User")

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


@router.delete("/{user_id}")
async def delete_user(user_id: str, admin: User = Depends(get_admin)):
    try:
        user = await User.get(parse_object_id(user_id, "User"))
        if not user:
            raise not_found("User")
        await user.delete()
        await get_audit_logger().log_admin_action(str(admin.id), admin.email, "delete_user", user_id)
        return success_response(message="User deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete user error: {e}")
        raise server_error("Failed to delete user", e)
