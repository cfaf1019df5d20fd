from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from loguru import logger

from campushire.core.auth import get_alumni, get_current_user, get_student
from campushire.core.responses import (
    bad_request,
    forbidden,
    not_found,
    pagination,
    parse_object_id,
    public_user,
    serialize,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import Job, Referral, ReferralStatus, User, UserRole
from campushire.schemas.referral import MarkRead, ReferralDecision
from campushire.services.content_filter import moderate
from campushire.services.state_machines import REFERRAL_FSM, InvalidTransition, transition
from campushire.utils.file_upload import save_upload

router = APIRouter()


async def populate(referrals: List[Referral]) -> List[dict]:
    """Attach job and user summaries to each referral"""
    job_ids = list({r.job_id for r in referrals})
    user_ids = list({r.student_id for r in referrals} | {r.alumni_id for r in referrals})
    jobs = {j.id: j for j in await Job.find({"_id": {"$in": job_ids}}).to_list()}
    users = {u.id: u for u in await User.find({"_id": {"$in": user_ids}}).to_list()}

    items = []
    for referral in referrals:
        item = serialize(referral)
        job = jobs.get(referral.job_id)
        item["job"] = {"id": str(job.id), "title": job.title, "company": job.company} if job else None
        item["student"] = public_user(users.get(referral.student_id))
        item["alumni"] = public_user(users.get(referral.alumni_id))
        items.append(item)
    return items


async def get_referral_or_404(referral_id: str) -> Referral:
    referral = await Referral.get(parse_object_id(referral_id, "Referral"))
    if not referral:
        raise not_found("Referral")
    return referral


async def decide(referral_id: str, action: str, payload: ReferralDecision, alumni: User) -> Referral:
    """Apply an approve/reject decision by the referral's alumni"""
    referral = await get_referral_or_404(referral_id)
    if referral.alumni_id != alumni.id:
        raise forbidden(f"Not authorized to {action} this referral")

    try:
        next_status = transition(REFERRAL_FSM, referral.status, action)
    except InvalidTransition:
        raise bad_request("Referral is not pending")

    await moderate(payload.model_dump(), alumni)

    referral.status = ReferralStatus(next_status)
    referral.alumni_response = payload.alumni_response
    if payload.notes is not None:
        referral.notes = payload.notes
    referral.is_read_by_student = False
    await referral.save()
    logger.info(f"Referral {referral.id} {next_status} by alumni {alumni.id}")
    return referral


@router.post("/request", status_code=201)
async def request_referral(
    job_id: str = Form(...),
    alumni_id: str = Form(...),
    student_message: str = Form(..., min_length=1, max_length=1000),
    notes: Optional[str] = Form(None),
    resume: Optional[UploadFile] = File(None),
    cover_letter: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_student),
):
    try:
        warning = await moderate({"student_message": student_message, "notes": notes}, current_user)

        job = await Job.get(parse_object_id(job_id, "Job"))
        if not job:
            raise not_found("Job")

        alumni = await User.get(parse_object_id(alumni_id, "Alumni"))
        if not alumni or alumni.role != UserRole.ALUMNI or not alumni.is_verified:
            raise HTTPException(status_code=404, detail="Alumni not found or not verified")

        existing = await Referral.find_one(
            Referral.job_id == job.id,
            Referral.student_id == current_user.id,
            Referral.alumni_id == alumni.id,
        )
        if existing:
            raise bad_request("Referral request already exists")

        referral = Referral(
            job_id=job.id,
            student_id=current_user.id,
            alumni_id=alumni.id,
            student_message=student_message,
            notes=notes,
            resume=await save_upload(resume, "resume"),
            cover_letter=await save_upload(cover_letter, "cover_letter"),
        )
        await referral.insert()

        data = {"referral": (await populate([referral]))[0]}
        if warning:
            data["spam_warning"] = warning
        return success_response(data, "Referral request sent successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Request referral error: {e}")
        raise server_error("Failed to request referral", e)


@router.get("/my-requests")
async def get_my_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_student),
):
    try:
        total = await Referral.find(Referral.student_id == current_user.id).count()
        referrals = await Referral.find(Referral.student_id == current_user.id) \
            .sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "referrals": await populate(referrals),
            "pagination": pagination(page, limit, total, "Referrals"),
        })
    except Exception as e:
        logger.error(f"Get my referral requests error: {e}")
        raise server_error("Failed to get referral requests", e)


@router.get("/alumni")
async def get_alumni_referrals(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ReferralStatus] = Query(None),
    current_user: User = Depends(get_alumni),
):
    try:
        query = {"alumni_id": current_user.id}
        if status:
            query["status"] = status.value
        total = await Referral.find(query).count()
        referrals = await Referral.find(query).sort("-created_at") \
            .skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "referrals": await populate(referrals),
            "pagination": pagination(page, limit, total, "Referrals"),
        })
    except Exception as e:
        logger.error(f"Get alumni referrals error: {e}")
        raise server_error("Failed to get referral requests", e)


@router.get("/alumni/pending")
async def get_pending_referrals(current_user: User = Depends(get_alumni)):
    try:
        referrals = await Referral.find(
            Referral.alumni_id == current_user.id,
            Referral.status == ReferralStatus.PENDING,
        ).sort("-created_at").to_list()
        return success_response({"referrals": await populate(referrals), "count": len(referrals)})
    except Exception as e:
        logger.error(f"Get pending referrals error: {e}")
        raise server_error("Failed to get pending referrals", e)


@router.patch("/{referral_id}/approve")
async def approve_referral(referral_id: str, payload: ReferralDecision, current_user: User = Depends(get_alumni)):
    try:
        referral = await decide(referral_id, "approve", payload, current_user)
        return success_response({"referral": (await populate([referral]))[0]}, "Referral approved successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Approve referral error: {e}")
        raise server_error("Failed to approve referral", e)


@router.patch("/{referral_id}/reject")
async def reject_referral(referral_id: str, payload: ReferralDecision, current_user: User = Depends(get_alumni)):
    try:
        referral = await decide(referral_id, "reject", payload, current_user)
        return success_response({"referral": (await populate([referral]))[0]}, "Referral rejected successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Reject referral error: {e}")
        raise server_error("Failed to reject referral", e)


@router.patch("/{referral_id}/mark-read")
async def mark_referral_read(referral_id: str, payload: MarkRead, current_user: User = Depends(get_current_user)):
    try:
        referral = await get_referral_or_404(referral_id)
        if payload.read_by == "student":
            if referral.student_id != current_user.id:
                raise forbidden("Not authorized to mark this referral as read")
            referral.is_read_by_student = True
        else:
            if referral.alumni_id != current_user.id:
                raise forbidden("Not authorized to mark this referral as read")
            referral.is_read_by_alumni = True
        await referral.save()
        return success_response({"referral": serialize(referral)}, "Referral marked as read")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Mark referral read error: {e}")
        raise server_error("Failed to mark referral as read", e)


@router.get("/job/{job_id}")
async def get_referrals_by_job(
    job_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
):
    try:
        job_oid = parse_object_id(job_id, "Job")
        total = await Referral.find(Referral.job_id == job_oid).count()
        referrals = await Referral.find(Referral.job_id == job_oid) \
            .sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "referrals": await populate(referrals),
            "pagination": pagination(page, limit, total, "Referrals"),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get referrals by job error: {e}")
        raise server_error("Failed to get referrals", e)


@router.get("/{referral_id}")
async def get_referral(referral_id: str, current_user: User = Depends(get_current_user)):
    try:
        referral = await get_referral_or_404(referral_id)
        if current_user.id not in (referral.student_id, referral.alumni_id):
            raise forbidden("Not authorized to view this referral")
        return success_response({"referral": (await populate([referral]))[0]})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get referral error: {e}")
        raise server_error("Failed to get referral", e)


@router.delete("/{referral_id}")
async def delete_referral(referral_id: str, current_user: User = Depends(get_student)):
    try:
        referral = await get_referral_or_404(referral_id)
        if referral.student_id != current_user.id:
            raise forbidden("Not authorized to delete this referral")
        try:
            transition(REFERRAL_FSM, referral.status, "delete")
        except InvalidTransition:
            raise bad_request("Only pending referrals can be deleted")

        await referral.delete()
        return success_response(message="Referral deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete referral error: {e}")
        raise server_error("Failed to delete referral", e)
