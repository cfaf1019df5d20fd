import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from loguru import logger

from campushire.core.audit_logger import get_audit_logger
from campushire.core.auth import get_admin, get_recruiter, get_student, get_verified_student
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
from campushire.models.mongodb_models import Applicant, ApplicantStatus, Job, JobType, User
from campushire.schemas.job import ApplicantStatusUpdate, JobCreate, JobUpdate
from campushire.services.alerts import broadcast_job_post
from campushire.services.content_filter import moderate
from campushire.services.state_machines import APPLICANT_FSM, InvalidTransition, transition
from campushire.utils.file_upload import save_upload

router = APIRouter()

PUBLIC_JOB_EXCLUDE = {"applicants"}


def _regex(value: str) -> dict:
    return {"$regex": re.escape(value.strip()), "$options": "i"}


async def get_job_or_404(job_id: str) -> Job:
    job = await Job.get(parse_object_id(job_id, "Job"))
    if not job:
        raise not_found("Job")
    return job


def ensure_owner(job: Job, user: User, message: str) -> None:
    if job.posted_by != user.id:
        raise forbidden(message)


async def with_posters(jobs, exclude=PUBLIC_JOB_EXCLUDE):
    posters = {
        u.id: u for u in await User.find({"_id": {"$in": list({j.posted_by for j in jobs})}}).to_list()
    }
    items = []
    for job in jobs:
        item = serialize(job, exclude)
        item["posted_by"] = public_user(posters.get(job.posted_by)) or str(job.posted_by)
        items.append(item)
    return items


@router.get("")
async def get_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    type: Optional[JobType] = Query(None),
    company: Optional[str] = Query(None),
    tags: Optional[str] = Query(None),
    min_salary: Optional[int] = Query(None),
    max_salary: Optional[int] = Query(None),
):
    """Public listing of active jobs"""
    try:
        query: dict = {"is_active": True}
        if search:
            query["$or"] = [{"title": _regex(search)}, {"description": _regex(search)}, {"company": _regex(search)}]
        if location:
            query["location"] = _regex(location)
        if type:
            query["type"] = type.value
        if company:
            query["company"] = _regex(company)
        if tags:
            query["tags"] = {"$in": [t.strip() for t in tags.split(",") if t.strip()]}
        if min_salary is not None:
            query["salary.min"] = {"$gte": min_salary}
        if max_salary is not None:
            query["salary.max"] = {"$lte": max_salary}

        jobs = await Job.find(query).sort("-created_at").skip((page - 1) * limit).limit(limit).to_list()
        total = await Job.find(query).count()

        return success_response({
            "jobs": await with_posters(jobs),
            "pagination": pagination(page, limit, total, "Jobs"),
        })
    except Exception as e:
        logger.error(f"Get jobs error: {e}")
        raise server_error("Failed to get jobs", e)


@router.get("/my-postings")
async def get_my_postings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_recruiter),
):
    try:
        total = await Job.find(Job.posted_by == current_user.id).count()
        jobs = await Job.find(Job.posted_by == current_user.id).sort("-created_at") \
            .skip((page - 1) * limit).limit(limit).to_list()

        applicant_ids = list({a.user_id for job in jobs for a in job.applicants})
        applicants = {u.id: u for u in await User.find({"_id": {"$in": applicant_ids}}).to_list()}

        items = []
        for job in jobs:
            item = serialize(job)
            for entry, applicant in zip(item["applicants"], job.applicants):
                entry["user"] = public_user(applicants.get(applicant.user_id))
            items.append(item)

        return success_response({"jobs": items, "pagination": pagination(page, limit, total, "Jobs")})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get my postings error: {e}")
        raise server_error("Failed to get job postings", e)


@router.get("/my-applications")
async def get_my_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ApplicantStatus] = Query(None),
    current_user: User = Depends(get_student),
):
    try:
        jobs = await Job.find({"applicants.user_id": current_user.id}).sort("-created_at").to_list()
        pairs = [(job, job.find_applicant(current_user.id)) for job in jobs]
        if status:
            pairs = [(job, app) for job, app in pairs if app and app.status == status]

        total = len(pairs)
        page_pairs = pairs[(page - 1) * limit: page * limit]
        recruiters = {
            u.id: u for u in await User.find({"_id": {"$in": list({j.posted_by for j, _ in page_pairs})}}).to_list()
        }

        applications = []
        for job, application in page_pairs:
            recruiter = recruiters.get(job.posted_by)
            applications.append({
                "job_id": str(job.id),
                "job_title": job.title,
                "company": job.company,
                "recruiter": recruiter.name if recruiter else None,
                "status": application.status.value,
                "applied_at": application.applied_at.isoformat(),
                "resume": application.resume,
                "cover_letter": application.cover_letter,
                "notes": application.notes,
                "job_deadline": job.deadline.isoformat() if job.deadline else None,
                "is_job_active": job.is_active,
            })

        return success_response({
            "applications": applications,
            "pagination": pagination(page, limit, total, "Applications"),
        })
    except Exception as e:
        logger.error(f"Get my applications error: {e}")
        raise server_error("Failed to get applications", e)


@router.get("/recruiter/summary")
async def get_recruiter_summary(current_user: User = Depends(get_recruiter)):
    """Dashboard numbers for the recruiter's own postings"""
    try:
        now = datetime.utcnow()
        jobs = await Job.find(Job.posted_by == current_user.id).sort("-created_at").to_list()

        applications = [(job, a) for job in jobs for a in job.applicants]
        statuses = [a.status for _, a in applications]

        recent = sorted(applications, key=lambda pair: pair[1].applied_at, reverse=True)[:10]
        students = {
            u.id: u for u in await User.find({"_id": {"$in": list({a.user_id for _, a in recent})}}).to_list()
        }

        return success_response({
            "stats": {
                "jobs": {
                    "total": len(jobs),
                    "active": sum(1 for j in jobs if j.is_active and (j.deadline is None or j.deadline > now)),
                    "expired": sum(1 for j in jobs if j.deadline is not None and j.deadline < now),
                },
                "applications": {
                    "total": len(applications),
                    **{s.value: statuses.count(s) for s in ApplicantStatus},
                },
            },
            "recent_jobs": [
                {
                    "id": str(j.id),
                    "title": j.title,
                    "company": j.company,
                    "is_active": j.is_active,
                    "deadline": j.deadline.isoformat() if j.deadline else None,
                    "applications": j.applications,
                }
                for j in jobs[:5]
            ],
            "recent_applications": [
                {
                    "job_title": job.title,
                    "student_name": students[a.user_id].name if a.user_id in students else None,
                    "student_email": students[a.user_id].email if a.user_id in students else None,
                    "status": a.status.value,
                    "applied_at": a.applied_at.isoformat(),
                }
                for job, a in recent
            ],
        })
    except Exception as e:
        logger.error(f"Get recruiter stats error: {e}")
        raise server_error("Failed to get recruiter statistics", e)


@router.get("/{job_id}/my-application")
async def get_my_application(job_id: str, current_user: User = Depends(get_student)):
    try:
        job = await get_job_or_404(job_id)
        application = job.find_applicant(current_user.id)
        if application is None:
            raise HTTPException(status_code=404, detail="You have not applied for this job")

        return success_response({
            "job": {"title": job.title, "company": job.company},
            "application": application.model_dump(mode="json", exclude={"user_id"}),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get application status error: {e}")
        raise server_error("Failed to get application status", e)


@router.get("/{job_id}")
async def get_job(job_id: str):
    try:
        job = await get_job_or_404(job_id)
        job.views += 1
        await job.save()
        return success_response({"job": (await with_posters([job]))[0]})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get job error: {e}")
        raise server_error("Failed to get job", e)


@router.post("", status_code=201)
async def create_job(payload: JobCreate, current_user: User = Depends(get_recruiter)):
    try:
        warning = await moderate(payload.model_dump(), current_user)

        job = Job(**payload.model_dump(), posted_by=current_user.id)
        await job.insert()

        sent = await broadcast_job_post(job.title)
        logger.info(f"Job {job.id} posted by {current_user.email}; {sent} students alerted")

        data = {"job": serialize(job)}
        if warning:
            data["spam_warning"] = warning
        return success_response(data, "Job posted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create job error: {e}")
        raise server_error("Failed to create job", e)


@router.post("/{job_id}/apply", status_code=201)
async def apply_for_job(
    job_id: str,
    cover_letter_text: Optional[str] = Form(None),
    resume: Optional[UploadFile] = File(None),
    cover_letter: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_verified_student),
):
    try:
        job = await get_job_or_404(job_id)
        if not job.is_active:
            raise bad_request("This job is no longer active")
        if job.find_applicant(current_user.id):
            raise bad_request("You have already applied for this job")

        application = Applicant(
            user_id=current_user.id,
            resume=await save_upload(resume, "resume") or current_user.resume,
            cover_letter=await save_upload(cover_letter, "cover_letter") or cover_letter_text,
        )
        job.applicants.append(application)
        job.applications = len(job.applicants)
        await job.save()

        return success_response(
            {"application": application.model_dump(mode="json")},
            "Application submitted successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Apply for job error: {e}")
        raise server_error("Failed to submit application", e)


@router.patch("/{job_id}/applicant-status/{applicant_id}")
async def update_applicant_status(
    job_id: str,
    applicant_id: str,
    payload: ApplicantStatusUpdate,
    current_user: User = Depends(get_recruiter),
):
    try:
        job = await get_job_or_404(job_id)
        ensure_owner(job, current_user, "Not authorized to update this application")

        target_id = parse_object_id(applicant_id, "Application")
        applicant = next((a for a in job.applicants if a.id == target_id or a.user_id == target_id), None)
        if applicant is None:
            raise not_found("Application")

        try:
            applicant.status = ApplicantStatus(
                transition(APPLICANT_FSM, applicant.status, f"set_{payload.status.value}")
            )
        except InvalidTransition as e:
            raise bad_request(str(e))
        if payload.notes is not None:
            applicant.notes = payload.notes
        await job.save()

        return success_response(
            {"application": applicant.model_dump(mode="json")},
            "Application status updated successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update applicant status error: {e}")
        raise server_error("Failed to update application status", e)


@router.put("/{job_id}")
async def update_job(job_id: str, payload: JobUpdate, current_user: User = Depends(get_recruiter)):
    try:
        job = await get_job_or_404(job_id)
        ensure_owner(job, current_user, "Not authorized to update this job")

        warning = await moderate(payload.model_dump(exclude_unset=True), current_user)
        for field in payload.model_fields_set:
            setattr(job, field, getattr(payload, field))
        await job.save()

        data = {"job": serialize(job)}
        if warning:
            data["spam_warning"] = warning
        return success_response(data, "Job updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update job error: {e}")
        raise server_error("Failed to update job", e)


@router.delete("/{job_id}")
async def delete_job(job_id: str, current_user: User = Depends(get_recruiter)):
    try:
        job = await get_job_or_404(job_id)
        ensure_owner(job, current_user, "Not authorized to delete this job")
        await job.delete()
        return success_response(message="Job deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete job error: {e}")
        raise server_error("Failed to delete job", e)


@router.patch("/{job_id}/toggle")
async def toggle_job_status(job_id: str, admin: User = Depends(get_admin)):
    try:
        job = await get_job_or_404(job_id)
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


@router.put("/{job_id}/admin")
async def update_job_admin(job_id: str, payload: JobUpdate, admin: User = Depends(get_admin)):
    """Admin edit. Ownership, applicants and counters are not part of the accepted body."""
    try:
        job = await get_job_or_404(job_id)
        for field in payload.model_fields_set:
            setattr(job, field, getattr(payload, field))
        await job.save()
        await get_audit_logger().log_admin_action(str(admin.id), admin.email, "update_job", job.id)
        return success_response({"job": serialize(job)}, "Job updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update job admin error: {e}")
        raise server_error("Failed to update job", e)
