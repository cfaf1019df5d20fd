import re
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from campushire.core.auth import get_current_user, get_recruiter
from campushire.core.responses import (
    forbidden,
    not_found,
    parse_object_id,
    serialize,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import FAQCategory, Job, JobFAQ, User
from campushire.schemas.learning import FAQCreate, FAQFeedback, FAQUpdate

router = APIRouter()


async def get_faq_or_404(faq_id: str) -> JobFAQ:
    faq = await JobFAQ.get(parse_object_id(faq_id, "FAQ"))
    if not faq:
        raise not_found("FAQ")
    return faq


def ensure_creator(faq: JobFAQ, user: User, action: str) -> None:
    if faq.created_by != user.id:
        raise forbidden(f"Not authorized to {action} this FAQ")


async def populate(faqs: List[JobFAQ]) -> List[dict]:
    creators = {
        u.id: u for u in await User.find({"_id": {"$in": list({f.created_by for f in faqs})}}).to_list()
    }
    jobs = {
        j.id: j for j in await Job.find({"_id": {"$in": list({f.job_id for f in faqs if f.job_id})}}).to_list()
    }
    items = []
    for faq in faqs:
        item = serialize(faq)
        creator = creators.get(faq.created_by)
        item["created_by"] = (
            {"id": str(creator.id), "name": creator.name, "company": creator.profile.company} if creator else None
        )
        job = jobs.get(faq.job_id)
        item["job"] = {"id": str(job.id), "title": job.title, "company": job.company} if job else None
        items.append(item)
    return items


@router.get("")
async def get_faqs(
    category: Optional[str] = Query(None),
    job_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    """Active FAQs, most helpful first"""
    try:
        query: dict = {"is_active": True}
        if category and category != "all":
            query["category"] = category
        if job_id:
            query["job_id"] = parse_object_id(job_id, "Job")
        if search:
            pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
            query["$or"] = [{"question": pattern}, {"answer": pattern}, {"tags": pattern}]

        faqs = await JobFAQ.find(query).sort([("helpful_score", -1), ("created_at", -1)]).to_list()
        return success_response({"faqs": await populate(faqs)}, f"Found {len(faqs)} FAQ(s)")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get FAQs error: {e}")
        raise server_error("Failed to fetch FAQs", e)


@router.get("/categories")
async def get_categories():
    return success_response({"categories": [category.value for category in FAQCategory]})


@router.get("/recruiter/my-faqs")
async def get_recruiter_faqs(current_user: User = Depends(get_recruiter)):
    try:
        faqs = await JobFAQ.find(JobFAQ.created_by == current_user.id).sort("-created_at").to_list()
        return success_response({"faqs": await populate(faqs)})
    except Exception as e:
        logger.error(f"Get recruiter FAQs error: {e}")
        raise server_error("Failed to fetch recruiter FAQs", e)


@router.get("/{faq_id}")
async def get_faq(faq_id: str):
    try:
        faq = await get_faq_or_404(faq_id)
        faq.views += 1
        await faq.save()
        return success_response({"faq": (await populate([faq]))[0]})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get FAQ error: {e}")
        raise server_error("Failed to fetch FAQ", e)


@router.post("", status_code=201)
async def create_faq(payload: FAQCreate, current_user: User = Depends(get_recruiter)):
    try:
        job_id = None
        if payload.job_id:
            job = await Job.get(parse_object_id(payload.job_id, "Job"))
            if not job:
                raise not_found("Job")
            job_id = job.id

        faq = JobFAQ(
            question=payload.question.strip(),
            answer=payload.answer.strip(),
            category=payload.category,
            tags=[tag.strip() for tag in payload.tags if tag.strip()],
            created_by=current_user.id,
            job_id=job_id,
        )
        await faq.insert()
        return success_response({"faq": serialize(faq)}, "FAQ created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create FAQ error: {e}")
        raise server_error("Failed to create FAQ", e)


@router.put("/{faq_id}")
async def update_faq(faq_id: str, payload: FAQUpdate, current_user: User = Depends(get_recruiter)):
    try:
        faq = await get_faq_or_404(faq_id)
        ensure_creator(faq, current_user, "update")

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(faq, field, value)
        await faq.save()
        return success_response({"faq": serialize(faq)}, "FAQ updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update FAQ error: {e}")
        raise server_error("Failed to update FAQ", e)


@router.delete("/{faq_id}")
async def delete_faq(faq_id: str, current_user: User = Depends(get_recruiter)):
    try:
        faq = await get_faq_or_404(faq_id)
        ensure_creator(faq, current_user, "delete")
        await faq.delete()
        return success_response(message="FAQ deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete FAQ error: {e}")
        raise server_error("Failed to delete FAQ", e)


@router.post("/{faq_id}/helpful")
async def mark_helpful(faq_id: str, payload: FAQFeedback, current_user: User = Depends(get_current_user)):
    try:
        faq = await get_faq_or_404(faq_id)
        faq.record_feedback(payload.is_helpful)
        await faq.save()
        return success_response(
            {
                "helpful_count": faq.helpful_count,
                "not_helpful_count": faq.not_helpful_count,
                "helpful_score": faq.helpful_score,
            },
            "Feedback recorded successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Mark helpful error: {e}")
        raise server_error("Failed to record feedback", e)
