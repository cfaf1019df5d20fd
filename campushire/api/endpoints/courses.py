from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from campushire.core.auth import get_admin, get_current_user, get_recruiter, get_student
from campushire.core.responses import (
    bad_request,
    not_found,
    parse_object_id,
    public_user,
    serialize,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import Checkpoint, Course, CompletedCheckpoint, Enrollment, User, UserRole
from campushire.schemas.learning import CompleteCheckpointRequest, CourseCreate, EnrollRequest

router = APIRouter()


async def get_course_or_404(course_id: str) -> Course:
    course = await Course.get(parse_object_id(course_id, "Course"))
    if not course:
        raise not_found("Course")
    return course


async def with_authors(courses: List[Course]) -> List[dict]:
    author_ids = list({c.posted_by for c in courses if c.posted_by})
    authors = {u.id: u for u in await User.find({"_id": {"$in": author_ids}}).to_list()}
    items = []
    for course in courses:
        item = serialize(course)
        item["posted_by"] = public_user(authors.get(course.posted_by))
        item["student_count"] = len(course.students_enrolled)
        items.append(item)
    return items


@router.get("")
async def list_courses(
    recruiter_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
):
    try:
        query = {"posted_by": {"$ne": None}} if recruiter_only else {}
        courses = await Course.find(query).sort("-created_at").to_list()
        items = await with_authors(courses)
        if recruiter_only:
            items = [c for c in items if c["posted_by"] and c["posted_by"]["role"] == UserRole.RECRUITER.value]
        return success_response({"courses": items})
    except Exception as e:
        logger.error(f"List courses error: {e}")
        raise server_error("Failed to list courses", e)


@router.post("/enroll")
async def enroll_in_course(payload: EnrollRequest, current_user: User = Depends(get_student)):
    try:
        course = await get_course_or_404(payload.course_id)

        if course.enrollment_for(current_user.id):
            return success_response({"course": serialize(course)}, "Already enrolled")

        if current_user.id not in course.students_enrolled:
            course.students_enrolled.append(current_user.id)
        course.enrollments.append(Enrollment(student_id=current_user.id))
        await course.save()

        logger.info(f"Student {current_user.id} enrolled in course {course.id}")
        return success_response({"course": serialize(course)}, "Enrolled successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Enroll course error: {e}")
        raise server_error("Failed to enroll", e)


@router.post("/complete-checkpoint")
async def complete_checkpoint(payload: CompleteCheckpointRequest, current_user: User = Depends(get_student)):
    try:
        course = await get_course_or_404(payload.course_id)

        enrollment = course.enrollment_for(current_user.id)
        if not enrollment:
            raise bad_request("Not enrolled in this course")

        checkpoint_id = parse_object_id(payload.checkpoint_id, "Checkpoint")
        if not any(c.id == checkpoint_id for c in course.checkpoints):
            raise not_found("Checkpoint")

        if any(c.checkpoint_id == checkpoint_id for c in enrollment.completed_checkpoints):
            return success_response({"course": serialize(course)}, "Checkpoint already completed")

        enrollment.completed_checkpoints.append(CompletedCheckpoint(checkpoint_id=checkpoint_id))
        await course.save()
        return success_response({"course": serialize(course)}, "Checkpoint completed successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Complete checkpoint error: {e}")
        raise server_error("Failed to complete checkpoint", e)


@router.post("", status_code=201)
async def create_course(payload: CourseCreate, current_user: User = Depends(get_recruiter)):
    try:
        course = Course(
            course_name=payload.course_name,
            duration=payload.duration or "6 months",
            description=payload.description,
            banner=payload.banner,
            video_url=payload.video_url,
            posted_by=current_user.id,
            checkpoints=[
                Checkpoint(name=cp.name, description=cp.description, order=cp.order or index + 1)
                for index, cp in enumerate(payload.checkpoints)
            ],
        )
        await course.insert()
        return success_response({"course": serialize(course)}, "Course created successfully")
    except Exception as e:
        logger.error(f"Create course error: {e}")
        raise server_error("Failed to create course", e)


@router.get("/{course_id}/progress")
async def get_student_progress(course_id: str, current_user: User = Depends(get_student)):
    try:
        course = await get_course_or_404(course_id)

        enrollment = course.enrollment_for(current_user.id)
        if not enrollment:
            raise bad_request("Not enrolled in this course")
        if enrollment.refresh_expiry():
            await course.save()

        completed = {c.checkpoint_id for c in enrollment.completed_checkpoints}
        progress = {
            "total_checkpoints": len(course.checkpoints),
            "completed_checkpoints": len(enrollment.completed_checkpoints),
            "is_expired": enrollment.is_expired,
            "enrolled_at": enrollment.enrolled_at.isoformat(),
            "checkpoints": [
                {
                    **checkpoint.model_dump(mode="json"),
                    "is_completed": checkpoint.id in completed,
                    "is_expired": enrollment.is_expired,
                }
                for checkpoint in course.checkpoints
            ],
        }
        return success_response({"progress": progress})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get student progress error: {e}")
        raise server_error("Failed to get progress", e)


@router.get("/{course_id}")
async def get_course_details(course_id: str, current_user: User = Depends(get_current_user)):
    try:
        course = await get_course_or_404(course_id)

        enrollment = course.enrollment_for(current_user.id)
        if enrollment and enrollment.refresh_expiry():
            await course.save()

        return success_response({
            "course": (await with_authors([course]))[0],
            "enrolled": current_user.id in course.students_enrolled,
            "enrollment": enrollment.model_dump(mode="json") if enrollment else None,
            "student_count": len(course.students_enrolled),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get course details error: {e}")
        raise server_error("Failed to fetch course details", e)


@router.delete("/{course_id}")
async def delete_course(course_id: str, current_user: User = Depends(get_admin)):
    try:
        course = await get_course_or_404(course_id)
        await course.delete()
        logger.info(f"Course {course.id} deleted by admin {current_user.id}")
        return success_response(message="Course deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete course error: {e}")
        raise server_error("Failed to delete course", e)
