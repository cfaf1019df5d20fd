from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from campushire.core.auth import get_current_user, get_recruiter, get_student
from campushire.core.responses import (
    forbidden,
    not_found,
    parse_object_id,
    public_user,
    serialize,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import Job, QASession, QAStudentEntry, QAStudentStatus, User
from campushire.schemas.learning import AnswersSubmit, QASessionCreate

router = APIRouter()

SESSION_SUMMARY_FIELDS = {"id", "session_title", "recruiter_id", "job_id", "questions", "created_at"}


async def get_session_or_404(session_id: str) -> QASession:
    session = await QASession.get(parse_object_id(session_id, "Session"))
    if not session:
        raise not_found("Session")
    return session


def summarize(session: QASession) -> dict:
    return session.model_dump(mode="json", include=SESSION_SUMMARY_FIELDS)


async def populate(session: QASession) -> dict:
    """Full session with recruiter and participating students resolved"""
    user_ids = [session.recruiter_id] + [s.user_id for s in session.students]
    users = {u.id: u for u in await User.find({"_id": {"$in": user_ids}}).to_list()}
    item = serialize(session)
    item["recruiter"] = public_user(users.get(session.recruiter_id))
    for entry, raw in zip(session.students, item["students"]):
        raw["user"] = public_user(users.get(entry.user_id))
    return item


@router.post("/create", status_code=201)
async def create_session(payload: QASessionCreate, current_user: User = Depends(get_recruiter)):
    try:
        session = QASession(
            recruiter_id=current_user.id,
            session_title=payload.session_title,
            questions=payload.questions,
            job_id=parse_object_id(payload.job_id, "Job") if payload.job_id else None,
        )
        await session.insert()
        return success_response({"session": serialize(session)}, "Q&A session created")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create QA session error: {e}")
        raise server_error("Failed to create Q&A session", e)


@router.get("")
async def list_sessions(current_user: User = Depends(get_current_user)):
    try:
        sessions = await QASession.find_all().sort("-created_at").to_list()
        return success_response({"sessions": [summarize(s) for s in sessions]})
    except Exception as e:
        logger.error(f"List sessions error: {e}")
        raise server_error("Failed to list sessions", e)


@router.get("/recruiter/sessions")
async def get_recruiter_sessions(
    include_jobs: bool = Query(True),
    current_user: User = Depends(get_recruiter),
):
    try:
        query = {"recruiter_id": current_user.id}
        if not include_jobs:
            query["job_id"] = None
        sessions = await QASession.find(query).sort("-created_at").to_list()

        job_ids = list({s.job_id for s in sessions if s.job_id})
        jobs = {j.id: j for j in await Job.find({"_id": {"$in": job_ids}}).to_list()}
        items = []
        for session in sessions:
            item = summarize(session)
            job = jobs.get(session.job_id)
            item["job"] = {"id": str(job.id), "title": job.title, "company": job.company} if job else None
            items.append(item)
        return success_response({"sessions": items})
    except Exception as e:
        logger.error(f"Get recruiter QA sessions error: {e}")
        raise server_error("Failed to fetch recruiter Q&A sessions", e)


@router.get("/job/{job_id}")
async def get_job_sessions(job_id: str, current_user: User = Depends(get_current_user)):
    try:
        sessions = await QASession.find(
            QASession.job_id == parse_object_id(job_id, "Job")
        ).sort("-created_at").to_list()
        return success_response(
            {"sessions": [summarize(s) for s in sessions]},
            f"Found {len(sessions)} Q&A session(s) for this job",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get job QA sessions error: {e}")
        raise server_error("Failed to fetch job Q&A sessions", e)


@router.get("/student/{session_id}")
async def get_student_status(session_id: str, current_user: User = Depends(get_current_user)):
    """The caller's answers and status for one session"""
    try:
        session = await get_session_or_404(session_id)
        mine = next((s for s in session.students if s.user_id == current_user.id), None)
        return success_response({
            "status": mine.status.value if mine else QAStudentStatus.PENDING.value,
            "answers": mine.answers if mine else [],
            "questions": session.questions,
            "sessionTitle": session.session_title,
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get student QA status error: {e}")
        raise server_error("Failed to get status", e)


@router.get("/{session_id}")
async def get_session(session_id: str, current_user: User = Depends(get_current_user)):
    try:
        session = await get_session_or_404(session_id)
        return success_response({"session": await populate(session)})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get QA session error: {e}")
        raise server_error("Failed to fetch session", e)


@router.patch("/{session_id}/mark-completed")
async def mark_session_completed(session_id: str, current_user: User = Depends(get_recruiter)):
    try:
        session = await get_session_or_404(session_id)
        if session.recruiter_id != current_user.id:
            raise forbidden("Not authorized")

        for entry in session.students:
            entry.status = QAStudentStatus.COMPLETED
        await session.save()
        return success_response({"session": serialize(session)}, "Session marked completed")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Mark QA completed error: {e}")
        raise server_error("Failed to update session", e)


@router.post("/{session_id}/answers")
async def submit_answers(session_id: str, payload: AnswersSubmit, current_user: User = Depends(get_student)):
    try:
        session = await get_session_or_404(session_id)

        entry = next((s for s in session.students if s.user_id == current_user.id), None)
        if entry is None:
            session.students.append(
                QAStudentEntry(user_id=current_user.id, answers=payload.answers, status=QAStudentStatus.COMPLETED)
            )
        else:
            entry.answers = payload.answers
            entry.status = QAStudentStatus.COMPLETED
        await session.save()
        return success_response(message="Answers submitted")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Submit answers error: {e}")
        raise server_error("Failed to submit answers", e)
