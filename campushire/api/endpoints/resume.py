import os

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from campushire.core.auth import get_current_user
from campushire.core.config import settings
from campushire.core.responses import server_error, success_response
from campushire.models.mongodb_models import User
from campushire.services.resume_builder import render_resume

router = APIRouter()


@router.post("/generate")
async def generate_resume(current_user: User = Depends(get_current_user)):
    """Render the caller's profile to a PDF and store it as their resume"""
    try:
        filename = await run_in_threadpool(
            render_resume, current_user, os.path.join(settings.UPLOAD_DIR, "resumes")
        )
        current_user.resume = f"resumes/{filename}"
        await current_user.save()

        logger.info(f"Generated resume {filename} for user {current_user.id}")
        return success_response(
            {
                "filename": filename,
                "url": f"{settings.BASE_URL.rstrip('/')}/uploads/resumes/{filename}",
            },
            "Resume PDF generated successfully",
        )
    except Exception as e:
        logger.error(f"Generate resume error: {e}")
        raise server_error("Failed to generate resume", e)
