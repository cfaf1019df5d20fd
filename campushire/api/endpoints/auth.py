import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from loguru import logger
from pydantic import ValidationError

from campushire.core.audit_logger import AuditEvent, get_audit_logger
from campushire.core.auth import get_current_user
from campushire.core.config import settings
from campushire.core.responses import bad_request, forbidden, server_error, success_response
from campushire.core.security import (
    create_access_token,
    generate_reset_token,
    get_password_hash,
    hash_reset_token,
    verify_password,
)
from campushire.models.mongodb_models import User, UserRole
from campushire.schemas.auth import CreateAdminRequest, ForgotPasswordRequest, LoginRequest, ResetPasswordRequest
from campushire.utils.file_upload import save_upload

router = APIRouter()

BRACU_ID_PATTERN = re.compile(r"^\d{8}$")


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def auth_user_payload(user: User, include_profile: bool = True) -> dict:
    payload = {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "is_verified": user.is_verified,
    }
    if include_profile:
        payload["profile"] = user.profile.model_dump(mode="json")
    return payload


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    name: str = Form(..., min_length=1, max_length=50),
    email: str = Form(...),
    password: str = Form(..., min_length=6),
    role: UserRole = Form(UserRole.STUDENT),
    department: Optional[str] = Form(None),
    batch: Optional[str] = Form(None),
    company: Optional[str] = Form(None),
    job_title: Optional[str] = Form(None),
    id_card: Optional[UploadFile] = File(None),
):
    """Register a Student, Alumni or Recruiter account. Every account starts unverified."""
    try:
        email = email.strip().lower()
        if role == UserRole.ADMIN:
            raise bad_request("Invalid role")

        if await User.find_one(User.email == email):
            raise bad_request("User with this email already exists")

        has_id_card = id_card is not None and bool(id_card.filename)
        if role in (UserRole.STUDENT, UserRole.ALUMNI) and not has_id_card:
            raise bad_request("BRACU ID card is required for verification")

        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            is_verified=False,
        )
        if role in (UserRole.STUDENT, UserRole.ALUMNI):
            user.profile.department = department
            user.profile.batch = batch
            user.profile.id_card = await save_upload(id_card, "id_card")
            user.verification_for().document_uploaded = True
        elif role == UserRole.RECRUITER:
            user.profile.company = company
            user.profile.job_title = job_title

        await user.insert()

        await get_audit_logger().log_registration(str(user.id), user.email, role.value, get_client_ip(request))
        logger.info(f"Registered {role.value} account {user.email}")

        return success_response(
            {"user": auth_user_payload(user, include_profile=False), "token": create_access_token(user.id)},
            "Account created successfully. Please wait for admin verification before you can access the platform.",
        )
    except ValidationError as e:
        raise bad_request(e.errors()[0]["msg"] if e.errors() else "Invalid registration data")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise server_error("Registration failed", e)


@router.post("/login")
async def login(payload: LoginRequest, request: Request):
    try:
        audit = get_audit_logger()
        ip_address = get_client_ip(request)

        user = await User.find_one(User.email == payload.email)
        if not user or not verify_password(payload.password, user.password_hash):
            await audit.log_login_attempt(payload.email, ip_address, False, failure_reason="invalid_credentials")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        if user.is_blocked:
            await audit.log_login_attempt(payload.email, ip_address, False, str(user.id), "blocked")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account has been blocked. Please contact admin.",
            )

        if not user.is_verified:
            await audit.log_login_attempt(payload.email, ip_address, False, str(user.id), "unverified")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account pending verification. Please wait for admin approval.",
            )

        await audit.log_login_attempt(payload.email, ip_address, True, str(user.id))
        return success_response(
            {"user": auth_user_payload(user), "token": create_access_token(user.id)},
            "Login successful",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise server_error("Login failed", e)


@router.post("/create-admin", status_code=status.HTTP_201_CREATED)
async def create_admin(payload: Optional[CreateAdminRequest] = None):
    """Bootstrap an admin account outside production"""
    try:
        if settings.is_production:
            raise forbidden("Admin creation not allowed in production")

        if await User.find_one(User.role == UserRole.ADMIN):
            raise bad_request("Admin account already exists")

        admin = User(
            name=payload.name if payload else "Admin User",
            email=payload.email if payload else settings.DEFAULT_ADMIN_EMAIL,
            password_hash=get_password_hash(payload.password if payload else settings.DEFAULT_ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            is_verified=True,
        )
        admin.profile.department = "Administration"
        admin.profile.batch = "Admin"
        await admin.insert()

        logger.info(f"Admin account created: {admin.email}")
        return success_response(
            {"user": auth_user_payload(admin, include_profile=False)},
            "Admin account created successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create admin error: {e}")
        raise server_error("Failed to create admin account", e)


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return success_response({"user": auth_user_payload(current_user)})


@router.post("/logout")
async def logout(request: Request, current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy"""
    await get_audit_logger().log_event(
        AuditEvent.LOGOUT,
        user_id=str(current_user.id),
        user_email=current_user.email,
        ip_address=get_client_ip(request),
    )
    return success_response(message="Logged out successfully")


@router.post("/forgot-password")
async def forgot_password(payload: ForgotPasswordRequest, request: Request):
    try:
        user = await User.find_one(User.email == payload.email.lower())
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User with this email does not exist",
            )

        token, token_hash, expires_at = generate_reset_token()
        user.password_reset_token = token_hash
        user.password_reset_expires = expires_at
        await user.save()

        await get_audit_logger().log_event(
            AuditEvent.PASSWORD_RESET_REQUEST,
            user_id=str(user.id),
            user_email=user.email,
            ip_address=get_client_ip(request),
        )

        # No mail delivery; the token is only exposed to developers
        data = None
        if settings.is_development:
            logger.info(f"Password reset token for {user.email}: {token}")
            data = {"reset_token": token}
        return success_response(data, "Password reset email sent")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Forgot password error: {e}")
        raise server_error("Failed to send reset email", e)


@router.post("/reset-password")
async def reset_password(payload: ResetPasswordRequest, request: Request):
    try:
        user = await User.find_one(User.password_reset_token == hash_reset_token(payload.token))
        if not user or not user.password_reset_expires or user.password_reset_expires <= datetime.utcnow():
            raise bad_request("Invalid or expired reset token")

        user.password_hash = get_password_hash(payload.password)
        user.password_reset_token = None
        user.password_reset_expires = None
        await user.save()

        await get_audit_logger().log_event(
            AuditEvent.PASSWORD_RESET_SUCCESS,
            user_id=str(user.id),
            user_email=user.email,
            ip_address=get_client_ip(request),
        )
        return success_response(message="Password reset successful")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Reset password error: {e}")
        raise server_error("Failed to reset password", e)


@router.get("/verify-email")
async def verify_email(
    email: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    bracu_id: Optional[str] = Query(None),
):
    """Pre-registration availability check"""
    try:
        if not email:
            raise bad_request("Email is required")
        email = email.strip().lower()

        if await User.find_one(User.email == email):
            raise bad_request("Email already registered")

        if role == UserRole.RECRUITER:
            domain = email.split("@")[-1]
            if domain not in settings.RECRUITER_DOMAINS:
                raise bad_request("Invalid recruiter domain")

        if role == UserRole.ALUMNI and bracu_id and not BRACU_ID_PATTERN.match(bracu_id):
            raise bad_request("Invalid BRACU ID format")

        return success_response(
            {"email": email, "role": role.value if role else None, "is_available": True},
            "Email verification successful",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Email verification error: {e}")
        raise server_error("Email verification failed", e)
