"""
Rate Limiting Middleware for FastAPI
Applies a general per-IP budget and a stricter one for auth and content creation
"""

import time
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from campushire.core.auth import get_current_user
from campushire.core.rate_limiter import RATE_LIMITS, check_rate_limit, get_rate_limiter
from campushire.models.mongodb_models import User


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware that applies different limits based on endpoint patterns
    """

    def __init__(self, app, enable_rate_limiting: bool = True):
        super().__init__(app)
        self.enable_rate_limiting = enable_rate_limiting
        self.rate_limiter = get_rate_limiter()

        # (method or None for any, path) -> limit type
        self.endpoint_patterns = {
            (None, "/api/auth/login"): "strict",
            (None, "/api/auth/register"): "strict",
            (None, "/api/auth/forgot-password"): "strict",
            (None, "/api/auth/reset-password"): "strict",
            ("POST", "/api/jobs"): "strict",
            ("POST", "/api/jobs/"): "strict",
            (None, "/api/referrals/request"): "strict",
        }
        self.skip_paths = ["/docs", "/redoc", "/openapi.json", "/api/health", "/uploads", "/favicon.ico"]

    def get_endpoint_type(self, method: str, path: str) -> str:
        for (pattern_method, pattern_path), limit_type in self.endpoint_patterns.items():
            if path == pattern_path and pattern_method in (None, method):
                return limit_type
        return "api_general"

    async def _limit_headers(self, key: str, endpoint_type: str) -> dict:
        config = RATE_LIMITS[endpoint_type]
        remaining = await self.rate_limiter.get_remaining_requests(
            key, config["max_requests"], config["window_seconds"]
        )
        reset_time = await self.rate_limiter.get_reset_time(key, config["window_seconds"])

        headers = {
            "X-RateLimit-Limit": str(config["max_requests"]),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Window": str(config["window_seconds"]),
        }
        if reset_time:
            headers["X-RateLimit-Reset"] = str(int(reset_time.timestamp()))
        return headers

    async def create_rate_limit_response(self, key: str, endpoint_type: str) -> JSONResponse:
        headers = await self._limit_headers(key, endpoint_type)

        block_expiry = self.rate_limiter.get_block_expiry(key)
        if block_expiry:
            headers["Retry-After"] = str(int(block_expiry.timestamp() - time.time()))
        else:
            headers["Retry-After"] = str(RATE_LIMITS[endpoint_type]["window_seconds"])

        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "success": False,
                "message": "Too many requests from this IP, please try again later.",
            },
            headers=headers,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enable_rate_limiting:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.skip_paths):
            return await call_next(request)

        client_ip = get_client_ip(request)
        endpoint_type = self.get_endpoint_type(request.method, request.url.path)
        key = f"{endpoint_type}:{client_ip}"

        if not await check_rate_limit(client_ip, endpoint_type):
            logger.warning(
                f"Rate limit exceeded for client {client_ip} on endpoint {request.url.path} "
                f"(type: {endpoint_type})"
            )
            return await self.create_rate_limit_response(key, endpoint_type)

        response = await call_next(request)

        if response.status_code < 400:
            for name, value in (await self._limit_headers(key, endpoint_type)).items():
                response.headers[name] = value

        return response


async def message_rate_limit(current_user: User = Depends(get_current_user)) -> Optional[bool]:
    """Per-user budget for direct messages"""
    if not await check_rate_limit(str(current_user.id), "messages"):
        logger.warning(f"Message rate limit exceeded for user {current_user.id}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many messages. Please wait before sending another.",
        )
    return True
