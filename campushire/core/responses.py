"""Response envelope helpers shared by every endpoint module.

Every payload has the shape ``{success, message?, data?, error?}``. Paginated
listings carry ``{currentPage, totalPages, total<Entity>}`` under
``data.pagination``.
"""

from typing import Any, Dict, Iterable, List, Optional

from beanie import PydanticObjectId
from bson import ObjectId
from fastapi import HTTPException, status
from pydantic import BaseModel

USER_PRIVATE_FIELDS = {"password_hash", "password_reset_token", "password_reset_expires"}


class ServerError(HTTPException):
    """500 that keeps the original exception for development-mode responses"""

    def __init__(self, message: str, error: Optional[Exception] = None):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)
        self.error = error


def server_error(message: str, error: Optional[Exception] = None) -> ServerError:
    return ServerError(message, error)


def not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def forbidden(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def parse_object_id(value: str, entity: str = "Resource") -> PydanticObjectId:
    """Convert a path/body id to an ObjectId, treating malformed ids as missing"""
    if not value or not ObjectId.is_valid(str(value)):
        raise not_found(entity)
    return PydanticObjectId(str(value))


def success_response(
    data: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def pagination(page: int, limit: int, total: int, entity: str) -> Dict[str, int]:
    return {
        "currentPage": page,
        "totalPages": (total + limit - 1) // limit if limit else 0,
        f"total{entity}": total,
    }


def serialize(document: BaseModel, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    return document.model_dump(mode="json", exclude=set(exclude or ()))


def serialize_many(documents: Iterable[BaseModel], exclude: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
    return [serialize(doc, exclude) for doc in documents]


def serialize_user(user: BaseModel) -> Dict[str, Any]:
    return serialize(user, USER_PRIVATE_FIELDS)


def serialize_users(users: Iterable[BaseModel]) -> List[Dict[str, Any]]:
    return [serialize_user(user) for user in users]


def public_user(user: Optional[BaseModel]) -> Optional[Dict[str, Any]]:
    """Small user summary embedded in other resources"""
    if user is None:
        return None
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "profile": user.profile.model_dump(mode="json", include={"photo", "department", "company", "job_title"}),
    }
