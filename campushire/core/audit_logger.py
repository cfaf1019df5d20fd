import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase

from campushire.core.database import get_database

RISK_LOG_LEVELS = {"low": "INFO", "medium": "WARNING", "high": "ERROR"}


class AuditEvent:
    """Account and moderation events recorded in audit_logs"""
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    REGISTRATION = "registration"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET_SUCCESS = "password_reset_success"
    SPAM_REPORT_FILED = "spam_report_filed"
    ADMIN_ACTION = "admin_action"


class AuditLogger:
    """Append-only trail of account and moderation actions.

    Entries go to the ``audit_logs`` collection and to loguru. A failed insert
    never fails the request that triggered it: the entry is dumped to the log
    instead.
    """

    collection_name = "audit_logs"

    def _collection(self, db: Optional[AsyncIOMotorDatabase]):
        return (db if db is not None else get_database())[self.collection_name]

    async def log_event(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        ip_address: Optional[str] = None,
        success: bool = True,
        details: Optional[Dict[str, Any]] = None,
        risk_level: str = "low",
        action: Optional[str] = None,
        target_id: Optional[Any] = None,
        db: Optional[AsyncIOMotorDatabase] = None,
    ) -> str:
        entry = {
            "event_id": uuid.uuid4().hex,
            "event_type": event_type,
            "action": action,
            "target_id": str(target_id) if target_id else None,
            "user_id": str(user_id) if user_id else None,
            "user_email": user_email,
            "ip_address": ip_address,
            "success": success,
            "risk_level": risk_level,
            "details": details or {},
            "timestamp": datetime.utcnow(),
        }

        level = "ERROR" if not success and risk_level == "high" else RISK_LOG_LEVELS.get(risk_level, "INFO")
        logger.log(level, self._describe(entry))

        try:
            await self._collection(db).insert_one(dict(entry))
        except Exception as e:
            logger.error(f"Failed to store audit entry {entry['event_id']}: {e}")
            logger.error(f"AUDIT_FALLBACK: {json.dumps(entry, default=str)}")

        return entry["event_id"]

    async def log_login_attempt(
        self,
        email: str,
        ip_address: Optional[str],
        success: bool,
        user_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> str:
        return await self.log_event(
            AuditEvent.LOGIN_SUCCESS if success else AuditEvent.LOGIN_FAILED,
            user_id=user_id,
            user_email=email,
            ip_address=ip_address,
            success=success,
            details={"reason": failure_reason} if failure_reason else None,
            risk_level="low" if success else "medium",
        )

    async def log_registration(self, user_id: str, email: str, role: str, ip_address: Optional[str]) -> str:
        return await self.log_event(
            AuditEvent.REGISTRATION,
            user_id=user_id,
            user_email=email,
            ip_address=ip_address,
            details={"role": role},
        )

    async def log_admin_action(
        self,
        admin_user_id: str,
        admin_email: str,
        action: str,
        target_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Record a verification, block, score or deletion decision taken by an admin"""
        return await self.log_event(
            AuditEvent.ADMIN_ACTION,
            user_id=admin_user_id,
            user_email=admin_email,
            details=details,
            risk_level="medium",
            action=action,
            target_id=target_id,
        )

    async def get_audit_logs(
        self,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        target_id: Optional[str] = None,
        limit: int = 100,
        db: Optional[AsyncIOMotorDatabase] = None,
    ) -> List[Dict[str, Any]]:
        """Newest entries first, filtered by actor, event type or target"""
        query = {
            key: value
            for key, value in (("user_id", user_id), ("event_type", event_type), ("target_id", target_id))
            if value
        }

        try:
            cursor = self._collection(db).find(query).sort("timestamp", -1).limit(limit)
            entries = await cursor.to_list(length=limit)
        except Exception as e:
            logger.error(f"Failed to read audit logs: {e}")
            return []

        for entry in entries:
            entry["_id"] = str(entry["_id"])
            if isinstance(entry.get("timestamp"), datetime):
                entry["timestamp"] = entry["timestamp"].isoformat()
        return entries

    @staticmethod
    def _describe(entry: Dict[str, Any]) -> str:
        parts = [f"AUDIT {entry['event_type']}"]
        if entry["action"]:
            parts.append(f"action={entry['action']}")
        if entry["target_id"]:
            parts.append(f"target={entry['target_id']}")
        parts.append(f"by={entry['user_email'] or entry['user_id'] or 'anonymous'}")
        if entry["details"]:
            parts.append(json.dumps(entry["details"], default=str))
        return " ".join(parts)


_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
