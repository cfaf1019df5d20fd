from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from campushire.core.audit_logger import AuditEvent, get_audit_logger
from campushire.core.auth import get_admin, get_current_user
from campushire.core.responses import (
    bad_request,
    not_found,
    pagination,
    parse_object_id,
    public_user,
    serialize,
    serialize_many,
    server_error,
    success_response,
)
from campushire.models.mongodb_models import SpamReport, SpamReportStatus, User
from campushire.schemas.moderation import SpamReportCreate, SpamReportInvestigate, SpamReportResolve
from campushire.services.state_machines import SPAM_REPORT_FSM, InvalidTransition, transition

router = APIRouter()
admin_router = APIRouter()

RESOLUTION_LABELS = {"resolve": "resolved", "dismiss": "dismissed"}


async def populate(reports: List[SpamReport]) -> List[dict]:
    user_ids = set()
    for report in reports:
        user_ids.update({report.reporter_id, report.reported_user_id})
        if report.resolved_by:
            user_ids.add(report.resolved_by)
    users = {u.id: u for u in await User.find({"_id": {"$in": list(user_ids)}}).to_list()}

    items = []
    for report in reports:
        item = serialize(report)
        item["reporter"] = public_user(users.get(report.reporter_id))
        reported = users.get(report.reported_user_id)
        item["reported_user"] = public_user(reported)
        if reported:
            item["reported_user"]["spam_score"] = reported.spam_score
        item["resolved_by_user"] = public_user(users.get(report.resolved_by)) if report.resolved_by else None
        items.append(item)
    return items


async def get_report_or_404(report_id: str) -> SpamReport:
    report = await SpamReport.get(parse_object_id(report_id, "Spam report"))
    if not report:
        raise not_found("Spam report")
    return report


def advance(report: SpamReport, action: str) -> SpamReportStatus:
    try:
        return SpamReportStatus(transition(SPAM_REPORT_FSM, report.status, action))
    except InvalidTransition:
        raise bad_request(f"Spam report is already {report.status.value}")


@router.post("", status_code=201)
async def file_report(payload: SpamReportCreate, current_user: User = Depends(get_current_user)):
    try:
        reported_id = parse_object_id(payload.reported_user_id, "User")
        if reported_id == current_user.id:
            raise bad_request("You cannot report yourself")
        if not await User.get(reported_id):
            raise not_found("User")

        report = SpamReport(
            reporter_id=current_user.id,
            reported_user_id=reported_id,
            reason=payload.reason,
            description=payload.description,
            evidence=payload.evidence,
        )
        await report.insert()

        await get_audit_logger().log_event(
            event_type=AuditEvent.SPAM_REPORT_FILED,
            user_id=str(current_user.id),
            user_email=current_user.email,
            details={"report_id": str(report.id), "reported_user_id": str(reported_id), "reason": report.reason.value},
            risk_level="medium",
        )
        return success_response({"report": serialize(report)}, "Spam report submitted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"File spam report error: {e}")
        raise server_error("Failed to submit spam report", e)


@router.get("/mine")
async def get_my_reports(current_user: User = Depends(get_current_user)):
    try:
        reports = await SpamReport.find(SpamReport.reporter_id == current_user.id).sort("-created_at").to_list()
        return success_response({"reports": serialize_many(reports)})
    except Exception as e:
        logger.error(f"Get my spam reports error: {e}")
        raise server_error("Failed to get spam reports", e)


@admin_router.get("")
async def get_spam_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[SpamReportStatus] = Query(None),
    current_user: User = Depends(get_admin),
):
    try:
        query = {"status": status.value} if status else {}
        total = await SpamReport.find(query).count()
        reports = await SpamReport.find(query).sort("-created_at") \
            .skip((page - 1) * limit).limit(limit).to_list()
        return success_response({
            "reports": await populate(reports),
            "pagination": pagination(page, limit, total, "Reports"),
        })
    except Exception as e:
        logger.error(f"Get spam reports error: {e}")
        raise server_error("Failed to get spam reports", e)


@admin_router.patch("/{report_id}/investigate")
async def investigate_report(
    report_id: str,
    payload: Optional[SpamReportInvestigate] = None,
    current_user: User = Depends(get_admin),
):
    try:
        report = await get_report_or_404(report_id)
        report.status = advance(report, "investigate")
        report.investigated_by = current_user.id
        if payload and payload.notes:
            report.admin_notes = payload.notes
        await report.save()

        await get_audit_logger().log_admin_action(
            str(current_user.id), current_user.email, "investigate_spam_report", target_id=report.id
        )
        return success_response({"report": serialize(report)}, "Spam report under investigation")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Investigate spam report error: {e}")
        raise server_error("Failed to update spam report", e)


@admin_router.patch("/{report_id}/resolve")
async def resolve_report(report_id: str, payload: SpamReportResolve, current_user: User = Depends(get_admin)):
    """Close a report as resolved or dismissed. Closed reports accept no further actions."""
    try:
        report = await get_report_or_404(report_id)
        report.status = advance(report, payload.action)
        report.resolved_by = current_user.id
        report.resolved_at = datetime.utcnow()
        report.admin_notes = payload.notes
        await report.save()

        await get_audit_logger().log_admin_action(
            str(current_user.id),
            current_user.email,
            f"{payload.action}_spam_report",
            target_id=report.id,
            details={"notes": payload.notes},
        )
        message = f"Spam report {RESOLUTION_LABELS[payload.action]} successfully"
        return success_response({"report": serialize(report)}, message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Resolve spam report error: {e}")
        raise server_error("Failed to resolve spam report", e)
