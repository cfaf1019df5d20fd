"""Admin verification, spam reports and spam score administration"""

import pytest
from beanie import PydanticObjectId

from campushire.models.mongodb_models import (
    Message,
    SpamReport,
    SpamReportStatus,
    SpamScoreEvent,
    User,
    UserRole,
    VerificationRecord,
    VerificationStatus,
)


class TestVerification:

    async def test_approve_alumni(self, client, admin, make_user, auth_headers):
        pending = await make_user(UserRole.ALUMNI, is_verified=False)

        response = await client.patch(
            f"/api/admin/verify-alumni/{pending.id}", json={"verified": True}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Alumni account verified successfully"
        user = await User.get(pending.id)
        assert user.is_verified is True
        assert user.alumni_verification.status == VerificationStatus.APPROVED
        assert user.alumni_verification.verified_by == admin.id
        assert user.alumni_verification.notes == "Approved by admin"

    async def test_reject_student_allows_later_review(self, client, admin, make_user, auth_headers):
        pending = await make_user(UserRole.STUDENT, is_verified=False)

        rejected = await client.patch(
            f"/api/admin/verify-student/{pending.id}",
            json={"verified": False, "notes": "Blurry ID card"},
            headers=auth_headers(admin),
        )
        assert rejected.json()["message"] == "Student account verification rejected"
        user = await User.get(pending.id)
        assert user.is_verified is False
        assert user.student_verification.status == VerificationStatus.REJECTED
        assert user.student_verification.notes == "Blurry ID card"

        approved = await client.patch(
            f"/api/admin/verify-student/{pending.id}", json={"verified": True}, headers=auth_headers(admin)
        )
        assert approved.status_code == 200
        assert (await User.get(pending.id)).is_verified is True

    async def test_role_mismatch(self, client, admin, student, auth_headers):
        response = await client.patch(
            f"/api/admin/verify-recruiter/{student.id}", json={"verified": True}, headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "User is not a recruiter"

    async def test_decision_is_audited(self, client, admin, make_user, auth_headers):
        pending = await make_user(UserRole.STUDENT, is_verified=False)
        await client.patch(
            f"/api/admin/verify-student/{pending.id}", json={"verified": True}, headers=auth_headers(admin)
        )

        response = await client.get(f"/api/admin/audit-logs?target_id={pending.id}", headers=auth_headers(admin))

        logs = response.json()["data"]["logs"]
        assert len(logs) == 1
        assert logs[0]["action"] == "verify_student"
        assert logs[0]["user_id"] == str(admin.id)
        assert logs[0]["details"]["approved"] is True

    async def test_pending_lists(self, client, admin, make_user, auth_headers):
        await make_user(UserRole.RECRUITER, is_verified=False)
        await make_user(UserRole.RECRUITER)

        response = await client.get("/api/admin/recruiter-verifications", headers=auth_headers(admin))

        data = response.json()["data"]
        assert len(data["recruiters"]) == 1
        assert data["pagination"]["totalRecruiters"] == 1

    async def test_rejected_accounts_are_not_pending(self, client, admin, make_user, auth_headers):
        waiting = await make_user(UserRole.RECRUITER, is_verified=False)
        await make_user(
            UserRole.RECRUITER,
            is_verified=False,
            recruiter_verification=VerificationRecord(status=VerificationStatus.REJECTED),
        )

        listing = await client.get("/api/admin/recruiter-verifications", headers=auth_headers(admin))
        dashboard = await client.get("/api/admin/dashboard", headers=auth_headers(admin))

        recruiters = listing.json()["data"]["recruiters"]
        assert [r["id"] for r in recruiters] == [str(waiting.id)]
        assert dashboard.json()["data"]["stats"]["pending_verifications"] == len(recruiters)

    async def test_dashboard(self, client, admin, job, make_user, auth_headers):
        await make_user(UserRole.ALUMNI, is_verified=False)
        await make_user(UserRole.STUDENT, spam_score=7)

        response = await client.get("/api/admin/dashboard", headers=auth_headers(admin))

        stats = response.json()["data"]["stats"]
        assert stats["pending_verifications"] == 1
        assert stats["high_spam_users"] == 1
        assert stats["active_jobs"] == 1


class TestSpamReports:

    async def file(self, client, reporter, reported, auth_headers):
        return await client.post(
            "/api/spam-reports",
            json={"reported_user_id": str(reported.id), "reason": "spam_messages", "description": "Sends ads"},
            headers=auth_headers(reporter),
        )

    async def test_file_report(self, client, student, alumni, auth_headers):
        response = await self.file(client, student, alumni, auth_headers)

        assert response.status_code == 201
        assert response.json()["data"]["report"]["status"] == "pending"

        mine = await client.get("/api/spam-reports/mine", headers=auth_headers(student))
        assert len(mine.json()["data"]["reports"]) == 1

    async def test_cannot_report_self(self, client, student, auth_headers):
        response = await self.file(client, student, student, auth_headers)

        assert response.status_code == 400
        assert await SpamReport.find_all().count() == 0

    async def test_review_workflow(self, client, admin, student, alumni, auth_headers):
        report_id = (await self.file(client, student, alumni, auth_headers)).json()["data"]["report"]["id"]

        investigating = await client.patch(
            f"/api/admin/spam-reports/{report_id}/investigate", headers=auth_headers(admin)
        )
        assert investigating.json()["data"]["report"]["status"] == "investigating"

        resolved = await client.patch(
            f"/api/admin/spam-reports/{report_id}/resolve",
            json={"action": "resolve", "notes": "Warned the user"},
            headers=auth_headers(admin),
        )
        assert resolved.status_code == 200
        assert resolved.json()["message"] == "Spam report resolved successfully"
        report = await SpamReport.get(PydanticObjectId(report_id))
        assert report.status == SpamReportStatus.RESOLVED
        assert report.resolved_by == admin.id

    async def test_dismiss_pending_report(self, client, admin, student, alumni, auth_headers):
        report_id = (await self.file(client, student, alumni, auth_headers)).json()["data"]["report"]["id"]

        response = await client.patch(
            f"/api/admin/spam-reports/{report_id}/resolve",
            json={"action": "dismiss", "notes": "Not spam"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Spam report dismissed successfully"
        report = await SpamReport.get(PydanticObjectId(report_id))
        assert report.status == SpamReportStatus.DISMISSED
        assert report.admin_notes == "Not spam"

    @pytest.mark.parametrize("status", [SpamReportStatus.RESOLVED, SpamReportStatus.DISMISSED])
    async def test_closed_reports_reject_actions(self, client, admin, student, alumni, auth_headers, status):
        report = await SpamReport(
            reporter_id=student.id, reported_user_id=alumni.id, reason="other", status=status
        ).insert()

        investigate = await client.patch(
            f"/api/admin/spam-reports/{report.id}/investigate", headers=auth_headers(admin)
        )
        dismiss = await client.patch(
            f"/api/admin/spam-reports/{report.id}/resolve",
            json={"action": "dismiss", "notes": "again"},
            headers=auth_headers(admin),
        )

        assert investigate.status_code == 400
        assert dismiss.status_code == 400
        assert (await SpamReport.get(report.id)).status == status

    async def test_admin_listing_filters_by_status(self, client, admin, student, alumni, auth_headers):
        await SpamReport(reporter_id=student.id, reported_user_id=alumni.id, reason="other").insert()
        await SpamReport(
            reporter_id=alumni.id, reported_user_id=student.id, reason="other", status=SpamReportStatus.DISMISSED
        ).insert()

        response = await client.get("/api/admin/spam-reports?status=pending", headers=auth_headers(admin))

        data = response.json()["data"]
        assert data["pagination"]["totalReports"] == 1
        assert data["reports"][0]["reporter"]["id"] == str(student.id)


class TestSpamAdministration:

    async def test_block_and_unblock(self, client, admin, student, auth_headers):
        blocked = await client.patch(
            f"/api/admin/block-user/{student.id}", json={"is_blocked": True}, headers=auth_headers(admin)
        )
        assert blocked.json()["message"] == "User blocked successfully"
        user = await User.get(student.id)
        assert user.is_blocked is True
        assert user.spam_score == 2

        await client.patch(
            f"/api/admin/block-user/{student.id}", json={"is_blocked": False}, headers=auth_headers(admin)
        )
        user = await User.get(student.id)
        assert user.is_blocked is False
        assert user.spam_score == 1

    async def test_manual_spam_score(self, client, admin, student, auth_headers):
        ok = await client.patch(
            f"/api/admin/update-spam-score/{student.id}", json={"spam_score": 6}, headers=auth_headers(admin)
        )
        out_of_range = await client.patch(
            f"/api/admin/update-spam-score/{student.id}", json={"spam_score": 11}, headers=auth_headers(admin)
        )

        assert ok.status_code == 200
        assert out_of_range.status_code == 400
        assert out_of_range.json()["message"] == "Spam score must be between 0 and 10"
        assert (await User.get(student.id)).spam_score == 6

        history = await client.get(f"/api/admin/users/{student.id}/spam-history", headers=auth_headers(admin))
        events = history.json()["data"]["events"]
        assert len(events) == 1
        assert events[0]["source"] == "manual"

    async def test_profile_detection_charges_profile_path(self, client, admin, make_user, auth_headers):
        user = await make_user(UserRole.ALUMNI, spam_score=48)
        user.profile.linkedin = "https://example.com/me"
        await user.save()

        response = await client.get("/api/admin/users/spam-detection", headers=auth_headers(admin))

        assert response.status_code == 200
        flagged = next(u for u in response.json()["data"]["users"] if u["id"] == str(user.id))
        assert flagged["spam_detection"]["spam_score"] == 2
        user = await User.get(user.id)
        assert user.spam_score == 50
        assert user.is_blocked is True
        events = await SpamScoreEvent.find(SpamScoreEvent.user_id == user.id).to_list()
        assert events[0].source == "profile"

    async def test_repeated_messages_count(self, client, admin, student, alumni, auth_headers):
        for _ in range(3):
            await Message(sender_id=student.id, receiver_id=alumni.id, message="same text").insert()

        response = await client.get("/api/admin/users/spam-detection", headers=auth_headers(admin))

        flagged = next(u for u in response.json()["data"]["users"] if u["id"] == str(student.id))
        assert flagged["spam_detection"]["repetitive_message_count"] == 2

    async def test_spam_check_preview_charges_nobody(self, client, admin, auth_headers):
        response = await client.post(
            "/api/admin/spam-check",
            json={"text": "BUY NOW BUY NOW BUY NOW BUY NOW click here click here"},
            headers=auth_headers(admin),
        )

        assert response.json()["data"]["result"]["is_spam"] is True
        assert (await User.get(admin.id)).spam_score == 0

    async def test_spam_monitor(self, client, admin, make_user, auth_headers):
        await make_user(UserRole.STUDENT, spam_score=3)
        await make_user(UserRole.STUDENT, spam_score=9)
        await make_user(UserRole.STUDENT, spam_score=2)

        response = await client.get("/api/admin/spam-monitor", headers=auth_headers(admin))

        scores = [u["spam_score"] for u in response.json()["data"]["users"]]
        assert scores == [9, 3]
