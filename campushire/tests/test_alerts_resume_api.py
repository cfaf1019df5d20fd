import os

from campushire.core.config import settings
from campushire.models.mongodb_models import Alert, AlertType, User


class TestAlerts:

    async def test_alerts_are_private(self, client, student, alumni, auth_headers):
        alert = await Alert(user_id=student.id, type=AlertType.APPROVAL, message="Welcome").insert()

        listing = await client.get("/api/alerts", headers=auth_headers(student))
        assert [a["message"] for a in listing.json()["data"]["alerts"]] == ["Welcome"]

        foreign = await client.patch(f"/api/alerts/{alert.id}/mark-seen", headers=auth_headers(alumni))
        own = await client.patch(f"/api/alerts/{alert.id}/mark-seen", headers=auth_headers(student))

        assert foreign.status_code == 404
        assert own.status_code == 200
        assert (await Alert.get(alert.id)).seen is True

    async def test_create_for_self(self, client, student, auth_headers):
        response = await client.post(
            "/api/alerts/create", json={"type": "jobPost", "message": "Reminder"}, headers=auth_headers(student)
        )

        assert response.status_code == 201
        assert await Alert.find(Alert.user_id == student.id).count() == 1

    async def test_non_admin_cannot_alert_others(self, client, student, alumni, auth_headers):
        response = await client.post(
            "/api/alerts/create",
            json={"user_id": str(alumni.id), "type": "approval", "message": "Hi"},
            headers=auth_headers(student),
        )

        assert response.status_code == 403


class TestResume:

    async def test_generate_pdf(self, client, student, auth_headers):
        student.profile.department = "CSE"
        student.profile.batch = "2021"
        student.profile.skills = ["Python", "SQL"]
        await student.save()

        response = await client.post("/api/resume/generate", headers=auth_headers(student))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["url"].endswith(f"/uploads/resumes/{data['filename']}")
        path = os.path.join(settings.UPLOAD_DIR, "resumes", data["filename"])
        with open(path, "rb") as pdf:
            assert pdf.read(4) == b"%PDF"
        assert (await User.get(student.id)).resume == f"resumes/{data['filename']}"
