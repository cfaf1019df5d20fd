"""Job postings and applications"""

from campushire.models.mongodb_models import Alert, AlertType, Job, UserRole

JOB_PAYLOAD = {
    "title": "Data Analyst Intern",
    "description": "Work with the analytics team on reporting",
    "company": "Acme",
    "location": "Dhaka",
    "type": "Internship",
    "tags": ["sql", "python"],
}


class TestJobPosting:

    async def test_recruiter_posts_job_and_students_are_alerted(self, client, recruiter, student, auth_headers):
        response = await client.post("/api/jobs", json=JOB_PAYLOAD, headers=auth_headers(recruiter))

        assert response.status_code == 201
        job = response.json()["data"]["job"]
        assert job["posted_by"] == str(recruiter.id)
        alerts = await Alert.find(Alert.user_id == student.id).to_list()
        assert [a.type for a in alerts] == [AlertType.JOB_POST]

    async def test_students_cannot_post(self, client, student, auth_headers):
        response = await client.post("/api/jobs", json=JOB_PAYLOAD, headers=auth_headers(student))

        assert response.status_code == 403

    async def test_forbidden_words_in_description(self, client, recruiter, auth_headers):
        payload = {**JOB_PAYLOAD, "description": "Definitely not a phishing operation"}

        response = await client.post("/api/jobs", json=payload, headers=auth_headers(recruiter))

        assert response.status_code == 400
        assert response.json()["detectedWords"] == ["phishing"]
        assert await Job.find_all().count() == 0

    async def test_public_listing_hides_applicants(self, client, job):
        response = await client.get("/api/jobs")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["pagination"]["totalJobs"] == 1
        assert "applicants" not in data["jobs"][0]

    async def test_owner_only_update(self, client, job, make_user, auth_headers):
        other = await make_user(UserRole.RECRUITER)

        response = await client.put(f"/api/jobs/{job.id}", json={"location": "Remote"}, headers=auth_headers(other))

        assert response.status_code == 403


class TestApplications:

    async def test_apply_once(self, client, student, job, auth_headers):
        first = await client.post(f"/api/jobs/{job.id}/apply", headers=auth_headers(student))
        second = await client.post(f"/api/jobs/{job.id}/apply", headers=auth_headers(student))

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["message"] == "You have already applied for this job"
        assert (await Job.get(job.id)).applications == 1

    async def test_unverified_student_cannot_apply(self, client, make_user, job, auth_headers):
        pending = await make_user(UserRole.STUDENT, is_verified=False)

        response = await client.post(f"/api/jobs/{job.id}/apply", headers=auth_headers(pending))

        assert response.status_code == 403
        assert response.json()["message"] == "Your account needs to be verified by admin before you can apply for jobs"
        assert (await Job.get(job.id)).applicants == []

    async def test_inactive_job(self, client, student, job, auth_headers):
        job.is_active = False
        await job.save()

        response = await client.post(f"/api/jobs/{job.id}/apply", headers=auth_headers(student))

        assert response.status_code == 400
        assert response.json()["message"] == "This job is no longer active"

    async def test_recruiter_moves_applicant_freely(self, client, student, recruiter, job, auth_headers):
        await client.post(f"/api/jobs/{job.id}/apply", headers=auth_headers(student))

        for status in ("hired", "applied"):
            response = await client.patch(
                f"/api/jobs/{job.id}/applicant-status/{student.id}",
                json={"status": status},
                headers=auth_headers(recruiter),
            )
            assert response.status_code == 200
            assert response.json()["data"]["application"]["status"] == status

    async def test_unknown_job(self, client, student, auth_headers):
        response = await client.post("/api/jobs/not-an-id/apply", headers=auth_headers(student))

        assert response.status_code == 404
