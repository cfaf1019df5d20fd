"""Connections, messaging and referrals"""

from campushire.models.mongodb_models import (
    Alert,
    Connection,
    ConnectionStatus,
    Message,
    Referral,
    ReferralStatus,
    UserRole,
)


async def connect(a, b):
    return await Connection(requester_id=a.id, target_id=b.id, status=ConnectionStatus.APPROVED).insert()


class TestConnections:

    async def test_request_and_approve(self, client, student, alumni, auth_headers):
        response = await client.post(
            "/api/connections/request", json={"target_id": str(alumni.id)}, headers=auth_headers(student)
        )
        assert response.status_code == 201
        connection_id = response.json()["data"]["connection"]["id"]
        assert await Alert.find(Alert.user_id == alumni.id).count() == 1

        status = await client.get(f"/api/connections/status?user_id={student.id}", headers=auth_headers(alumni))
        assert status.json()["data"]["status"] == "pendingIn"

        approved = await client.patch(f"/api/connections/{connection_id}/approve", headers=auth_headers(alumni))
        assert approved.status_code == 200
        assert approved.json()["data"]["connection"]["status"] == "approved"

    async def test_pair_is_unique_in_both_directions(self, client, student, alumni, auth_headers):
        first = await client.post(
            "/api/connections/request", json={"target_id": str(alumni.id)}, headers=auth_headers(student)
        )
        assert first.status_code == 201

        reverse = await client.post(
            "/api/connections/request", json={"target_id": str(student.id)}, headers=auth_headers(alumni)
        )
        assert reverse.status_code == 400
        assert reverse.json()["message"] == "Connection already exists or pending"
        assert await Connection.find_all().count() == 1

    async def test_cannot_connect_with_self(self, client, student, auth_headers):
        response = await client.post(
            "/api/connections/request", json={"target_id": str(student.id)}, headers=auth_headers(student)
        )

        assert response.status_code == 400
        assert await Connection.find_all().count() == 0

    async def test_only_target_may_decide(self, client, student, alumni, make_user, auth_headers):
        outsider = await make_user(UserRole.STUDENT)
        connection = await Connection(requester_id=student.id, target_id=alumni.id).insert()

        by_requester = await client.patch(f"/api/connections/{connection.id}/approve", headers=auth_headers(student))
        by_outsider = await client.patch(f"/api/connections/{connection.id}/reject", headers=auth_headers(outsider))

        assert by_requester.status_code == 403
        assert by_outsider.status_code == 403
        assert (await Connection.get(connection.id)).status == ConnectionStatus.PENDING

    async def test_decided_request_is_final(self, client, student, alumni, auth_headers):
        connection = await Connection(
            requester_id=student.id, target_id=alumni.id, status=ConnectionStatus.REJECTED
        ).insert()

        response = await client.patch(f"/api/connections/{connection.id}/approve", headers=auth_headers(alumni))

        assert response.status_code == 400


class TestMessages:

    async def test_requires_connection(self, client, student, alumni, auth_headers):
        response = await client.post(
            "/api/messages/send",
            json={"receiver_id": str(alumni.id), "message": "Hello"},
            headers=auth_headers(student),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "You can only message connected users"

    async def test_send_and_read_conversation(self, client, student, alumni, auth_headers):
        await connect(student, alumni)

        sent = await client.post(
            "/api/messages/send",
            json={"receiver_id": str(alumni.id), "message": "Hello there"},
            headers=auth_headers(student),
        )
        assert sent.status_code == 201
        assert "spam_warning" not in sent.json()["data"]

        conversation = await client.get(f"/api/messages/conversation/{student.id}", headers=auth_headers(alumni))
        messages = conversation.json()["data"]["messages"]
        assert [m["message"] for m in messages] == ["Hello there"]

        inbox = await client.get("/api/messages/inbox", headers=auth_headers(alumni))
        threads = inbox.json()["data"]["threads"]
        assert len(threads) == 1
        assert threads[0]["other"]["id"] == str(student.id)

    async def test_spammy_message_is_sent_with_warning(self, client, student, alumni, auth_headers):
        await connect(student, alumni)

        response = await client.post(
            "/api/messages/send",
            json={"receiver_id": str(alumni.id), "message": "BUY NOW BUY NOW BUY NOW BUY NOW click here click here"},
            headers=auth_headers(student),
        )

        assert response.status_code == 201
        assert response.json()["data"]["spam_warning"]["spam"]["detected"] is True
        await student.sync()
        assert 0 < student.spam_score <= 10

    async def test_forbidden_words_are_rejected(self, client, student, alumni, auth_headers):
        await connect(student, alumni)

        response = await client.post(
            "/api/messages/send",
            json={"receiver_id": str(alumni.id), "message": "totally not a scam"},
            headers=auth_headers(student),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Content contains forbidden words"
        assert body["detectedWords"] == ["scam"]
        assert await Message.find_all().count() == 0

    async def test_message_rate_limit(self, client, student, alumni, auth_headers):
        await connect(student, alumni)
        headers = auth_headers(student)

        statuses = []
        for i in range(6):
            response = await client.post(
                "/api/messages/send",
                json={"receiver_id": str(alumni.id), "message": f"note {i}"},
                headers=headers,
            )
            statuses.append(response.status_code)

        assert statuses == [201] * 5 + [429]
        assert response.json()["message"] == "Too many messages. Please wait before sending another."


class TestReferrals:

    async def request_referral(self, client, student, alumni, job, auth_headers, message="Please refer me"):
        return await client.post(
            "/api/referrals/request",
            data={"job_id": str(job.id), "alumni_id": str(alumni.id), "student_message": message},
            headers=auth_headers(student),
        )

    async def test_request_referral(self, client, student, alumni, job, auth_headers):
        response = await self.request_referral(client, student, alumni, job, auth_headers)

        assert response.status_code == 201
        referral = response.json()["data"]["referral"]
        assert referral["status"] == "pending"
        assert referral["job"]["title"] == job.title

    async def test_duplicate_request(self, client, student, alumni, job, auth_headers):
        await self.request_referral(client, student, alumni, job, auth_headers)
        response = await self.request_referral(client, student, alumni, job, auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Referral request already exists"

    async def test_unverified_alumni(self, client, student, make_user, job, auth_headers):
        pending_alumni = await make_user(UserRole.ALUMNI, is_verified=False)

        response = await self.request_referral(client, student, pending_alumni, job, auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Alumni not found or not verified"

    async def test_other_alumni_cannot_decide(self, client, student, alumni, make_user, job, auth_headers):
        other = await make_user(UserRole.ALUMNI)
        referral = await Referral(
            job_id=job.id, student_id=student.id, alumni_id=alumni.id, student_message="Please"
        ).insert()

        response = await client.patch(
            f"/api/referrals/{referral.id}/approve",
            json={"alumni_response": "Sure"},
            headers=auth_headers(other),
        )

        assert response.status_code == 403
        assert (await Referral.get(referral.id)).status == ReferralStatus.PENDING

    async def test_approve_then_no_more_decisions(self, client, student, alumni, job, auth_headers):
        referral = await Referral(
            job_id=job.id, student_id=student.id, alumni_id=alumni.id, student_message="Please"
        ).insert()

        approved = await client.patch(
            f"/api/referrals/{referral.id}/approve",
            json={"alumni_response": "Happy to help"},
            headers=auth_headers(alumni),
        )
        assert approved.status_code == 200
        assert approved.json()["data"]["referral"]["status"] == "approved"

        again = await client.patch(
            f"/api/referrals/{referral.id}/reject",
            json={"alumni_response": "Changed my mind"},
            headers=auth_headers(alumni),
        )
        assert again.status_code == 400

    async def test_only_pending_referrals_can_be_deleted(self, client, student, alumni, job, auth_headers):
        referral = await Referral(
            job_id=job.id,
            student_id=student.id,
            alumni_id=alumni.id,
            student_message="Please",
            status=ReferralStatus.REJECTED,
        ).insert()

        response = await client.delete(f"/api/referrals/{referral.id}", headers=auth_headers(student))

        assert response.status_code == 400
        assert await Referral.get(referral.id) is not None
