# tests for assessment requests router — select, list, respond
# tests for app/routers/assessments.py

import pytest

from tests.conftest import (
    PARENT_DOC, PARENT_2_DOC, PSYCHOLOGIST_DOC, PSYCHOLOGIST_2_DOC, ADMIN_DOC, SAMPLE_CHILD, act_as,
)

CHILD_ID = SAMPLE_CHILD["child_id"]


async def _select(client, psychologist_id="psy001"):
    return await client.post("/assessment-requests", json={
        "childId": CHILD_ID, "psychologistId": psychologist_id,
    })


class TestCreateRequest:
    """POST /assessment-requests"""

    async def test_select_psychologist(self, customer_client, mock_db):
        resp = await _select(customer_client)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert data["childId"] == CHILD_ID
        assert data["psychologistId"] == "psy001"
        assert data["childName"] == "Aya"
        assert data["id"].startswith("req_")

        child = mock_db.children._data[0]
        assert child["status"] == "pending"
        assert child["request_id"] == data["id"]

    async def test_second_select_while_pending(self, customer_client, mock_db):
        await _select(customer_client)
        resp = await _select(customer_client, "psy002")
        assert resp.status_code == 412
        assert resp.json()["code"] == "precondition_failed"
        assert len(mock_db.assessment_requests._data) == 1

    async def test_unapproved_psychologist(self, customer_client, mock_db):
        resp = await _select(customer_client, "psy003")
        assert resp.status_code == 404
        assert mock_db.children._data[0]["status"] == "available"

    async def test_unknown_child(self, customer_client):
        resp = await customer_client.post("/assessment-requests", json={
            "childId": "child_missing", "psychologistId": "psy001",
        })
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    async def test_other_parents_child(self, customer_client):
        act_as(PARENT_2_DOC)
        resp = await _select(customer_client)
        assert resp.status_code == 403
        assert resp.json()["code"] == "forbidden"

    async def test_missing_fields(self, customer_client):
        resp = await customer_client.post("/assessment-requests", json={"childId": CHILD_ID})
        assert resp.status_code == 422

    async def test_psychologist_forbidden(self, psychologist_client):
        resp = await _select(psychologist_client)
        assert resp.status_code == 403


class TestListRequests:
    """GET /assessment-requests"""

    async def test_parent_sees_own(self, customer_client):
        await _select(customer_client)
        resp = await customer_client.get("/assessment-requests")
        assert resp.status_code == 200
        assert len(resp.json()) == 1

    async def test_other_parent_sees_none(self, customer_client):
        await _select(customer_client)
        act_as(PARENT_2_DOC)
        resp = await customer_client.get("/assessment-requests")
        assert resp.json() == []

    async def test_psychologist_sees_addressed(self, customer_client):
        await _select(customer_client)
        act_as(PSYCHOLOGIST_DOC)
        resp = await customer_client.get("/assessment-requests")
        assert len(resp.json()) == 1
        act_as(PSYCHOLOGIST_2_DOC)
        resp = await customer_client.get("/assessment-requests")
        assert resp.json() == []

    async def test_status_filter(self, customer_client):
        await _select(customer_client)
        act_as(PSYCHOLOGIST_DOC)
        assert len((await customer_client.get("/assessment-requests", params={"status": "pending"})).json()) == 1
        assert (await customer_client.get("/assessment-requests", params={"status": "accepted"})).json() == []

    async def test_admin_sees_all(self, customer_client):
        await _select(customer_client)
        act_as(ADMIN_DOC)
        resp = await customer_client.get("/assessment-requests")
        assert len(resp.json()) == 1


class TestRespond:
    """PUT /assessment-requests/{id}/respond"""

    async def test_accept(self, customer_client, mock_db):
        request_id = (await _select(customer_client)).json()["id"]
        act_as(PSYCHOLOGIST_DOC)
        resp = await customer_client.put(f"/assessment-requests/{request_id}/respond", json={"accepted": True})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "accepted"
        assert data["respondedAt"]
        assert mock_db.children._data[0]["status"] == "accepted"

    async def test_reject_with_reason(self, customer_client, mock_db):
        request_id = (await _select(customer_client)).json()["id"]
        act_as(PSYCHOLOGIST_DOC)
        resp = await customer_client.put(
            f"/assessment-requests/{request_id}/respond", json={"accepted": False, "reason": "unavailable"}
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        assert resp.json()["responseReason"] == "unavailable"

        child = mock_db.children._data[0]
        assert child["status"] == "available"
        assert child["psychologist_id"] is None

        # parent can pick someone else now
        act_as(PARENT_DOC)
        resp = await _select(customer_client, "psy002")
        assert resp.status_code == 201

    async def test_respond_twice(self, customer_client):
        request_id = (await _select(customer_client)).json()["id"]
        act_as(PSYCHOLOGIST_DOC)
        await customer_client.put(f"/assessment-requests/{request_id}/respond", json={"accepted": True})
        resp = await customer_client.put(f"/assessment-requests/{request_id}/respond", json={"accepted": False})
        assert resp.status_code == 412

    async def test_other_psychologist(self, customer_client, mock_db):
        request_id = (await _select(customer_client)).json()["id"]
        act_as(PSYCHOLOGIST_2_DOC)
        resp = await customer_client.put(f"/assessment-requests/{request_id}/respond", json={"accepted": True})
        assert resp.status_code == 403
        assert mock_db.children._data[0]["status"] == "pending"

    async def test_unknown_request(self, psychologist_client):
        resp = await psychologist_client.put("/assessment-requests/req_missing/respond", json={"accepted": True})
        assert resp.status_code == 404

    async def test_parent_cannot_respond(self, customer_client):
        request_id = (await _select(customer_client)).json()["id"]
        resp = await customer_client.put(f"/assessment-requests/{request_id}/respond", json={"accepted": True})
        assert resp.status_code == 403
