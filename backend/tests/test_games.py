# tests for the game catalog, game sessions, and the game results router
# tests for app/services/games.py and app/routers/games.py

import pytest

from tests.conftest import (
    PARENT_2_DOC, PSYCHOLOGIST_2_DOC, SAMPLE_CHILD, act_as, complete_answers,
)
from app.errors import PreconditionFailedError, ValidationError
from app.services.games import GAME_CATALOG, GameSession, validate_answers

CHILD_ID = SAMPLE_CHILD["child_id"]


class TestCatalog:
    """the fixed interactive games"""

    def test_five_games(self):
        assert len(GAME_CATALOG) == 5

    def test_every_game_has_options(self):
        for game in GAME_CATALOG:
            assert game["options"]
            assert game["category"]
            assert game["text"]

    def test_categories_distinct(self):
        categories = [g["category"] for g in GAME_CATALOG]
        assert len(set(categories)) == len(categories)


class TestValidateAnswers:
    """answer set checks"""

    def test_complete_set(self):
        normalized = validate_answers([
            {**a, "game_title": a["gameTitle"]} for a in complete_answers()
        ])
        assert len(normalized) == 5
        assert normalized[0]["game_title"] == GAME_CATALOG[0]["game_title"]

    def test_empty(self):
        with pytest.raises(ValidationError):
            validate_answers([])

    def test_partial_set(self):
        with pytest.raises(ValidationError, match="All 5 questions"):
            validate_answers(complete_answers()[:4])

    def test_blank_answer(self):
        answers = complete_answers()
        answers[2]["answer"] = "  "
        with pytest.raises(ValidationError, match="Answer 3"):
            validate_answers(answers)


class TestGameSession:
    """playing through the catalog"""

    def _play_all(self, session):
        for _ in GAME_CATALOG:
            session.select_answer(session.question["options"][0])
            session.next()

    def test_starts_at_first_question(self):
        session = GameSession(CHILD_ID)
        assert session.current == 0
        assert session.question["game_title"] == GAME_CATALOG[0]["game_title"]
        assert session.progress == 20.0
        assert session.finished is False

    def test_next_requires_answer(self):
        session = GameSession(CHILD_ID)
        with pytest.raises(ValidationError, match="Please select an answer first."):
            session.next()
        assert session.current == 0

    def test_invalid_option(self):
        session = GameSession(CHILD_ID)
        with pytest.raises(ValidationError):
            session.select_answer("not an option")

    def test_select_records_answer(self):
        session = GameSession(CHILD_ID)
        option = GAME_CATALOG[0]["options"][1]
        answer = session.select_answer(option)
        assert answer["answer"] == option
        assert answer["question"] == GAME_CATALOG[0]["text"]
        assert answer["category"] == GAME_CATALOG[0]["category"]
        assert answer["timestamp"]

    def test_previous_keeps_answers(self):
        session = GameSession(CHILD_ID)
        session.select_answer(GAME_CATALOG[0]["options"][0])
        session.next()
        assert session.current == 1
        session.previous()
        assert session.current == 0
        session.next()
        assert session.current == 1

    def test_previous_at_start_stays(self):
        session = GameSession(CHILD_ID)
        session.previous()
        assert session.current == 0

    def test_last_next_finishes(self):
        session = GameSession(CHILD_ID)
        self._play_all(session)
        assert session.finished is True
        assert session.is_last
        assert session.progress == 100.0
        answers = session.answers()
        assert len(answers) == 5
        assert validate_answers(answers)

    def test_answers_before_finish(self):
        session = GameSession(CHILD_ID)
        session.select_answer(GAME_CATALOG[0]["options"][0])
        with pytest.raises(PreconditionFailedError):
            session.answers()

    def test_no_changes_after_finish(self):
        session = GameSession(CHILD_ID)
        self._play_all(session)
        with pytest.raises(PreconditionFailedError):
            session.select_answer(GAME_CATALOG[-1]["options"][0])

    def test_sessions_independent(self):
        a = GameSession("child_a")
        b = GameSession("child_b")
        a.select_answer(GAME_CATALOG[0]["options"][0])
        a.next()
        assert b.current == 0


async def _accept_sample_child(mock_db):
    """put SAMPLE_CHILD into accepted with an accepted request from psy001"""
    await mock_db.assessment_requests.insert_one({
        "request_id": "req_sample0001",
        "child_id": CHILD_ID,
        "psychologist_id": "psy001",
        "parent_id": SAMPLE_CHILD["parent_id"],
        "child_name": "Aya",
        "status": "accepted",
        "active": True,
        "created_at": "2025-02-02T00:00:00+00:00",
    })
    await mock_db.children.update_one(
        {"child_id": CHILD_ID},
        {"$set": {"status": "accepted", "psychologist_id": "psy001", "request_id": "req_sample0001"}},
    )


class TestQuestionsEndpoint:
    """GET /game-results/questions"""

    async def test_questions(self, client):
        resp = await client.get("/game-results/questions")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 5
        assert data[0]["gameTitle"] == GAME_CATALOG[0]["game_title"]
        assert data[0]["type"] == GAME_CATALOG[0]["type"]
        assert data[0]["options"] == GAME_CATALOG[0]["options"]


class TestSubmitResults:
    """POST /game-results"""

    async def test_submit_when_accepted(self, customer_client, mock_db):
        await _accept_sample_child(mock_db)
        resp = await customer_client.post("/game-results", json={
            "childId": CHILD_ID, "answers": complete_answers(),
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["childId"] == CHILD_ID
        assert data["requestId"] == "req_sample0001"
        assert data["psychologistId"] == "psy001"
        assert len(data["answers"]) == 5
        assert mock_db.children._data[0]["status"] == "games_completed"

    async def test_submit_while_available(self, customer_client, mock_db):
        resp = await customer_client.post("/game-results", json={
            "childId": CHILD_ID, "answers": complete_answers(),
        })
        assert resp.status_code == 412
        assert resp.json() == {
            "detail": "Assessment must be approved by psychologist first.",
            "code": "precondition_failed",
        }
        assert mock_db.game_results._data == []

    async def test_submit_incomplete(self, customer_client, mock_db):
        await _accept_sample_child(mock_db)
        resp = await customer_client.post("/game-results", json={
            "childId": CHILD_ID, "answers": complete_answers()[:2],
        })
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    async def test_missing_answer_field(self, customer_client, mock_db):
        answers = complete_answers()
        del answers[0]["category"]
        resp = await customer_client.post("/game-results", json={"childId": CHILD_ID, "answers": answers})
        assert resp.status_code == 422

    async def test_other_parent(self, customer_client, mock_db):
        await _accept_sample_child(mock_db)
        act_as(PARENT_2_DOC)
        resp = await customer_client.post("/game-results", json={
            "childId": CHILD_ID, "answers": complete_answers(),
        })
        assert resp.status_code == 403

    async def test_psychologist_cannot_submit(self, psychologist_client):
        resp = await psychologist_client.post("/game-results", json={
            "childId": CHILD_ID, "answers": complete_answers(),
        })
        assert resp.status_code == 403


class TestListResults:
    """GET /game-results"""

    async def _seed_result(self, mock_db):
        await mock_db.game_results.insert_one({
            "result_id": "game_sample0001",
            "child_id": CHILD_ID,
            "request_id": "req_sample0001",
            "psychologist_id": "psy001",
            "child_name": "Aya",
            "answers": [],
            "completed_at": "2025-02-03T10:00:00+00:00",
        })

    async def test_parent_sees_own(self, customer_client, mock_db):
        await self._seed_result(mock_db)
        resp = await customer_client.get("/game-results")
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == ["game_sample0001"]

    async def test_parent_filter_by_child(self, customer_client, mock_db):
        await self._seed_result(mock_db)
        resp = await customer_client.get("/game-results", params={"childId": CHILD_ID})
        assert len(resp.json()) == 1

    async def test_other_parent_forbidden(self, customer_client, mock_db):
        await self._seed_result(mock_db)
        act_as(PARENT_2_DOC)
        resp = await customer_client.get("/game-results", params={"childId": CHILD_ID})
        assert resp.status_code == 403

    async def test_other_parent_sees_nothing(self, customer_client, mock_db):
        await self._seed_result(mock_db)
        act_as(PARENT_2_DOC)
        resp = await customer_client.get("/game-results")
        assert resp.json() == []

    async def test_psychologist_sees_assigned(self, psychologist_client, mock_db):
        await self._seed_result(mock_db)
        resp = await psychologist_client.get("/game-results")
        assert len(resp.json()) == 1

    async def test_other_psychologist_sees_nothing(self, psychologist_client, mock_db):
        await self._seed_result(mock_db)
        act_as(PSYCHOLOGIST_2_DOC)
        resp = await psychologist_client.get("/game-results")
        assert resp.json() == []
