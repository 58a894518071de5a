# assessment workflow — the child lifecycle state machine
# available -> pending -> accepted -> games_completed -> completed, with reject returning to available.
# written against any store exposing the six collections (motor database or the client mirror),
# so the same guards run online and offline.

import logging
import secrets
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from app.models.analysis import SCORE_FIELDS
from app.services.games import validate_answers

logger = logging.getLogger(__name__)

CHILD_STATUSES = ("available", "pending", "accepted", "games_completed", "completed")
REQUEST_STATUSES = ("pending", "accepted", "rejected", "completed")
ACTIVE_REQUEST_STATUSES = ("pending", "accepted")

# parent-editable child fields
CHILD_FIELDS = ("name", "age", "gender", "interests", "notes")

# trigger -> (required child status, resulting child status)
TRANSITIONS = {
    "select": ("available", "pending"),
    "accept": ("pending", "accepted"),
    "reject": ("pending", "available"),
    "finish_games": ("accepted", "games_completed"),
    "report": ("games_completed", "completed"),
}

NOT_APPROVED_YET = "Assessment must be approved by psychologist first."


class Transition(NamedTuple):
    """outcome of a workflow step: the updated child and the record the step created or changed"""
    child: dict
    record: dict


def new_id(prefix: str) -> str:
    """application-level id, identical scheme on the server and in the mirror"""
    return f"{prefix}_{secrets.token_hex(6)}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def derive_child_status(
    request: Optional[dict],
    game_result: Optional[dict] = None,
    analysis: Optional[dict] = None,
) -> str:
    """project the child status from its most recent request and the rows tied to it"""
    if request is None or request.get("status") == "rejected":
        return "available"
    if analysis is not None or request.get("status") == "completed":
        return "completed"
    if game_result is not None:
        return "games_completed"
    if request.get("status") == "accepted":
        return "accepted"
    return "pending"


class AssessmentWorkflow:
    """state machine over a store; every transition is a compare-and-set on child status"""

    def __init__(self, store):
        self.store = store

    # lookups

    async def get_child(self, child_id: str) -> dict:
        child = await self.store.children.find_one({"child_id": child_id})
        if not child:
            raise NotFoundError(f"Child {child_id} not found")
        return child

    async def _owned_child(self, actor: dict, child_id: str) -> dict:
        if actor.get("role") != "customer":
            raise AuthorizationError("Only parents can manage a child's assessment")
        child = await self.get_child(child_id)
        if child.get("parent_id") != actor.get("id"):
            raise AuthorizationError("You do not have access to this child")
        return child

    async def psychologist_for(self, actor: dict) -> dict:
        """the psychologist profile belonging to the acting user"""
        if actor.get("role") != "psychologist":
            raise AuthorizationError("Only psychologists can perform this action")
        profile = await self.store.psychologists.find_one({"user_id": actor.get("id")})
        if not profile:
            raise NotFoundError("Psychologist profile not found")
        return profile

    async def latest_request(self, child_id: str) -> Optional[dict]:
        cursor = self.store.assessment_requests.find({"child_id": child_id}).sort("created_at", -1)
        docs = await cursor.to_list(length=1)
        return docs[0] if docs else None

    async def request_query(self, actor: dict, status: Optional[str] = None) -> dict:
        """requests an actor may list: parents their own, psychologists those addressed to them, admins all"""
        query: dict = {}
        role = actor.get("role")
        if role == "customer":
            query["parent_id"] = actor["id"]
        elif role == "psychologist":
            profile = await self.psychologist_for(actor)
            query["psychologist_id"] = profile["psychologist_id"]

        if status in REQUEST_STATUSES:
            query["status"] = status
        return query

    async def game_result_query(self, actor: dict, child_id: Optional[str] = None) -> dict:
        """game results an actor may list, optionally for a single child"""
        query: dict = {}
        if child_id:
            query["child_id"] = child_id

        role = actor.get("role")
        if role == "customer":
            own = [doc["child_id"] async for doc in self.store.children.find({"parent_id": actor["id"]})]
            if child_id and child_id not in own:
                raise AuthorizationError("You do not have access to this child")
            if not child_id:
                query["child_id"] = {"$in": own}
        elif role == "psychologist":
            profile = await self.psychologist_for(actor)
            query["psychologist_id"] = profile["psychologist_id"]
        return query

    # compare-and-set helpers

    async def _cas_child(self, child_id: str, expected: str, changes: dict, extra: Optional[dict] = None) -> dict:
        """apply changes only if the child is still in the expected status"""
        query = {"child_id": child_id, "status": expected}
        if extra:
            query.update(extra)
        changes = {**changes, "updated_at": _now()}
        updated = await self.store.children.find_one_and_update(
            query, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise ConflictError(
                f"Child {child_id} changed while the request was processed, reload and try again"
            )
        return updated

    async def _cas_request(self, request_id: str, expected: str, changes: dict) -> dict:
        updated = await self.store.assessment_requests.find_one_and_update(
            {"request_id": request_id, "status": expected},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise ConflictError(f"Assessment request {request_id} was already answered")
        return updated

    # children

    async def create_child(self, actor: dict, data: dict) -> dict:
        """register a child for the acting parent, starting at available"""
        if actor.get("role") != "customer":
            raise AuthorizationError("Only parents can add children")

        name = (data.get("name") or "").strip()
        age = data.get("age")
        if not name or not age:
            raise ValidationError("Name and age are required")
        if not isinstance(age, int) or isinstance(age, bool) or age < 1:
            raise ValidationError("Age must be a positive whole number")

        now = _now()
        doc = {
            "child_id": data.get("child_id") or new_id("child"),
            "parent_id": actor["id"],
            "name": name,
            "age": age,
            "gender": data.get("gender"),
            "interests": list(data.get("interests") or []),
            "notes": data.get("notes"),
            "status": "available",
            "psychologist_id": None,
            "request_id": None,
            "created_at": now,
            "updated_at": now,
        }
        await self.store.children.insert_one(doc)
        logger.info(f"Child created: {doc['child_id']} for parent {actor['id']}")
        return doc

    async def update_child(self, actor: dict, child_id: str, changes: dict) -> dict:
        """edit the descriptive fields of an owned child"""
        updates = {k: v for k, v in changes.items() if k in CHILD_FIELDS and v is not None}
        if not updates:
            raise ValidationError("No fields to update")
        age = updates.get("age")
        if age is not None and (not isinstance(age, int) or isinstance(age, bool) or age < 1):
            raise ValidationError("Age must be a positive whole number")

        child = None
        if actor.get("role") == "customer":
            child = await self.store.children.find_one({"child_id": child_id, "parent_id": actor.get("id")})
        if not child:
            raise NotFoundError("Child not found")

        updates["updated_at"] = _now()
        await self.store.children.update_one({"child_id": child_id}, {"$set": updates})
        child.update(updates)
        logger.info(f"Child updated: {child_id}")
        return child

    async def delete_child(self, actor: dict, child_id: str) -> None:
        """remove a child and every request, result, and report that references it"""
        child = await self.get_child(child_id)
        if actor.get("role") != "admin" and child.get("parent_id") != actor.get("id"):
            raise AuthorizationError("You do not have access to this child")

        await self.store.ai_analysis.delete_many({"child_id": child_id})
        await self.store.game_results.delete_many({"child_id": child_id})
        await self.store.assessment_requests.delete_many({"child_id": child_id})
        await self.store.children.delete_one({"child_id": child_id})
        logger.info(f"Child deleted with cascade: {child_id}")

    # transitions

    async def select_psychologist(self, actor: dict, child_id: str, psychologist_id: str) -> Transition:
        """available -> pending: open an assessment request with an approved psychologist"""
        child = await self._owned_child(actor, child_id)
        required, target = TRANSITIONS["select"]

        if child.get("status") != required:
            if child.get("status") == "pending":
                raise PreconditionFailedError(
                    "An assessment request is already pending for this child. "
                    "Wait for the psychologist to respond before choosing another."
                )
            raise PreconditionFailedError(
                f"A psychologist can only be selected for an available child (current status: {child.get('status')})"
            )

        psychologist = await self.store.psychologists.find_one(
            {"psychologist_id": psychologist_id, "approved": True}
        )
        if not psychologist:
            raise NotFoundError(f"Psychologist {psychologist_id} not found")

        active = await self.store.assessment_requests.count_documents({"child_id": child_id, "active": True})
        if active:
            raise ConflictError("This child already has an active assessment request")

        request_id = new_id("req")
        updated_child = await self._cas_child(
            child_id,
            required,
            {"status": target, "psychologist_id": psychologist_id, "request_id": request_id},
        )

        request = {
            "request_id": request_id,
            "child_id": child_id,
            "psychologist_id": psychologist_id,
            "parent_id": child["parent_id"],
            "child_name": child.get("name", ""),
            "child_age": child.get("age"),
            "child_interests": child.get("interests") or [],
            "parent_notes": child.get("notes"),
            "status": "pending",
            "active": True,
            "response_reason": None,
            "created_at": _now(),
            "responded_at": None,
            "report_generated_at": None,
        }
        try:
            await self.store.assessment_requests.insert_one(request)
        except Exception as e:
            # keep child and requests consistent: undo the status flip
            await self._cas_child(
                child_id, target, {"status": required, "psychologist_id": None, "request_id": None}
            )
            if isinstance(e, DuplicateKeyError):
                raise ConflictError("This child already has an active assessment request") from e
            raise

        logger.info(f"Assessment request {request_id}: child {child_id} -> psychologist {psychologist_id}")
        return Transition(updated_child, request)

    async def respond_to_request(
        self, actor: dict, request_id: str, accepted: bool, reason: Optional[str] = None
    ) -> Transition:
        """pending -> accepted, or pending -> available on rejection"""
        profile = await self.psychologist_for(actor)

        request = await self.store.assessment_requests.find_one({"request_id": request_id})
        if not request:
            raise NotFoundError(f"Assessment request {request_id} not found")
        if request.get("psychologist_id") != profile.get("psychologist_id"):
            raise AuthorizationError("This assessment request is assigned to another psychologist")
        if request.get("status") != "pending":
            raise PreconditionFailedError(
                f"Only pending requests can be answered (current status: {request.get('status')})"
            )

        trigger = "accept" if accepted else "reject"
        required, target = TRANSITIONS[trigger]
        request_changes = {
            "status": "accepted" if accepted else "rejected",
            "responded_at": _now(),
            "response_reason": reason,
        }
        if not accepted:
            request_changes["active"] = False
        updated_request = await self._cas_request(request_id, "pending", request_changes)

        child_changes = {"status": target}
        if not accepted:
            child_changes.update({"psychologist_id": None, "request_id": None})
        try:
            updated_child = await self._cas_child(
                request["child_id"], required, child_changes, extra={"request_id": request_id}
            )
        except ConflictError:
            await self.store.assessment_requests.update_one(
                {"request_id": request_id},
                {"$set": {"status": "pending", "active": True, "responded_at": None, "response_reason": None}},
            )
            raise

        logger.info(f"Assessment request {request_id} {updated_request['status']} by {profile.get('psychologist_id')}")
        return Transition(updated_child, updated_request)

    async def submit_game_result(self, actor: dict, child_id: str, answers: list[dict]) -> Transition:
        """accepted -> games_completed: record the child's answers once"""
        child = await self._owned_child(actor, child_id)
        required, target = TRANSITIONS["finish_games"]

        if child.get("status") != required:
            raise PreconditionFailedError(NOT_APPROVED_YET)

        normalized = validate_answers(answers)

        request_id = child.get("request_id")
        existing = await self.store.game_results.find_one({"request_id": request_id})
        if existing:
            raise ConflictError("Game results were already recorded for this assessment")

        updated_child = await self._cas_child(child_id, required, {"status": target})

        result = {
            "result_id": new_id("game"),
            "child_id": child_id,
            "request_id": request_id,
            "psychologist_id": child.get("psychologist_id"),
            "child_name": child.get("name", ""),
            "answers": normalized,
            "completed_at": _now(),
        }
        try:
            await self.store.game_results.insert_one(result)
        except Exception:
            await self._cas_child(child_id, target, {"status": required})
            raise

        logger.info(f"Game results recorded for child {child_id} ({len(normalized)} answers)")
        return Transition(updated_child, result)

    async def submit_report(self, actor: dict, child_id: str, psychologist_id: str, report: dict) -> Transition:
        """games_completed -> completed: store the analysis and close the request"""
        profile = await self.psychologist_for(actor)
        own_id = profile.get("psychologist_id")
        if psychologist_id != own_id:
            raise AuthorizationError("Reports can only be submitted under your own psychologist id")

        child = await self.get_child(child_id)
        if child.get("psychologist_id") != own_id:
            raise AuthorizationError("This child is assigned to another psychologist")

        required, target = TRANSITIONS["report"]
        if child.get("status") != required:
            raise PreconditionFailedError(
                f"A report can only be submitted after the games are completed (current status: {child.get('status')})"
            )

        narrative = (report.get("report") or "").strip()
        if not narrative:
            raise ValidationError("Report text is required")

        request_id = child.get("request_id")
        game_result = await self.store.game_results.find_one({"request_id": request_id})
        if not game_result:
            raise NotFoundError(f"No game results found for child {child_id}")

        updated_child = await self._cas_child(child_id, required, {"status": target})

        now = _now()
        analysis = {
            "analysis_id": new_id("ana"),
            "child_id": child_id,
            "request_id": request_id,
            "psychologist_id": own_id,
            "child_name": child.get("name", ""),
            "age": child.get("age"),
            "gender": child.get("gender"),
            "grade": report.get("grade"),
            "interests": child.get("interests") or [],
            "observations": report.get("observations"),
            "ai_report": narrative,
            "report_generated": True,
            "assessment_date": now,
        }
        for field in SCORE_FIELDS:
            analysis[field] = report.get(field)

        try:
            await self.store.ai_analysis.insert_one(analysis)
        except Exception:
            await self._cas_child(child_id, target, {"status": required})
            raise

        try:
            await self.store.assessment_requests.update_one(
                {"request_id": request_id},
                {"$set": {"status": "completed", "active": False, "report_generated_at": now}},
            )
            await self.store.psychologists.update_one(
                {"psychologist_id": own_id}, {"$inc": {"completed_assessments": 1}}
            )
        except Exception:
            await self.store.assessment_requests.update_one(
                {"request_id": request_id},
                {"$set": {"status": "accepted", "active": True, "report_generated_at": None}},
            )
            await self.store.ai_analysis.delete_one({"analysis_id": analysis["analysis_id"]})
            await self._cas_child(child_id, target, {"status": required})
            raise

        logger.info(f"Report submitted for child {child_id} by {own_id}")
        return Transition(updated_child, analysis)

    # consistency

    async def reconcile(self, child_id: str) -> dict:
        """rewrite a child's cached status from its latest request, result, and report"""
        child = await self.get_child(child_id)
        request = await self.latest_request(child_id)

        game_result = analysis = None
        if request is not None:
            game_result = await self.store.game_results.find_one({"request_id": request["request_id"]})
            analysis = await self.store.ai_analysis.find_one({"request_id": request["request_id"]})

        status = derive_child_status(request, game_result, analysis)
        if status == "available":
            expected = {"status": status, "psychologist_id": None, "request_id": None}
        else:
            expected = {
                "status": status,
                "psychologist_id": request.get("psychologist_id"),
                "request_id": request.get("request_id"),
            }

        if all(child.get(k) == v for k, v in expected.items()):
            return child

        logger.warning(f"Child {child_id} status {child.get('status')!r} was stale, reconciled to {status!r}")
        return await self._cas_child(child_id, child.get("status"), expected)
