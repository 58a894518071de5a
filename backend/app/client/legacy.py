# legacy snapshot translation — older browser builds kept data under pathify_* / educe_* keys
# with their own field names; everything is mapped onto the canonical collections here and nowhere else

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from app.models.analysis import SCORE_FIELDS
from app.services.workflow import ACTIVE_REQUEST_STATUSES, REQUEST_STATUSES, new_id

logger = logging.getLogger(__name__)

LEGACY_PREFIXES = ("pathify_", "educe_", "EDUCE_")

# score fields as the old report screens named them
LEGACY_SCORE_NAMES = {
    "iqScore": "iq_score",
    "verbalReasoning": "verbal_reasoning",
    "numericalReasoning": "numerical_reasoning",
    "spatialReasoning": "spatial_reasoning",
    "memoryScore": "memory_score",
    "processingSpeed": "processing_speed",
}


def _entry(snapshot: dict, name: str, default: Any) -> Any:
    """first value found for a key under any legacy prefix; raw localStorage strings are parsed"""
    for prefix in LEGACY_PREFIXES:
        key = prefix + name
        if key in snapshot and snapshot[key] is not None:
            value = snapshot[key]
            if isinstance(value, str):
                value = json.loads(value or "null")
            return value if value is not None else default
    return default


def _prefixed(value: Any, prefix: str) -> Optional[str]:
    if value in (None, ""):
        return None
    text = str(value)
    return text if text.startswith(prefix + "_") else f"{prefix}_{text}"


def _as_list(value: Any) -> list[str]:
    """interests and specializations were stored either as arrays or comma-joined strings"""
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _first(raw: dict, *names: str, default: Any = None) -> Any:
    for name in names:
        if raw.get(name) not in (None, ""):
            return raw[name]
    return default


def translate_child(raw: dict, parent_id: str) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    created = _first(raw, "createdAt", "registeredAt", "dateAdded", default=now)
    return {
        "child_id": _prefixed(_first(raw, "id", "childId"), "child") or new_id("child"),
        "parent_id": parent_id,
        "name": (raw.get("name") or "").strip(),
        "age": _as_int(raw.get("age")),
        "gender": raw.get("gender") or None,
        "interests": _as_list(raw.get("interests")),
        "notes": raw.get("notes") or None,
        "status": raw.get("status") or "available",
        "psychologist_id": raw.get("psychologistId"),
        "request_id": _prefixed(raw.get("requestId"), "req"),
        "created_at": created,
        "updated_at": _first(raw, "updatedAt", default=created),
    }


def translate_request(raw: dict, parent_id: str) -> dict:
    status = raw.get("status") if raw.get("status") in REQUEST_STATUSES else "pending"
    return {
        "request_id": _prefixed(raw.get("id"), "req") or new_id("req"),
        "child_id": _prefixed(raw.get("childId"), "child"),
        "psychologist_id": raw.get("psychologistId"),
        "parent_id": parent_id,
        "child_name": raw.get("childName") or "",
        "child_age": _as_int(raw.get("childAge")),
        "child_interests": _as_list(raw.get("childInterests")),
        "parent_notes": _first(raw, "childNotes", "parentNotes"),
        "status": status,
        "active": status in ACTIVE_REQUEST_STATUSES,
        "response_reason": _first(raw, "responseReason", "reason", "rejectionReason"),
        "created_at": _first(raw, "requestDate", "createdAt", default=""),
        "responded_at": _first(raw, "responseDate", "respondedAt", "acceptedDate", "rejectedDate"),
        "report_generated_at": _first(raw, "reportGeneratedAt", "completedDate"),
    }


def translate_game_result(raw: dict, request_id: Optional[str]) -> dict:
    answers = []
    for a in raw.get("answers") or []:
        answers.append({
            "game_title": _first(a, "gameTitle", "game"),
            "question": a.get("question") or "",
            "answer": a.get("answer") or "",
            "category": a.get("category") or "",
            "timestamp": a.get("timestamp") or "",
        })
    return {
        "result_id": new_id("game"),
        "child_id": _prefixed(raw.get("childId"), "child"),
        "request_id": request_id,
        "psychologist_id": raw.get("psychologistId"),
        "child_name": raw.get("childName") or "",
        "answers": answers,
        "completed_at": _first(raw, "completedDate", "completedAt", default=""),
    }


def translate_analysis(raw: dict, request_id: Optional[str]) -> dict:
    doc = {
        "analysis_id": new_id("ana"),
        "child_id": _prefixed(raw.get("childId"), "child"),
        "request_id": request_id,
        "psychologist_id": raw.get("psychologistId"),
        "child_name": raw.get("childName") or "",
        "age": _as_int(raw.get("age")),
        "gender": raw.get("gender"),
        "grade": raw.get("grade"),
        "interests": _as_list(raw.get("interests")),
        "observations": raw.get("observations"),
        "ai_report": _first(raw, "aiReport", "report", "analysis", default=""),
        "report_generated": True,
        "assessment_date": _first(raw, "assessmentDate", "date", "createdAt", default=""),
    }
    for field in SCORE_FIELDS:
        doc[field] = raw.get(field)
    for legacy, field in LEGACY_SCORE_NAMES.items():
        if raw.get(legacy) is not None:
            doc[field] = raw[legacy]
    return doc


def translate_psychologist(raw: dict) -> dict:
    return {
        "psychologist_id": str(raw.get("id")),
        "user_id": raw.get("userId") or "",
        "name": raw.get("name") or "",
        "email": raw.get("email") or "",
        "title": raw.get("title") or "",
        "specializations": _as_list(raw.get("specializations")),
        "experience": raw.get("experience"),
        "rating": float(raw.get("rating") or 0.0),
        "completed_assessments": _as_int(_first(raw, "completedAssessments", "assessments")) or 0,
        "description": raw.get("description"),
        "available": raw.get("available", True) is not False,
        "approved": raw.get("approved") is True,
        "approved_by": raw.get("approvedBy"),
        "approved_at": raw.get("approvedAt"),
        "rejected_by": raw.get("rejectedBy"),
        "rejected_at": raw.get("rejectedAt"),
        "rejection_reason": raw.get("rejectionReason"),
        "registered_at": _first(raw, "registrationDate", "registeredAt", default=""),
    }


def translate_snapshot(snapshot: dict, parent_id: str, parent_email: Optional[str] = None) -> dict[str, list[dict]]:
    """map a legacy localStorage dump onto canonical collections for one parent.
    statuses are copied as found; callers reconcile them afterwards."""
    customer = _entry(snapshot, "customer", {}) or {}
    legacy_owner_ids = {str(v) for v in (customer.get("id"), customer.get("email"), parent_email) if v}

    raw_children = list(customer.get("children") or [])
    for raw in _entry(snapshot, "children", []):
        owner = raw.get("parentId") or raw.get("customerId") or raw.get("parentEmail")
        if owner is None or str(owner) in legacy_owner_ids:
            raw_children.append(raw)

    children: dict[str, dict] = {}
    for raw in raw_children:
        child = translate_child(raw, parent_id)
        if not child["name"] or not child["age"]:
            logger.warning(f"Skipping legacy child without name or age: {raw.get('id')!r}")
            continue
        children.setdefault(child["child_id"], child)

    requests = [
        translate_request(raw, parent_id)
        for raw in _entry(snapshot, "requests", [])
        if _prefixed(raw.get("childId"), "child") in children
    ]
    requests.sort(key=lambda r: r["created_at"] or "")

    # older builds could leave several open requests per child; the newest one stays open
    newest_active: dict[str, dict] = {}
    for req in requests:
        if not req["active"]:
            continue
        previous = newest_active.get(req["child_id"])
        if previous is not None:
            previous.update({"status": "rejected", "active": False, "response_reason": "superseded during import"})
            logger.warning(f"Legacy request {previous['request_id']} superseded by {req['request_id']}")
        newest_active[req["child_id"]] = req

    latest_request = {}
    for req in requests:
        latest_request[req["child_id"]] = req["request_id"]

    def request_for(child_id: str) -> Optional[str]:
        return latest_request.get(child_id) or children[child_id].get("request_id")

    game_results: dict[str, dict] = {}
    for raw in _entry(snapshot, "game_results", []):
        child_id = _prefixed(raw.get("childId"), "child")
        if child_id in children and request_for(child_id):
            result = translate_game_result(raw, request_for(child_id))
            game_results[result["request_id"]] = result

    analyses: dict[str, dict] = {}
    for raw in _entry(snapshot, "analyses", []):
        child_id = _prefixed(raw.get("childId"), "child")
        if child_id in children and request_for(child_id):
            analysis = translate_analysis(raw, request_for(child_id))
            analysis["child_name"] = analysis["child_name"] or children[child_id]["name"]
            analyses[analysis["request_id"]] = analysis

    psychologists = [translate_psychologist(raw) for raw in _entry(snapshot, "psychologists", []) if raw.get("id")]

    return {
        "children": list(children.values()),
        "assessment_requests": requests,
        "game_results": list(game_results.values()),
        "ai_analysis": list(analyses.values()),
        "psychologists": psychologists,
    }
