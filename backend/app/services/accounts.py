# account helpers shared by the auth and admin routers
# public psychologist ids and cascading user deletion

import logging
from datetime import datetime, timezone

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.config import settings
from app.errors import ConflictError, NotFoundError
from app.services.workflow import AssessmentWorkflow

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = {"id": "system", "role": "admin"}

# concurrent signups can race for the same psyNNN
PROFILE_ID_ATTEMPTS = 5


async def next_psychologist_id(db) -> str:
    """next free public id in the psy001, psy002, ... sequence"""
    n = await db.psychologists.count_documents({}) + 1
    while await db.psychologists.find_one({"psychologist_id": f"psy{n:03d}"}):
        n += 1
    return f"psy{n:03d}"


async def create_psychologist_profile(db, user_id: str, email: str, fields: dict, now: str) -> dict:
    """insert the unapproved profile for a new psychologist account under the next free id"""
    for _ in range(PROFILE_ID_ATTEMPTS):
        profile = {
            "user_id": user_id,
            "psychologist_id": await next_psychologist_id(db),
            "name": fields["name"],
            "email": email,
            "title": (fields.get("title") or "").strip(),
            "specializations": fields.get("specializations") or [],
            "experience": fields.get("experience"),
            "rating": settings.DEFAULT_PSYCHOLOGIST_RATING,
            "completed_assessments": 0,
            "description": fields.get("description"),
            "available": True,
            "approved": False,
            "approved_by": None,
            "approved_at": None,
            "rejected_by": None,
            "rejected_at": None,
            "rejection_reason": None,
            "registered_at": now,
        }
        try:
            await db.psychologists.insert_one(profile)
        except DuplicateKeyError:
            logger.warning(f"Psychologist id {profile['psychologist_id']} was taken concurrently, retrying")
            continue
        return profile
    raise ConflictError("Could not assign a psychologist id, please try again")


async def delete_user_cascade(db, user_id: str) -> None:
    """delete a user and everything they own.
    customers lose their children (and those children's requests, results, reports);
    psychologists lose their profile and their open requests are released as rejected."""
    user = await db.users.find_one({"_id": ObjectId(user_id)})
    if not user:
        raise NotFoundError(f"User {user_id} not found")

    workflow = AssessmentWorkflow(db)

    if user.get("role") == "customer":
        child_ids = [doc["child_id"] async for doc in db.children.find({"parent_id": user_id})]
        for child_id in child_ids:
            await workflow.delete_child(SYSTEM_ACTOR, child_id)

    elif user.get("role") == "psychologist":
        profile = await db.psychologists.find_one({"user_id": user_id})
        if profile:
            psychologist_id = profile["psychologist_id"]
            open_requests = [
                doc async for doc in db.assessment_requests.find(
                    {"psychologist_id": psychologist_id, "active": True}
                )
            ]
            now = datetime.now(timezone.utc).isoformat()
            for req in open_requests:
                await db.assessment_requests.update_one(
                    {"request_id": req["request_id"]},
                    {"$set": {
                        "status": "rejected",
                        "active": False,
                        "responded_at": now,
                        "response_reason": "psychologist account removed",
                    }},
                )
                await workflow.reconcile(req["child_id"])
            await db.psychologists.delete_one({"user_id": user_id})
            logger.info(f"Psychologist {psychologist_id} removed, released {len(open_requests)} open requests")

    await db.users.delete_one({"_id": ObjectId(user_id)})
