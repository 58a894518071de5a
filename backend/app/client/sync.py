# adaptive assessment service — api first, local mirror when the api is unreachable
# online results are copied into the mirror; offline calls run the same workflow against it

import logging
import re
from typing import Any, Awaitable, Callable, Optional

from app.client.api import ApiUnavailableError, PathifyAPI
from app.client.legacy import translate_snapshot
from app.client.mirror import LocalMirror
from app.errors import AuthorizationError, NotFoundError, PathifyError
from app.models.analysis import doc_to_analysis
from app.models.assessment import doc_to_request
from app.models.child import doc_to_child
from app.models.game import doc_to_game_result
from app.models.psychologist import doc_to_psychologist
from app.services.games import GAME_CATALOG, GameSession
from app.services.matching import rank_psychologists
from app.services.workflow import ACTIVE_REQUEST_STATUSES, AssessmentWorkflow

logger = logging.getLogger(__name__)

# collection -> key the api "id" field is stored under
ID_KEYS = {
    "users": "user_id",
    "psychologists": "psychologist_id",
    "children": "child_id",
    "assessment_requests": "request_id",
    "game_results": "result_id",
    "ai_analysis": "analysis_id",
}


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_store(collection: str, payload: dict) -> dict:
    """api json -> mirror document"""
    doc = {}
    for key, value in payload.items():
        if key == "id":
            doc[ID_KEYS[collection]] = value
            continue
        if isinstance(value, list):
            value = [{_snake(k): v for k, v in item.items()} if isinstance(item, dict) else item for item in value]
        doc[_snake(key)] = value
    if collection == "ai_analysis" and "report" in doc:
        doc["ai_report"] = doc.pop("report")
    if collection == "assessment_requests":
        doc["active"] = doc.get("status") in ACTIVE_REQUEST_STATUSES
    return doc


class AssessmentSync:
    """one signed-in user's view of the platform, online or offline"""

    def __init__(self, api: PathifyAPI, mirror: Optional[LocalMirror] = None, user: Optional[dict] = None):
        self.api = api
        self.mirror = mirror or LocalMirror()
        self.user = user
        self.offline = False
        self.workflow = AssessmentWorkflow(self.mirror)

    @property
    def actor(self) -> dict:
        if not self.user:
            raise AuthorizationError("Sign in before using Pathify")
        return {"id": self.user["id"], "role": self.user["role"]}

    async def _run(self, label: str, online: Callable[[], Awaitable[Any]], offline: Callable[[], Awaitable[Any]]):
        try:
            result = await online()
        except ApiUnavailableError as e:
            logger.warning(f"{label}: {e}, using local mirror")
            self.offline = True
            return await offline()
        self.offline = False
        return result

    async def _cache(self, collection: str, payload: dict) -> dict:
        doc = to_store(collection, payload)
        key = ID_KEYS[collection]
        if collection == "assessment_requests" and doc.get("active"):
            await self._close_stale_requests(doc.get("child_id"), doc[key])
        await getattr(self.mirror, collection).replace_one({key: doc[key]}, doc, upsert=True)
        return doc

    async def _close_stale_requests(self, child_id: str, current_request_id: str):
        """the server holds one open request per child; any other open one in the mirror was closed remotely"""
        stale = await self.mirror.assessment_requests.find(
            {"child_id": child_id, "active": True, "request_id": {"$ne": current_request_id}}
        ).to_list(length=None)
        for req in stale:
            await self.mirror.assessment_requests.update_one(
                {"request_id": req["request_id"]},
                {"$set": {"status": "rejected", "active": False}},
            )
            logger.info(f"Mirrored request {req['request_id']} closed, server opened {current_request_id}")

    async def _refresh_child(self, child_id: str):
        """re-derive the mirrored child after the server moved it"""
        if await self.mirror.children.find_one({"child_id": child_id}):
            await self.workflow.reconcile(child_id)

    # session

    async def login(self, email: str, password: str) -> dict:
        """online only; the mirror never holds credentials"""
        await self.api.login(email, password)
        me = await self.api.get_current_user()
        self.user = me
        await self._cache("users", me)
        logger.info(f"Signed in as {me.get('email')} ({me.get('role')})")

        if me.get("role") == "psychologist":
            # offline responses look the acting psychologist up by user id
            await self._cache("psychologists", await self.api.get_my_psychologist_profile())
        elif me.get("role") == "customer":
            await self.push_local_children()
        return me

    def logout(self):
        self.api.logout()
        self.user = None

    # psychologists

    async def get_psychologists(self) -> list[dict]:
        """selectable psychologists in ranking order"""
        async def online():
            found = await self.api.get_psychologists()
            for p in found:
                await self._cache("psychologists", p)
            return found

        async def offline():
            docs = await self.mirror.psychologists.find({}).to_list(length=None)
            role = self.user.get("role") if self.user else None
            return [doc_to_psychologist(d).model_dump(by_alias=True) for d in rank_psychologists(docs, role)]

        return await self._run("get_psychologists", online, offline)

    async def get_all_psychologists(self) -> list[dict]:
        """every psychologist including unapproved ones, newest registration first (admins only)"""
        async def online():
            found = await self.api.get_all_psychologists()
            for p in found:
                await self._cache("psychologists", p)
            return found

        async def offline():
            if self.actor["role"] != "admin":
                raise AuthorizationError("Access denied. Required role: admin")
            cursor = self.mirror.psychologists.find({}).sort("registered_at", -1)
            return [doc_to_psychologist(d).model_dump(by_alias=True) async for d in cursor]

        return await self._run("get_all_psychologists", online, offline)

    # children

    async def get_children(self) -> list[dict]:
        async def online():
            found = await self.api.get_children()
            for c in found:
                await self._cache("children", c)
            return found

        async def offline():
            cursor = self.mirror.children.find({"parent_id": self.actor["id"]}).sort("created_at", -1)
            return [doc_to_child(d).model_dump(by_alias=True) async for d in cursor]

        return await self._run("get_children", online, offline)

    async def add_child(self, child: dict) -> dict:
        async def online():
            created = await self.api.add_child(child)
            await self._cache("children", created)
            return created

        async def offline():
            doc = await self.workflow.create_child(self.actor, child)
            # the server has never seen this child; pushed on the next sign-in
            await self.mirror.children.update_one({"child_id": doc["child_id"]}, {"$set": {"local_only": True}})
            return doc_to_child(doc).model_dump(by_alias=True)

        return await self._run("add_child", online, offline)

    async def update_child(self, child_id: str, changes: dict) -> dict:
        """edit name, age, gender, interests or notes of an owned child"""
        async def online():
            updated = await self.api.update_child(child_id, changes)
            await self._cache("children", updated)
            return updated

        async def offline():
            doc = await self.workflow.update_child(self.actor, child_id, changes)
            return doc_to_child(doc).model_dump(by_alias=True)

        return await self._run("update_child", online, offline)

    async def push_local_children(self) -> list[dict]:
        """register children that exist only in the mirror (added offline or imported) with the api.
        the server copy replaces the local one; local assessment progress is not carried over."""
        actor = self.actor
        local = await self.mirror.children.find({"parent_id": actor["id"], "local_only": True}).to_list(length=None)

        pushed = []
        for child in local:
            fields = {
                "name": child["name"],
                "age": child["age"],
                "gender": child.get("gender"),
                "interests": child.get("interests") or [],
                "notes": child.get("notes"),
            }
            try:
                created = await self.api.add_child(fields)
            except ApiUnavailableError as e:
                logger.warning(f"Stopped pushing local children: {e}")
                self.offline = True
                break
            except PathifyError as e:
                logger.warning(f"Could not push local child {child['name']!r}: {e.detail}")
                continue

            if child.get("status") != "available":
                logger.warning(
                    f"Local progress for {child['child_id']} ({child.get('status')}) is not carried over to the api"
                )
            await self.workflow.delete_child(actor, child["child_id"])
            await self._cache("children", created)
            pushed.append(created)

        if pushed:
            logger.info(f"Pushed {len(pushed)} local children to the api")
        return pushed

    # transitions

    async def select_psychologist(self, child_id: str, psychologist_id: str) -> dict:
        async def online():
            request = await self.api.create_assessment_request(child_id, psychologist_id)
            await self._cache("assessment_requests", request)
            await self._refresh_child(child_id)
            return request

        async def offline():
            outcome = await self.workflow.select_psychologist(self.actor, child_id, psychologist_id)
            return doc_to_request(outcome.record).model_dump(by_alias=True)

        return await self._run("select_psychologist", online, offline)

    async def respond_to_request(self, request_id: str, accepted: bool, reason: Optional[str] = None) -> dict:
        async def online():
            request = await self.api.respond_to_request(request_id, accepted, reason)
            await self._cache("assessment_requests", request)
            await self._refresh_child(request["childId"])
            return request

        async def offline():
            outcome = await self.workflow.respond_to_request(self.actor, request_id, accepted, reason)
            return doc_to_request(outcome.record).model_dump(by_alias=True)

        return await self._run("respond_to_request", online, offline)

    async def get_assessment_requests(self, status: Optional[str] = None) -> list[dict]:
        """requests visible to the signed-in user, newest first"""
        async def online():
            found = await self.api.get_assessment_requests(status)
            for request in found:
                await self._cache("assessment_requests", request)
            if self.actor["role"] == "psychologist":
                # offline responses move the child too, so assigned children are mirrored with their requests
                for request in found:
                    if request["status"] in ACTIVE_REQUEST_STATUSES:
                        await self._cache("children", await self.api.get_child(request["childId"]))
            return found

        async def offline():
            query = await self.workflow.request_query(self.actor, status)
            cursor = self.mirror.assessment_requests.find(query).sort("created_at", -1)
            return [doc_to_request(d).model_dump(by_alias=True) async for d in cursor]

        return await self._run("get_assessment_requests", online, offline)

    def start_session(self, child_id: str) -> GameSession:
        return GameSession(child_id, GAME_CATALOG)

    async def submit_game_results(self, child_id: str, answers: list[dict]) -> dict:
        async def online():
            body = [{_camel(k): v for k, v in a.items()} for a in answers]
            result = await self.api.save_game_results(child_id, body)
            await self._cache("game_results", result)
            await self._refresh_child(child_id)
            return result

        async def offline():
            outcome = await self.workflow.submit_game_result(self.actor, child_id, answers)
            return doc_to_game_result(outcome.record).model_dump(by_alias=True)

        return await self._run("submit_game_results", online, offline)

    async def submit_session(self, session: GameSession) -> dict:
        """submit a finished game session for its child"""
        return await self.submit_game_results(session.child_id, session.answers())

    async def get_game_results(self, child_id: Optional[str] = None) -> list[dict]:
        """game results visible to the signed-in user, optionally for one child"""
        async def online():
            found = await self.api.get_game_results(child_id)
            for result in found:
                await self._cache("game_results", result)
            return found

        async def offline():
            query = await self.workflow.game_result_query(self.actor, child_id)
            cursor = self.mirror.game_results.find(query).sort("completed_at", -1)
            return [doc_to_game_result(d).model_dump(by_alias=True) async for d in cursor]

        return await self._run("get_game_results", online, offline)

    async def submit_report(self, child_id: str, psychologist_id: str, report: dict) -> dict:
        """report keys use the stored names (iq_score, observations, report, ...)"""
        async def online():
            body = {"childId": child_id, "psychologistId": psychologist_id}
            body.update({_camel(k): v for k, v in report.items()})
            analysis = await self.api.save_ai_analysis(body)
            await self._cache("ai_analysis", analysis)
            await self._refresh_child(child_id)
            return analysis

        async def offline():
            outcome = await self.workflow.submit_report(self.actor, child_id, psychologist_id, report)
            return doc_to_analysis(outcome.record).model_dump(by_alias=True)

        return await self._run("submit_report", online, offline)

    async def get_report(self, child_id: str) -> dict:
        async def online():
            analysis = await self.api.get_ai_analysis(child_id)
            await self._cache("ai_analysis", analysis)
            return analysis

        async def offline():
            docs = await self.mirror.ai_analysis.find({"child_id": child_id}).sort("assessment_date", -1).to_list(length=1)
            if not docs:
                raise NotFoundError("No report available for this child yet")
            return doc_to_analysis(docs[0]).model_dump(by_alias=True)

        return await self._run("get_report", online, offline)

    # legacy data

    async def import_legacy_snapshot(self, snapshot: dict) -> dict[str, int]:
        """load an old browser localStorage dump into the mirror for the signed-in parent,
        then re-derive every imported child's status from its rows"""
        actor = self.actor
        translated = translate_snapshot(snapshot, actor["id"], (self.user or {}).get("email"))

        counts = {}
        for collection, docs in translated.items():
            key = ID_KEYS[collection]
            store = getattr(self.mirror, collection)
            # inactive rows first so an open request never collides with a closed one being replaced
            for doc in sorted(docs, key=lambda d: bool(d.get("active"))):
                if collection == "children":
                    doc["local_only"] = True
                elif collection == "assessment_requests" and doc.get("active") and await store.count_documents(
                    {"child_id": doc["child_id"], "active": True, "request_id": {"$ne": doc[key]}}
                ):
                    # an open request already in the mirror wins over the imported one
                    doc.update({"status": "rejected", "active": False, "response_reason": "superseded during import"})
                    logger.warning(f"Legacy request {doc[key]} superseded by an open mirrored request")
                await store.replace_one({key: doc[key]}, doc, upsert=True)
            counts[collection] = len(docs)

        for child in translated["children"]:
            await self.workflow.reconcile(child["child_id"])

        logger.info(f"Imported legacy snapshot: {counts}")
        return counts
