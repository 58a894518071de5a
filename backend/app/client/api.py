# pathify api client — async httpx wrapper around the rest endpoints
# domain errors come back as the same typed exceptions the server raised;
# transport failures and 5xx surface as ApiUnavailableError so callers can fall back

import logging
from typing import Any, Optional

import httpx

from app.config import settings
from app.errors import error_from_response

logger = logging.getLogger(__name__)


class ApiUnavailableError(Exception):
    """the api could not be reached or failed on its side"""


class PathifyAPI:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = token
        self.refresh_token: Optional[str] = None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout or settings.CLIENT_TIMEOUT_SECONDS,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        await self._client.aclose()

    # tokens

    def set_tokens(self, access: Optional[str], refresh: Optional[str] = None):
        self.token = access
        self.refresh_token = refresh

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _call(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        try:
            resp = await self._client.request(method, path, json=json, params=params, headers=self._headers())
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise ApiUnavailableError(f"Could not reach {self.base_url}") from e

        if resp.status_code >= 500:
            logger.warning(f"{method} {path} returned {resp.status_code}")
            raise ApiUnavailableError(f"API error {resp.status_code} on {method} {path}")
        if resp.status_code == 204:
            return None

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.is_error:
            error = error_from_response(resp.status_code, body if isinstance(body, dict) else None)
            if error is not None:
                raise error
            resp.raise_for_status()
        return body

    def _store_tokens(self, body: dict) -> dict:
        self.set_tokens(body.get("accessToken"), body.get("refreshToken"))
        return body

    # auth

    async def register(self, email: str, password: str, name: str, role: str = "customer", **profile) -> dict:
        body = {"email": email, "password": password, "name": name, "role": role, **profile}
        return self._store_tokens(await self._call("POST", "/auth/signup", json=body))

    async def login(self, email: str, password: str) -> dict:
        return self._store_tokens(await self._call("POST", "/auth/login", json={"email": email, "password": password}))

    async def refresh(self) -> dict:
        body = await self._call("POST", "/auth/refresh", json={"refreshToken": self.refresh_token})
        return self._store_tokens(body)

    def logout(self):
        self.set_tokens(None)

    async def get_current_user(self) -> dict:
        return await self._call("GET", "/auth/me")

    async def update_profile(self, **fields) -> dict:
        return await self._call("PATCH", "/auth/profile", json=fields)

    async def delete_account(self) -> None:
        await self._call("DELETE", "/auth/account")
        self.logout()

    # psychologists

    async def get_psychologists(self) -> list[dict]:
        return await self._call("GET", "/psychologists")

    async def get_psychologist(self, psychologist_id: str) -> dict:
        return await self._call("GET", f"/psychologists/{psychologist_id}")

    async def get_my_psychologist_profile(self) -> dict:
        return await self._call("GET", "/psychologists/my-profile")

    async def update_psychologist_profile(self, **fields) -> dict:
        return await self._call("PUT", "/psychologists/my-profile", json=fields)

    # admin

    async def get_admin_stats(self) -> dict:
        return await self._call("GET", "/admin/stats")

    async def get_all_psychologists(self) -> list[dict]:
        return await self._call("GET", "/admin/psychologists")

    async def approve_psychologist(self, psychologist_id: str, approved: bool, reason: Optional[str] = None) -> dict:
        return await self._call(
            "PUT", f"/admin/psychologists/{psychologist_id}/approval",
            json={"approved": approved, "reason": reason},
        )

    async def delete_user(self, user_id: str) -> None:
        await self._call("DELETE", f"/admin/users/{user_id}")

    # children

    async def get_children(self) -> list[dict]:
        return await self._call("GET", "/children")

    async def get_child(self, child_id: str) -> dict:
        return await self._call("GET", f"/children/{child_id}")

    async def add_child(self, child: dict) -> dict:
        return await self._call("POST", "/children", json=child)

    async def update_child(self, child_id: str, changes: dict) -> dict:
        return await self._call("PUT", f"/children/{child_id}", json=changes)

    async def delete_child(self, child_id: str) -> None:
        await self._call("DELETE", f"/children/{child_id}")

    # assessment requests

    async def create_assessment_request(self, child_id: str, psychologist_id: str) -> dict:
        return await self._call(
            "POST", "/assessment-requests", json={"childId": child_id, "psychologistId": psychologist_id}
        )

    async def get_assessment_requests(self, status: Optional[str] = None) -> list[dict]:
        params = {"status": status} if status else None
        return await self._call("GET", "/assessment-requests", params=params)

    async def respond_to_request(self, request_id: str, accepted: bool, reason: Optional[str] = None) -> dict:
        return await self._call(
            "PUT", f"/assessment-requests/{request_id}/respond", json={"accepted": accepted, "reason": reason}
        )

    # games

    async def get_questions(self) -> list[dict]:
        return await self._call("GET", "/game-results/questions")

    async def save_game_results(self, child_id: str, answers: list[dict]) -> dict:
        return await self._call("POST", "/game-results", json={"childId": child_id, "answers": answers})

    async def get_game_results(self, child_id: Optional[str] = None) -> list[dict]:
        params = {"childId": child_id} if child_id else None
        return await self._call("GET", "/game-results", params=params)

    # reports

    async def save_ai_analysis(self, analysis: dict) -> dict:
        return await self._call("POST", "/ai-analysis", json=analysis)

    async def get_ai_analysis(self, child_id: str) -> dict:
        return await self._call("GET", f"/ai-analysis/{child_id}")

    # utility

    async def health_check(self) -> dict:
        return await self._call("GET", "/health")

    async def is_api_available(self) -> bool:
        try:
            await self.health_check()
            return True
        except ApiUnavailableError:
            return False
