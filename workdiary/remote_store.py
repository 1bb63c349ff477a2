"""
Async HTTP client for the Work Diary API (the Remote Store).

Every mutating call returns the complete, server-authoritative entry.
Failures are raised as ``RemoteStoreError`` subclasses.
"""
import logging
from datetime import date
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from workdiary.config import API_BASE_URL, DEFAULT_PAGE_SIZE, REQUEST_TIMEOUT_SECONDS
from workdiary.exceptions import (
    AuthenticationError,
    MalformedResponseError,
    TransportError,
    error_for_status,
)
from workdiary.models import AuthResponse, DiaryEntry, DiaryPage, ReactionType, UserRef

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RemoteStore:
    """Bearer-authenticated client for the diary routes."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.user: Optional[UserRef] = None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=REQUEST_TIMEOUT_SECONDS)

    async def __aenter__(self) -> "RemoteStore":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    # ==================== Auth ====================

    async def register(self, name: str, email: str, password: str) -> AuthResponse:
        auth = await self._call(
            "POST", "/users/register", AuthResponse,
            json={"name": name, "email": email, "password": password},
        )
        self._set_session(auth)
        return auth

    async def login(self, email: str, password: str) -> AuthResponse:
        auth = await self._call("POST", "/users/login", AuthResponse, json={"email": email, "password": password})
        self._set_session(auth)
        return auth

    def logout(self):
        self.token = None
        self.user = None

    async def me(self) -> UserRef:
        self.user = await self._call("GET", "/users/me", UserRef)
        return self.user

    def _set_session(self, auth: AuthResponse):
        self.token = auth.token
        self.user = auth.user

    # ==================== Diaries ====================

    async def save_today(self, content: str) -> DiaryEntry:
        """Upsert the caller's entry for today."""
        return await self._call("POST", "/diaries", DiaryEntry, json={"content": content})

    async def list_diaries(
        self,
        user_id: Optional[str] = None,
        day: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> DiaryPage:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if user_id:
            params["userId"] = user_id
        if day:
            params["date"] = day.isoformat()
        return await self._call("GET", "/diaries", DiaryPage, params=params)

    async def get_diary(self, diary_id: str) -> DiaryEntry:
        return await self._call("GET", f"/diaries/{diary_id}", DiaryEntry)

    async def add_comment(self, diary_id: str, content: str) -> DiaryEntry:
        return await self._call("POST", f"/diaries/{diary_id}/comments", DiaryEntry, json={"content": content})

    async def set_reaction(self, diary_id: str, reaction_type: ReactionType) -> DiaryEntry:
        return await self._call(
            "POST", f"/diaries/{diary_id}/reactions", DiaryEntry,
            json={"type": ReactionType(reaction_type).value},
        )

    async def add_todo(self, diary_id: str, content: str) -> DiaryEntry:
        return await self._call("POST", f"/diaries/{diary_id}/todos", DiaryEntry, json={"content": content})

    async def set_todo_completed(self, diary_id: str, todo_id: str, completed: bool) -> DiaryEntry:
        return await self._call(
            "PUT", f"/diaries/{diary_id}/todos/{todo_id}", DiaryEntry, json={"completed": completed}
        )

    async def delete_todo(self, diary_id: str, todo_id: str) -> DiaryEntry:
        return await self._call("DELETE", f"/diaries/{diary_id}/todos/{todo_id}", DiaryEntry)

    # ==================== Transport ====================

    async def _call(self, method: str, path: str, model: Type[ModelT], **kwargs) -> ModelT:
        payload = await self._request(method, path, **kwargs)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected response shape from {method} {path}",
                context={"method": method, "path": path, "errors": e.errors()},
            ) from e

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        context = {"method": method, "path": path}
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        elif not path.startswith("/users/"):
            raise AuthenticationError("User not authenticated", context=context)

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}", context=context) from e

        if response.is_error:
            raise error_for_status(response.status_code, _error_detail(response), context)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{method} {path} returned a non-JSON body", status_code=response.status_code, context=context
            ) from e


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
        if detail is not None:
            return str(detail)
    return response.reason_phrase
