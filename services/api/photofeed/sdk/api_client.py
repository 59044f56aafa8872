"""
Async client for the Photo Feed API.

Used by the optimistic UI controller and by the seed script. Every non-2xx
response and every transport failure is raised as ApiRequestError so callers
only have to handle one exception type; `network=True` marks failures where
no response was received.
"""
import logging
from typing import Any, Optional

import httpx

from photofeed.config import settings

logger = logging.getLogger(__name__)


class ApiRequestError(Exception):
    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        network: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.network = network


class FeedApiClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._token = token
        self._base_url = base_url or settings.api_base_url
        self._transport = transport
        self._timeout = timeout or settings.client_timeout
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "FeedApiClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._http is None:
            raise RuntimeError("FeedApiClient not started — call start() first")
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s: no response (%s)", method, path, exc)
            raise ApiRequestError(str(exc) or type(exc).__name__, network=True) from exc

        if resp.is_success:
            return resp.json() if resp.content else None

        try:
            body = resp.json()
        except ValueError:
            body = {}
        message = body.get("error") or body.get("detail") or resp.reason_phrase
        raise ApiRequestError(str(message), status=resp.status_code, code=body.get("code"))

    # ── users ──────────────────────────────────────────────────────────────

    async def sync_user(self, display_name: str) -> dict:
        return await self._request("POST", "/users/sync", json={"display_name": display_name})

    async def me(self) -> dict:
        return await self._request("GET", "/users/me")

    async def get_profile(self, user_id: str) -> dict:
        return await self._request("GET", f"/users/{user_id}")

    async def set_follow(self, user_id: str, following: bool) -> dict:
        return await self._request("POST" if following else "DELETE", f"/users/{user_id}/follow")

    # ── posts & feed ───────────────────────────────────────────────────────

    async def get_feed(
        self, limit: Optional[int] = None, offset: int = 0, author_id: Optional[str] = None
    ) -> dict:
        params: dict[str, Any] = {"offset": offset}
        if limit is not None:
            params["limit"] = limit
        if author_id is not None:
            params["author_id"] = author_id
        return await self._request("GET", "/feed/", params=params)

    async def get_post(self, post_id: str) -> dict:
        return await self._request("GET", f"/posts/{post_id}")

    async def create_post(
        self, image: bytes, content_type: str, caption: Optional[str] = None,
        filename: str = "upload",
    ) -> dict:
        data = {"caption": caption} if caption is not None else None
        files = {"image": (filename, image, content_type)}
        return await self._request("POST", "/posts/", data=data, files=files)

    async def delete_post(self, post_id: str) -> dict:
        return await self._request("DELETE", f"/posts/{post_id}")

    async def set_post_like(self, post_id: str, liked: bool) -> dict:
        return await self._request("POST" if liked else "DELETE", f"/posts/{post_id}/like")

    # ── comments ───────────────────────────────────────────────────────────

    async def list_comments(self, post_id: str, limit: Optional[int] = None, offset: int = 0) -> dict:
        params: dict[str, Any] = {"offset": offset}
        if limit is not None:
            params["limit"] = limit
        return await self._request("GET", f"/posts/{post_id}/comments", params=params)

    async def create_comment(self, post_id: str, content: str) -> dict:
        return await self._request("POST", f"/posts/{post_id}/comments", json={"content": content})

    async def delete_comment(self, comment_id: str) -> dict:
        return await self._request("DELETE", f"/comments/{comment_id}")

    async def set_comment_like(self, comment_id: str, liked: bool) -> dict:
        return await self._request(
            "POST" if liked else "DELETE", f"/comments/{comment_id}/like"
        )
