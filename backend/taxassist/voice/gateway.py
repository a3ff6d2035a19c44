"""
HTTP Backend Gateway

BackendGateway implementation that calls this service's REST API with httpx,
authenticated with the user's session credential. Every call has an explicit
timeout and every failure is mapped onto the AppError taxonomy.
"""
import logging
from typing import Optional

import httpx

from ..config import settings
from ..core.errors import (
    AppError,
    AuthError,
    NotFoundError,
    PersistenceError,
    QuotaError,
    UpstreamError,
    UpstreamTimeout,
    ValidationError,
)
from .base import BackendGateway

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class HttpBackendGateway(BackendGateway):
    def __init__(
        self,
        base_url: str,
        session_token: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session_token = session_token
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url + API_PREFIX,
            headers={"Authorization": f"Bearer {self.session_token}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict, failure: type) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"POST {path} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise failure(f"POST {path} failed: {e!r}") from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response, failure: type) -> None:
        if resp.is_success:
            return
        try:
            body = resp.json()
        except ValueError:
            body = {}
        message = body.get("error") if isinstance(body, dict) else None
        detail = f"{resp.request.method} {resp.request.url.path} -> {resp.status_code}: {message}"

        if resp.status_code == 401:
            raise AuthError(detail)
        if resp.status_code == 403 and "callSeconds" in (message or ""):
            kind = QuotaError.EXHAUSTED if "remaining" in body else QuotaError.UNCONFIGURED
            raise QuotaError(kind, remaining=body.get("remaining"), detail=detail)
        if resp.status_code == 404:
            raise NotFoundError(detail)
        if resp.status_code in (400, 422):
            raise ValidationError(detail, public_message=message or ValidationError.public_message)
        raise failure(detail)

    @staticmethod
    def _json(resp: httpx.Response, failure: type):
        try:
            return resp.json()
        except ValueError as e:
            raise failure(f"{resp.request.url.path} returned a non-JSON body ({resp.status_code})") from e

    async def summarize(self, transcript: str) -> str:
        resp = await self._post("/summarize", {"transcript": transcript}, UpstreamError)
        self._raise_for_status(resp, UpstreamError)
        body = self._json(resp, UpstreamError)
        summary = body.get("summary") if isinstance(body, dict) else None
        if not isinstance(summary, str):
            raise UpstreamError(f"server returned invalid summary data: {body!r}")
        return summary

    async def save_conversation(self, payload: dict) -> dict:
        resp = await self._post("/conversations", payload, PersistenceError)
        self._raise_for_status(resp, PersistenceError)
        record = self._json(resp, PersistenceError)
        if not isinstance(record, dict) or not record.get("id"):
            raise PersistenceError(f"server returned invalid conversation data: {record!r}")
        return record

    async def tick(self, seconds: int) -> int:
        resp = await self._post("/conversations/tick", {"tickSeconds": seconds}, AppError)
        self._raise_for_status(resp, AppError)
        body = self._json(resp, AppError)
        remaining = body.get("remaining") if isinstance(body, dict) else None
        if not isinstance(remaining, int):
            raise AppError(f"server returned invalid quota data: {body!r}")
        return remaining
