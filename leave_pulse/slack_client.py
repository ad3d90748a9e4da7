"""HTTP client for interacting with Slack Web API."""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Any, Dict, Optional

import httpx

SLACK_API_BASE = "https://slack.com/api"
SIGNATURE_VERSION = "v0"
MAX_REQUEST_AGE_SECONDS = 60 * 5


class SlackApiError(RuntimeError):
    """Raised when Slack returns an error response."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack API error for {method}: {error}")
        self.method = method
        self.error = error


class SlackClient:
    """Simple async wrapper around the Slack Web API endpoints Leave Pulse uses."""

    def __init__(
        self,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=SLACK_API_BASE,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, *, params: Optional[Dict[str, Any]] = None, json: Any = None) -> Dict[str, Any]:
        if json is not None:
            response = await self._client.post(method, json=json)
        else:
            response = await self._client.get(method, params=params)
        return _parse(method, response)

    async def fetch_user(self, user_id: str) -> Dict[str, Any]:
        data = await self._call("users.info", params={"user": user_id})
        return data.get("user", {})

    async def display_name(self, user_id: str) -> str:
        """Best human name for a member, falling back to the raw id."""

        member = await self.fetch_user(user_id)
        profile = member.get("profile", {})
        return (
            profile.get("display_name")
            or profile.get("real_name")
            or member.get("real_name")
            or member.get("name")
            or user_id
        )

    async def post_message(self, channel: str, text: str, *, thread_ts: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        return await self._call("chat.postMessage", json=payload)

    async def upload_file(
        self,
        channel_id: str,
        *,
        filename: str,
        content: bytes,
        title: str,
    ) -> None:
        """Upload a file with the external-upload flow and share it in a channel."""

        method = "files.getUploadURLExternal"
        response = await self._client.post(method, data={"filename": filename, "length": str(len(content))})
        ticket = _parse(method, response)
        if not ticket.get("upload_url") or not ticket.get("file_id"):
            raise SlackApiError(method, "missing_upload_ticket")

        upload = await self._client.post(ticket["upload_url"], content=content)
        upload.raise_for_status()

        await self._call(
            "files.completeUploadExternal",
            json={
                "files": [{"id": ticket["file_id"], "title": title}],
                "channel_id": channel_id,
            },
        )


def _parse(method: str, response: httpx.Response) -> Dict[str, Any]:
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError as exc:
        raise SlackApiError(method, "invalid_response") from exc
    if not isinstance(data, dict):
        raise SlackApiError(method, "invalid_response")
    if not data.get("ok"):
        raise SlackApiError(method, data.get("error", "unknown_error"))
    return data


def verify_signature(
    signing_secret: str,
    *,
    timestamp: str,
    body: bytes,
    signature: str,
    now: Optional[float] = None,
) -> bool:
    """Check a Slack request signature (``X-Slack-Signature``)."""

    try:
        request_time = int(timestamp)
    except (TypeError, ValueError):
        return False
    current = time.time() if now is None else now
    if abs(current - request_time) > MAX_REQUEST_AGE_SECONDS:
        return False
    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode() + body
    expected = f"{SIGNATURE_VERSION}=" + hmac.new(signing_secret.encode(), base, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature or "")


__all__ = ["SlackClient", "SlackApiError", "verify_signature"]
