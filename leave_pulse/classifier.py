"""LLM-backed classification of chat messages into attendance candidates."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from .config import DEFAULT_OPENAI_BASE_URL
from .errors import ClassificationError
from .models import UserContext

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Classify the following chat message and extract structured data.

Message: "{text}"
Author: {user}
Timestamp: {timestamp}

Office hours: {office_start} to {office_end}.

Rules:
- Working from home / WFH: set is_working_from_home to true.
- On leave / taking the day off: set is_onleave to true.
- Leaving before the end of office hours: set is_leaving_early to true.
- Arriving after the start of office hours: set is_running_late to true.
- Out of office / OOO: set is_out_of_office to true. When a duration is
  stated, start_time is the timestamp and end_time is the timestamp plus
  that duration; otherwise leave both null.
- Half day: set is_on_half_day to true.
- leave_day is the calendar day (YYYY-MM-DD) the absence applies to when the
  message names a day other than today, otherwise null.
- reason is the stated reason or null.
- If the message is not an attendance update, set every flag to false.

Answer with a single JSON object with exactly these keys:
timestamp, leave_day, start_time, end_time, reason, is_working_from_home,
is_onleave, is_leaving_early, is_running_late, is_out_of_office,
is_on_half_day. Datetimes are ISO-8601 with an offset.
"""


class MessageClassifier:
    """Thin async client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4",
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        office_start: str = "09:00",
        office_end: str = "18:00",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.model = model
        self.office_start = office_start
        self.office_end = office_end
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def build_prompt(self, user: UserContext, text: str, timestamp: datetime) -> str:
        return PROMPT_TEMPLATE.format(
            text=text,
            user=user.display_name,
            timestamp=timestamp.isoformat(),
            office_start=self.office_start,
            office_end=self.office_end,
        )

    async def classify(self, user: UserContext, text: str, timestamp: datetime) -> Dict[str, Any]:
        """Return the raw candidate the model extracted from ``text``.

        The result is unvalidated; it carries no ``user_id``/``user`` keys.
        """

        payload = {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [{"role": "user", "content": self.build_prompt(user, text, timestamp)}],
        }
        try:
            response = await self._client.post("chat/completions", json=payload)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except httpx.HTTPError as exc:
            raise ClassificationError(f"classifier request failed: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ClassificationError("classifier returned an unexpected response") from exc

        try:
            candidate = json.loads(content)
        except (TypeError, ValueError) as exc:
            raise ClassificationError("classifier output is not valid JSON") from exc
        if not isinstance(candidate, dict):
            raise ClassificationError("classifier output is not a JSON object")
        logger.debug("Classified message from %s: %s", user.id, candidate)
        return candidate


__all__ = ["MessageClassifier", "PROMPT_TEMPLATE"]
