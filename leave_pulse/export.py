"""CSV exports of aggregation results delivered to Slack."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from .errors import ExportError
from .slack_client import SlackApiError, SlackClient

logger = logging.getLogger(__name__)


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


class SlackCsvExporter:
    """Uploads tabular projections as ``.csv`` files to a Slack channel."""

    def __init__(self, client: SlackClient) -> None:
        self.client = client

    async def export(self, destination: str, title: str, rows: Sequence[Mapping[str, Any]]) -> bool:
        """Upload ``rows`` to ``destination``; returns False when there is nothing to send."""

        if not rows:
            logger.info("No rows to export for %s", title)
            return False
        filename = title.lower().replace(" ", "_") + ".csv"
        try:
            await self.client.upload_file(
                destination,
                filename=filename,
                content=rows_to_csv(rows),
                title=title,
            )
        except (SlackApiError, httpx.HTTPError) as exc:
            raise ExportError(f"could not upload {filename} to {destination}: {exc}") from exc
        logger.info("Exported %s rows of %s to %s", len(rows), title, destination)
        return True


__all__ = ["SlackCsvExporter", "rows_to_csv"]
