"""Configuration helpers for Leave Pulse."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    slack_bot_token: str
    slack_signing_secret: str
    api_key: str
    openai_api_key: str
    database_path: Path
    openai_model: str = "gpt-4"
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    report_channel_id: Optional[str] = None
    office_start: str = "09:00"
    office_end: str = "18:00"
    # Team insights match a month in every year unless this is set.
    insights_year_scoped: bool = False


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db_path = Path(os.getenv("DATABASE_PATH", "leave_pulse.db")).expanduser()

    slack_token = os.getenv("SLACK_BOT_TOKEN")
    signing_secret = os.getenv("SLACK_SIGNING_SECRET")
    api_key = os.getenv("API_KEY")
    openai_key = os.getenv("OPENAI_API_KEY")

    if not slack_token:
        raise RuntimeError("SLACK_BOT_TOKEN must be configured")
    if not signing_secret:
        raise RuntimeError("SLACK_SIGNING_SECRET must be configured")
    if not api_key:
        raise RuntimeError("API_KEY must be configured")
    if not openai_key:
        raise RuntimeError("OPENAI_API_KEY must be configured")

    return Settings(
        slack_bot_token=slack_token,
        slack_signing_secret=signing_secret,
        api_key=api_key,
        openai_api_key=openai_key,
        database_path=db_path,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4"),
        openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
        report_channel_id=os.getenv("REPORT_CHANNEL_ID") or None,
        office_start=os.getenv("OFFICE_START", "09:00"),
        office_end=os.getenv("OFFICE_END", "18:00"),
        insights_year_scoped=_flag(os.getenv("INSIGHTS_YEAR_SCOPED")),
    )


__all__ = ["Settings", "load_settings"]
