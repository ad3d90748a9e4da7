from __future__ import annotations

from datetime import date

import pytest

from leave_pulse.mcp_server import _ensure_date, create_mcp


@pytest.mark.asyncio
async def test_attendance_tools_are_registered(service):
    tools = await create_mcp(service).list_tools()

    assert {tool.name for tool in tools} == {
        "get_attendance",
        "get_trends",
        "get_team_insights",
        "predict_attendance",
        "get_team_calendar",
    }


def test_ensure_date():
    assert _ensure_date(None) is None
    assert _ensure_date("2024-03-04") == date(2024, 3, 4)
    with pytest.raises(ValueError):
        _ensure_date("March 4th")
