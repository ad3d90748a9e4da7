"""FastAPI application exposing the Leave Pulse REST API and Slack intake."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .errors import StorageError
from .service import AbsenceService, build_service
from .slack_client import verify_signature

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, service: Optional[AbsenceService] = None) -> FastAPI:
    if service is None:
        settings = settings or load_settings()
        service = build_service(settings)
    settings = service.settings

    async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> None:
        if x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    def parse_day(value: Optional[str]) -> Optional[date]:
        if not value:
            return None
        try:
            return datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD") from exc

    app = FastAPI(title="Leave Pulse API", version="1.0.0")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "storage unavailable, try again"},
        )

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        await service.client.close()
        await service.classifier.close()

    def get_service() -> AbsenceService:
        return service

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/records")
    async def get_records(
        user: Optional[str] = None,
        filter: str = "all",
        _: None = Depends(verify_api_key),
        svc: AbsenceService = Depends(get_service),
    ) -> dict[str, object]:
        return {"filter": filter, "records": svc.get_attendance_records(user, filter)}

    @app.get("/api/trends")
    async def get_trends(
        period: str = "month",
        category: Optional[str] = None,
        destination: Optional[str] = None,
        _: None = Depends(verify_api_key),
        svc: AbsenceService = Depends(get_service),
    ) -> dict[str, object]:
        return await svc.get_trends(period, category, destination)

    @app.get("/api/team-insights")
    async def get_team_insights(
        month: Optional[int] = None,
        year: Optional[int] = None,
        destination: Optional[str] = None,
        _: None = Depends(verify_api_key),
        svc: AbsenceService = Depends(get_service),
    ) -> dict[str, object]:
        return await svc.get_team_insights(month, year, destination)

    @app.get("/api/predict")
    async def get_prediction(
        user: str,
        date_param: Optional[str] = None,
        _: None = Depends(verify_api_key),
        svc: AbsenceService = Depends(get_service),
    ) -> dict[str, object]:
        return svc.predict(user, parse_day(date_param))

    @app.get("/api/calendar")
    async def get_calendar(
        month: Optional[int] = None,
        year: Optional[int] = None,
        _: None = Depends(verify_api_key),
        svc: AbsenceService = Depends(get_service),
    ) -> dict[str, object]:
        return svc.get_team_calendar(month, year)

    @app.post("/slack/events")
    async def slack_events(
        request: Request,
        background: BackgroundTasks,
        x_slack_request_timestamp: str = Header("", alias="X-Slack-Request-Timestamp"),
        x_slack_signature: str = Header("", alias="X-Slack-Signature"),
        x_slack_retry_num: Optional[str] = Header(None, alias="X-Slack-Retry-Num"),
        svc: AbsenceService = Depends(get_service),
    ) -> dict[str, Any]:
        body = await request.body()
        if not verify_signature(
            settings.slack_signing_secret,
            timestamp=x_slack_request_timestamp,
            body=body,
            signature=x_slack_signature,
        ):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid signature")
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="invalid payload") from exc

        if payload.get("type") == "url_verification":
            return {"challenge": payload.get("challenge")}
        if x_slack_retry_num is not None:
            # Slack retries deliveries we already accepted.
            return {"ok": True}
        if payload.get("type") == "event_callback":
            event = payload.get("event") or {}
            background.add_task(svc.handle_slack_event, event)
        return {"ok": True}

    return app


__all__ = ["create_app"]
