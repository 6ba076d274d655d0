"""FastAPI routes exposing the alarm manager as JSON endpoints."""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from alarms import AlarmManager, InvalidScheduleError, MalformedInputError, NotFoundError, parse_alarm_time

logger = logging.getLogger(__name__)


class SetAlarmRequest(BaseModel):
    alarm_time: str
    message: str


class RescheduleAlarmRequest(BaseModel):
    message: str
    new_time: str


class StopAlarmRequest(BaseModel):
    message: str


class AlarmOut(BaseModel):
    id: str
    fire_at: str
    label: str
    status: str
    completed: bool
    created_at: str
    fired_at: str | None = None


class IndexResponse(BaseModel):
    today_alarm_count: int
    alarms: List[AlarmOut]


class MessageResponse(BaseModel):
    message: str


class CompletedResponse(BaseModel):
    completed_alarms: List[AlarmOut]


def _out(alarm) -> Dict[str, Any]:
    return alarm.to_dict()


def create_app(manager: AlarmManager) -> FastAPI:
    app = FastAPI(title="Alarm Clock")
    app.state.alarm_manager = manager

    @app.exception_handler(MalformedInputError)
    async def malformed_input(request: Request, exc: MalformedInputError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidScheduleError)
    async def invalid_schedule(request: Request, exc: InvalidScheduleError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/", response_model=IndexResponse)
    def index():
        """Today's alarm count and every alarm in insertion order."""
        return IndexResponse(
            today_alarm_count=manager.count_todays_alarms(),
            alarms=[_out(a) for a in manager.get_alarms_for_display()],
        )

    @app.get("/alarm/{message}", response_model=MessageResponse)
    def show_alarm(message: str):
        return MessageResponse(message=message)

    @app.get("/check_alarm", response_model=MessageResponse)
    def check_alarm():
        """Label of the first pending alarm already past due, or an empty string."""
        return MessageResponse(message=manager.first_overdue_unfired() or "")

    @app.post("/set_alarm", response_model=AlarmOut, status_code=201)
    def set_alarm(req: SetAlarmRequest):
        fire_at = parse_alarm_time(req.alarm_time)
        alarm = manager.set_alarm(fire_at, req.message)
        return _out(alarm)

    @app.post("/reschedule_alarm", response_model=AlarmOut)
    def reschedule_alarm(req: RescheduleAlarmRequest):
        new_time = parse_alarm_time(req.new_time)
        alarm = manager.reschedule(req.message, new_time)
        if alarm is None:
            raise NotFoundError("Alarm not found.")
        return _out(alarm)

    @app.post("/stop_alarm", response_model=AlarmOut)
    def stop_alarm(req: StopAlarmRequest):
        alarm = manager.stop(req.message)
        if alarm is None:
            raise NotFoundError("Alarm not found.")
        return _out(alarm)

    @app.get("/completed_alarms", response_model=CompletedResponse)
    def completed_alarms():
        return CompletedResponse(completed_alarms=[_out(a) for a in manager.get_completed_alarms()])

    return app
