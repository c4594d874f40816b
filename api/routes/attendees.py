"""
api/routes/attendees.py -- Attendee CRUD routes.

Routes:
  POST   /api/attendees        -- create; 201 Attendee
  GET    /api/attendees        -- list
  GET    /api/attendees/{id}   -- one attendee; 404 if unknown
  PUT    /api/attendees/{id}   -- shallow merge; 404 if unknown
  DELETE /api/attendees/{id}   -- idempotent; 204. References to the attendee
                                  in events and tasks are left in place.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import AttendeeResponse, RecordIdPath
from auth.dependencies import require_identity
from resources.graph import ResourceGraph

router = APIRouter(dependencies=[Depends(require_identity)])


def _graph(request: Request) -> ResourceGraph:
    return request.app.state.graph


@router.post("/attendees", response_model=AttendeeResponse, status_code=201)
def create_attendee(request: Request, payload: dict[str, Any] = Body(...)) -> AttendeeResponse:
    return AttendeeResponse.from_domain(_graph(request).create_attendee(payload))


@router.get("/attendees", response_model=list[AttendeeResponse])
def list_attendees(request: Request) -> list[AttendeeResponse]:
    return [AttendeeResponse.from_domain(a) for a in _graph(request).list_attendees()]


@router.get("/attendees/{attendee_id}", response_model=AttendeeResponse)
def get_attendee(request: Request, attendee_id: RecordIdPath) -> AttendeeResponse:
    return AttendeeResponse.from_domain(_graph(request).get_attendee(attendee_id))


@router.put("/attendees/{attendee_id}", response_model=AttendeeResponse)
def update_attendee(
    request: Request, attendee_id: RecordIdPath, payload: dict[str, Any] = Body(...)
) -> AttendeeResponse:
    return AttendeeResponse.from_domain(_graph(request).update_attendee(attendee_id, payload))


@router.delete("/attendees/{attendee_id}", status_code=204)
def delete_attendee(request: Request, attendee_id: RecordIdPath) -> Response:
    _graph(request).delete_attendee(attendee_id)
    return Response(status_code=204)
