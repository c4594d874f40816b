"""
api/routes/events.py -- Event CRUD routes.

Routes:
  POST   /api/events          -- create; 201 Event (attendees as ids)
  GET    /api/events          -- list; attendees populated
  GET    /api/events/{id}     -- one event; attendees populated; 404 if unknown
  PUT    /api/events/{id}     -- shallow merge of the given fields; 404 if unknown
  DELETE /api/events/{id}     -- idempotent; 204. Tasks of the event are kept.

Path ids must be in 1..2**63-1 (a 400 validation_error otherwise), the range the
SQL store can hold.

Bodies are taken as raw JSON objects and validated by ResourceGraph
(resources/schemas.py), so HTTP and non-HTTP callers share one set of rules.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import EventResponse, PopulatedEventResponse, RecordIdPath
from auth.dependencies import require_identity
from resources.graph import ResourceGraph

# Every route here sits behind the access gate. Any valid token may read or
# change any event: there is no per-user ownership.
router = APIRouter(dependencies=[Depends(require_identity)])


def _graph(request: Request) -> ResourceGraph:
    return request.app.state.graph


@router.post("/events", response_model=EventResponse, status_code=201)
def create_event(request: Request, payload: dict[str, Any] = Body(...)) -> EventResponse:
    return EventResponse.from_domain(_graph(request).create_event(payload))


@router.get("/events", response_model=list[PopulatedEventResponse])
def list_events(request: Request) -> list[PopulatedEventResponse]:
    return [PopulatedEventResponse.from_domain(e) for e in _graph(request).list_events()]


@router.get("/events/{event_id}", response_model=PopulatedEventResponse)
def get_event(request: Request, event_id: RecordIdPath) -> PopulatedEventResponse:
    return PopulatedEventResponse.from_domain(_graph(request).get_event(event_id))


@router.put("/events/{event_id}", response_model=EventResponse)
def update_event(request: Request, event_id: RecordIdPath, payload: dict[str, Any] = Body(...)) -> EventResponse:
    return EventResponse.from_domain(_graph(request).update_event(event_id, payload))


@router.delete("/events/{event_id}", status_code=204)
def delete_event(request: Request, event_id: RecordIdPath) -> Response:
    _graph(request).delete_event(event_id)
    return Response(status_code=204)
