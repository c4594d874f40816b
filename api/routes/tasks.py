"""
api/routes/tasks.py -- Task CRUD routes, including the per-event listing.

Routes:
  POST   /api/tasks                   -- create; 201 Task (event/assignedTo as ids)
  GET    /api/tasks                   -- list all; assignedTo populated
  GET    /api/events/{event_id}/tasks -- tasks of one event; assignedTo populated
  GET    /api/tasks/{id}              -- one task; assignedTo populated; 404 if unknown
  PUT    /api/tasks/{id}              -- shallow merge; 404 if unknown
  DELETE /api/tasks/{id}              -- idempotent; 204

GET /api/events/{event_id}/tasks does not require the event to exist: tasks
whose event was deleted are still listed under the old id.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import PopulatedTaskResponse, RecordIdPath, TaskResponse
from auth.dependencies import require_identity
from resources.graph import ResourceGraph

router = APIRouter(dependencies=[Depends(require_identity)])


def _graph(request: Request) -> ResourceGraph:
    return request.app.state.graph


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(request: Request, payload: dict[str, Any] = Body(...)) -> TaskResponse:
    return TaskResponse.from_domain(_graph(request).create_task(payload))


@router.get("/tasks", response_model=list[PopulatedTaskResponse])
def list_tasks(request: Request) -> list[PopulatedTaskResponse]:
    return [PopulatedTaskResponse.from_domain(t) for t in _graph(request).list_tasks()]


@router.get("/events/{event_id}/tasks", response_model=list[PopulatedTaskResponse])
def list_event_tasks(request: Request, event_id: RecordIdPath) -> list[PopulatedTaskResponse]:
    return [PopulatedTaskResponse.from_domain(t) for t in _graph(request).list_tasks(event_id=event_id)]


@router.get("/tasks/{task_id}", response_model=PopulatedTaskResponse)
def get_task(request: Request, task_id: RecordIdPath) -> PopulatedTaskResponse:
    return PopulatedTaskResponse.from_domain(_graph(request).get_task(task_id))


@router.put("/tasks/{task_id}", response_model=TaskResponse)
def update_task(request: Request, task_id: RecordIdPath, payload: dict[str, Any] = Body(...)) -> TaskResponse:
    return TaskResponse.from_domain(_graph(request).update_task(task_id, payload))


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(request: Request, task_id: RecordIdPath) -> Response:
    _graph(request).delete_task(task_id)
    return Response(status_code=204)
