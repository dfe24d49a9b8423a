"""
Task API — Task Route Handlers
===============================

What:  CRUD for the authenticated user's tasks under /api/tasks.
Who:   Every route requires a bearer token (get_current_identity).

Scoping:
    The owner always comes from the verified token. No route accepts a
    user id from the body or query string, so a client cannot widen scope.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.database import get_db_session
from taskapi.middleware.authentication import get_current_identity
from taskapi.schemas.auth import Identity
from taskapi.schemas.common import ErrorResponse
from taskapi.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from taskapi.services.task_service import task_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Tasks"],
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
)

_NOT_FOUND = {404: {"description": "Task not found", "model": ErrorResponse}}


@router.post(
    "/tasks",
    status_code=201,
    response_model=TaskResponse,
    responses={400: {"description": "Empty title or description", "model": ErrorResponse}},
    summary="Create a task",
)
async def create_task(
    body: TaskCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> TaskResponse:
    return await task_service.create(
        db=db,
        identity=identity,
        title=body.title,
        description=body.description,
        completed=body.completed,
    )


@router.get(
    "/tasks",
    response_model=List[TaskResponse],
    summary="List the caller's tasks",
)
async def list_tasks(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> List[TaskResponse]:
    return await task_service.list_for_user(db=db, identity=identity)


@router.get(
    "/tasks/{task_id}",
    response_model=TaskResponse,
    responses=_NOT_FOUND,
    summary="Get one of the caller's tasks",
)
async def get_task(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> TaskResponse:
    return await task_service.get(db=db, identity=identity, task_id=task_id)


@router.put(
    "/tasks/{task_id}",
    response_model=TaskResponse,
    responses={400: {"description": "Invalid field value", "model": ErrorResponse}, **_NOT_FOUND},
    summary="Partially update a task",
)
async def update_task(
    body: TaskUpdate,
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> TaskResponse:
    return await task_service.update(
        db=db,
        identity=identity,
        task_id=task_id,
        fields=body.model_dump(exclude_unset=True),
    )


@router.delete(
    "/tasks/{task_id}",
    status_code=204,
    response_class=Response,
    responses=_NOT_FOUND,
    summary="Delete a task",
)
async def delete_task(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await task_service.delete(db=db, identity=identity, task_id=task_id)
    return Response(status_code=204)
