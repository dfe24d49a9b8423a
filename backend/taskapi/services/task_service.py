"""
Task API — Task Service
========================

What:  Create, list, read, update and delete tasks for the authenticated user.
Why:   Every task operation is scoped to its owner. Reads filter by owner;
       single-task operations go through the ownership policy.
How:   Stateless methods taking (db, identity, input). Identity comes from the
       authentication dependency, never from the request body.
Who:   Called by routes/tasks.py.

Single-task check sequence (get / update / delete):
    1. Load by id                  → NotFoundError if absent
    2. ownership.ensure_owner()    → ForbiddenError if not the owner
    3. Validate supplied fields    → ValidationError (update only)
    4. Apply and commit            → DatabaseError if the store refuses

    Existence is confirmed before ownership so ForbiddenError always refers to
    a real task; both still reach the client as the same 404.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.database import utcnow
from taskapi.exceptions import DatabaseError, NotFoundError, ValidationError
from taskapi.models.task import Task
from taskapi.schemas.auth import Identity
from taskapi.schemas.task import TaskResponse
from taskapi.services.ownership import ensure_owner

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "completed")
TEXT_FIELDS = ("title", "description")

# Column limits: tasks.title is VARCHAR(255), tasks.id a 32-bit INTEGER
TITLE_MAX_LENGTH = 255
MAX_TASK_ID = 2**31 - 1


def _require_text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field.capitalize()} must not be empty", field=field)
    if field == "title" and len(value) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be at most {TITLE_MAX_LENGTH} characters", field=field
        )
    return value


class TaskService:
    """
    Business logic for owner-scoped task CRUD.

    Error Handling Strategy:
        Application exceptions propagate unchanged. SQLAlchemy failures are
        wrapped in DatabaseError so no SQL text reaches the client.
    """

    async def create(
        self,
        db: AsyncSession,
        identity: Identity,
        title: str,
        description: str,
        completed: bool = False,
    ) -> TaskResponse:
        """
        Persist a new task owned by `identity`.

        Raises:
            ValidationError: empty title or description, or an over-long title
                             (nothing is persisted)
        """
        title = _require_text("title", title)
        description = _require_text("description", description)

        now = utcnow()
        task = Task(
            title=title,
            description=description,
            completed=bool(completed),
            user_id=identity.id,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(task)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error creating task for user %s: %s", identity.id, str(e))
            raise DatabaseError(
                message="Could not create the task. Please try again.",
                context={"user_id": identity.id},
            ) from e

        logger.info("User %s created task %s", identity.id, task.id)
        return TaskResponse.model_validate(task)

    async def list_for_user(self, db: AsyncSession, identity: Identity) -> List[TaskResponse]:
        """All tasks owned by `identity`, in insertion order."""
        try:
            result = await db.execute(
                select(Task).where(Task.user_id == identity.id).order_by(Task.id)
            )
            tasks = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing tasks for user %s: %s", identity.id, str(e))
            raise DatabaseError(
                message="Could not retrieve tasks. Please try again.",
                context={"user_id": identity.id},
            ) from e

        return [TaskResponse.model_validate(task) for task in tasks]

    async def get(self, db: AsyncSession, identity: Identity, task_id: int) -> TaskResponse:
        """A single task, if `identity` owns it."""
        task = await self._load_owned(db, identity, task_id)
        return TaskResponse.model_validate(task)

    async def update(
        self,
        db: AsyncSession,
        identity: Identity,
        task_id: int,
        fields: Dict[str, Any],
    ) -> TaskResponse:
        """
        Apply a partial update.

        Only keys present in `fields` are changed. updated_at always moves
        strictly forward, even when two updates land in the same clock tick.

        Raises:
            NotFoundError / ForbiddenError: see module docstring
            ValidationError: empty text or null value for a supplied field
        """
        task = await self._load_owned(db, identity, task_id)

        changes: Dict[str, Any] = {}
        for field in UPDATABLE_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if field in TEXT_FIELDS:
                changes[field] = _require_text(field, value)
            elif value is None:
                raise ValidationError("Completed must be true or false", field=field)
            else:
                changes[field] = bool(value)

        for field, value in changes.items():
            setattr(task, field, value)

        now = utcnow()
        if now <= task.updated_at:
            now = task.updated_at + timedelta(microseconds=1)
        task.updated_at = now

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error updating task %s: %s", task_id, str(e))
            raise DatabaseError(
                message="Could not update the task. Please try again.",
                context={"task_id": task_id},
            ) from e

        logger.info("User %s updated task %s (%s)", identity.id, task_id, ", ".join(changes) or "touch")
        return TaskResponse.model_validate(task)

    async def delete(self, db: AsyncSession, identity: Identity, task_id: int) -> None:
        """Permanently remove a task owned by `identity`."""
        task = await self._load_owned(db, identity, task_id)
        try:
            await db.delete(task)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error deleting task %s: %s", task_id, str(e))
            raise DatabaseError(
                message="Could not delete the task. Please try again.",
                context={"task_id": task_id},
            ) from e

        logger.info("User %s deleted task %s", identity.id, task_id)

    async def _load_owned(self, db: AsyncSession, identity: Identity, task_id: int) -> Task:
        # No row can carry an id outside the column range; the driver would
        # reject the bind parameter rather than find nothing
        if not 1 <= task_id <= MAX_TASK_ID:
            raise NotFoundError(resource="task", resource_id=str(task_id))
        try:
            task = await db.get(Task, task_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching task %s: %s", task_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the task. Please try again.",
                context={"task_id": task_id},
            ) from e

        if task is None:
            raise NotFoundError(resource="task", resource_id=str(task_id))
        ensure_owner(identity, task)
        return task


task_service = TaskService()
