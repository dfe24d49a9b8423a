"""
Task API — Task Schemas
========================

What:  Request bodies for create/update and the task representation
       `{id, title, description, completed, userId, createdAt, updatedAt}`.

Partial updates:
    TaskUpdate fields all default to None; the route forwards only the fields
    the client actually sent (model_dump(exclude_unset=True)), so
    `{"completed": true}` leaves title and description untouched.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from taskapi.schemas.common import CamelModel


class TaskCreate(CamelModel):
    """Body of POST /api/tasks."""
    title: str = Field(description="Short task title", examples=["Buy milk"])
    description: str = Field(description="Task details", examples=["Skimmed, two litres"])
    completed: bool = Field(default=False)


class TaskUpdate(CamelModel):
    """Body of PUT /api/tasks/{task_id}; every field optional."""
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None


class TaskResponse(CamelModel):
    """A task as returned to its owner."""
    id: int
    title: str
    description: str
    completed: bool
    user_id: int
    created_at: datetime
    updated_at: datetime
