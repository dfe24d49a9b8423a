"""
Task API — Task Ownership Policy
=================================

What:  The single rule deciding whether an identity may touch a task.
Why:   Kept in one place so a policy change (e.g. an admin override) edits
       one function instead of every task operation.
Who:   TaskService.get/update/delete, always AFTER the task is known to exist.

Anti-enumeration:
    A failed check raises ForbiddenError, which the API renders exactly like
    NotFoundError (404, same message shape). Non-owners cannot tell whether a
    task id exists. The distinction survives only in the server log.
"""

import logging

from taskapi.exceptions import ForbiddenError
from taskapi.models.task import Task
from taskapi.schemas.auth import Identity

logger = logging.getLogger(__name__)


def authorize(identity: Identity, task: Task) -> bool:
    """True when `identity` owns `task`."""
    return task.user_id == identity.id


def ensure_owner(identity: Identity, task: Task) -> None:
    """Raise ForbiddenError unless `identity` owns `task`."""
    if authorize(identity, task):
        return
    logger.warning(
        "Ownership check failed: user %s attempted access to task %s owned by %s",
        identity.id,
        task.id,
        task.user_id,
    )
    raise ForbiddenError(
        resource="task",
        resource_id=str(task.id),
        owner_id=task.user_id,
        requester_id=identity.id,
    )
