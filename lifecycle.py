from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from errors import InvalidTransition, NotFound, UnknownStatus
from models import TaskStatus
from storage import TASKS, DocumentStore


def transition(task: dict, requested: str, now: Optional[datetime] = None) -> dict:
    """Validate a status change and return the fields to write.

    to-do is reachable from anywhere and clears both dates; started needs a
    to-do task, done needs a started one.
    """
    try:
        status = TaskStatus(requested)
    except ValueError:
        raise UnknownStatus(f"Invalid status: {requested!r}") from None

    now = now or datetime.now(timezone.utc)
    current = task.get("status")

    if status is TaskStatus.TODO:
        return {"status": status.value, "startDate": None, "doneDate": None}

    if status is TaskStatus.STARTED:
        if current != TaskStatus.TODO.value:
            raise InvalidTransition("Task can only be marked as started if it is currently to-do")
        return {"status": status.value, "startDate": now, "doneDate": None}

    if current != TaskStatus.STARTED.value:
        raise InvalidTransition("Task can only be marked as done if it is currently started")
    return {"status": status.value, "doneDate": now}


def initial_fields(status: Optional[TaskStatus], now: Optional[datetime] = None) -> dict:
    """Dates a new task gets so that its starting status is consistent."""
    now = now or datetime.now(timezone.utc)
    return {
        "startDate": now if status in (TaskStatus.STARTED, TaskStatus.DONE) else None,
        "doneDate": now if status is TaskStatus.DONE else None,
    }


def change_status(store: DocumentStore, task_id: str, requested: str) -> dict:
    task = store.get(TASKS, task_id)
    if task is None:
        raise NotFound("Task not found")

    try:
        fields = transition(task, requested)
    except (InvalidTransition, UnknownStatus) as e:
        logger.info("Rejected status change for task {} ({} -> {}): {}",
                    task_id, task.get("status"), requested, e.message)
        raise

    updated = store.update(TASKS, task_id, fields)
    if updated is None:
        # deleted between the read and the write
        raise NotFound("Task not found")
    logger.info("Task {} moved {} -> {}", task_id, task.get("status"), fields["status"])
    return updated
