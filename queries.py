"""Read-only queries behind the filter, search, sort and due-today routes."""

from datetime import datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from errors import InvalidQuery, UnknownStatus
from models import TaskStatus
from storage import PROJECTS, TASKS, DocumentStore

TASK_SORT_FIELDS = ("startDate", "dueDate", "doneDate")
PROJECT_SORT_FIELDS = ("startDate", "dueDate")


def today_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    start = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def tasks_by_status(store: DocumentStore, status: Optional[str]) -> List[dict]:
    if not status:
        raise InvalidQuery("Status query parameter is required")
    try:
        status = TaskStatus(status)
    except ValueError:
        raise UnknownStatus(f"Invalid status: {status!r}") from None
    return store.find(TASKS, equals={"status": status.value})


def search_tasks(store: DocumentStore, name: Optional[str]) -> List[dict]:
    if not name:
        raise InvalidQuery("Name query parameter is required")
    return store.find(TASKS, like=("name", name))


def sorted_tasks(store: DocumentStore, sort_by: Optional[str]) -> List[dict]:
    if sort_by not in TASK_SORT_FIELDS:
        raise InvalidQuery("Invalid sort field")
    return store.find(TASKS, order_by=sort_by)


def sorted_projects(store: DocumentStore, sort_by: Optional[str]) -> List[dict]:
    if sort_by not in PROJECT_SORT_FIELDS:
        raise InvalidQuery("Invalid sort field")
    return store.find(PROJECTS, order_by=sort_by)


def tasks_in_projects_named(store: DocumentStore, project_name: Optional[str]) -> List[dict]:
    """Tasks held by any project whose name contains `project_name`."""
    if not project_name:
        raise InvalidQuery("Project name query parameter is required")
    projects = store.find(PROJECTS, like=("name", project_name))
    task_ids = []
    for project in projects:
        for task_id in project.get("tasks") or []:
            if task_id not in task_ids:
                task_ids.append(task_id)
    if not task_ids:
        return []
    return store.find(TASKS, ids=task_ids)


def projects_with_tasks_due_today(store: DocumentStore, now: Optional[datetime] = None) -> List[dict]:
    start, end = today_window(now)
    due_ids = {t["id"] for t in store.find(TASKS, between=("dueDate", start, end))}
    if not due_ids:
        return []

    result = []
    for project in store.find(PROJECTS):
        member_ids = project.get("tasks") or []
        if not due_ids.intersection(member_ids):
            continue
        details = store.find(TASKS, ids=list(member_ids))
        result.append({**project, "taskDetails": details})
    return result


def tasks_with_projects_due_today(store: DocumentStore, now: Optional[datetime] = None) -> List[dict]:
    start, end = today_window(now)
    projects = {p["id"]: p for p in store.find(PROJECTS, between=("dueDate", start, end))}
    if not projects:
        return []

    result = []
    for task in store.find(TASKS):
        project = projects.get(task.get("projectId"))
        if project is not None:
            result.append({**task, "projectDetails": [project]})
    return result
