from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

import queries
from assignment import assign_task
from config import Settings, configure_logging, load_settings
from errors import NotFound, TaskTrackerError
from lifecycle import change_status, initial_fields
from models import (
    Message,
    Project,
    ProjectCreate,
    ProjectUpdate,
    ProjectWithTasks,
    StatusChange,
    Task,
    TaskCreate,
    TaskUpdate,
    TaskWithProject,
)
from storage import PROJECTS, TASKS, DocumentStore, SupabaseStore


def get_store(request: Request) -> DocumentStore:
    """Storage dependency; the Supabase client is built on first use."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = SupabaseStore.from_settings(request.app.state.settings)
        request.app.state.store = store
    return store


def _edits(body) -> dict:
    changes = body.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        del changes["name"]
    return changes


# Tasks

tasks_router = APIRouter(prefix="/tasks", tags=["tasks"])


@tasks_router.post("", response_model=Task, status_code=201)
async def create_task(body: TaskCreate, store: DocumentStore = Depends(get_store)):
    document = body.model_dump()
    document.update(initial_fields(body.status))
    document["projectId"] = None
    created = store.insert(TASKS, document)
    logger.info("Created task {}: {}", created["id"], created["name"])
    return created


@tasks_router.get("", response_model=List[Task])
async def list_tasks(store: DocumentStore = Depends(get_store)):
    return store.find(TASKS)


@tasks_router.get("/filter", response_model=List[Task])
async def filter_tasks_by_status(
    status: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_store),
):
    return queries.tasks_by_status(store, status)


@tasks_router.get("/search", response_model=List[Task])
async def search_tasks_by_name(
    name: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_store),
):
    return queries.search_tasks(store, name)


@tasks_router.get("/sort", response_model=List[Task])
async def sort_tasks_by_date(
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    store: DocumentStore = Depends(get_store),
):
    return queries.sorted_tasks(store, sort_by)


@tasks_router.get("/projects-due-today", response_model=List[TaskWithProject])
async def tasks_with_projects_due_today(store: DocumentStore = Depends(get_store)):
    return queries.tasks_with_projects_due_today(store)


@tasks_router.get("/{task_id}", response_model=Task)
async def get_task(task_id: str, store: DocumentStore = Depends(get_store)):
    task = store.get(TASKS, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


@tasks_router.patch("/{task_id}", response_model=Task)
async def edit_task(task_id: str, body: TaskUpdate, store: DocumentStore = Depends(get_store)):
    changes = _edits(body)
    task = store.update(TASKS, task_id, changes) if changes else store.get(TASKS, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


@tasks_router.patch("/{task_id}/status", response_model=Task)
async def mark_task_status(task_id: str, body: StatusChange, store: DocumentStore = Depends(get_store)):
    return change_status(store, task_id, body.status)


@tasks_router.delete("/{task_id}", status_code=204, response_class=Response)
async def delete_task(task_id: str, store: DocumentStore = Depends(get_store)):
    if not store.delete(TASKS, task_id):
        raise NotFound("Task not found")
    store.pull_everywhere(PROJECTS, "tasks", task_id)
    logger.info("Deleted task {}", task_id)
    return Response(status_code=204)


# Projects

projects_router = APIRouter(prefix="/projects", tags=["projects"])


@projects_router.post("", response_model=Project, status_code=201)
async def create_project(body: ProjectCreate, store: DocumentStore = Depends(get_store)):
    created = store.insert(PROJECTS, {**body.model_dump(), "tasks": []})
    logger.info("Created project {}: {}", created["id"], created["name"])
    return created


@projects_router.get("", response_model=List[Project])
async def list_projects(store: DocumentStore = Depends(get_store)):
    return store.find(PROJECTS)


@projects_router.get("/filter", response_model=List[Task])
async def filter_tasks_by_project_name(
    project_name: Optional[str] = Query(None, alias="projectName"),
    store: DocumentStore = Depends(get_store),
):
    return queries.tasks_in_projects_named(store, project_name)


@projects_router.get("/sort", response_model=List[Project])
async def sort_projects_by_date(
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    store: DocumentStore = Depends(get_store),
):
    return queries.sorted_projects(store, sort_by)


@projects_router.get("/tasks-due-today", response_model=List[ProjectWithTasks])
async def projects_with_tasks_due_today(store: DocumentStore = Depends(get_store)):
    return queries.projects_with_tasks_due_today(store)


@projects_router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, store: DocumentStore = Depends(get_store)):
    project = store.get(PROJECTS, project_id)
    if project is None:
        raise NotFound("Project not found")
    return project


@projects_router.patch("/{project_id}", response_model=Project)
async def edit_project(project_id: str, body: ProjectUpdate, store: DocumentStore = Depends(get_store)):
    changes = _edits(body)
    project = store.update(PROJECTS, project_id, changes) if changes else store.get(PROJECTS, project_id)
    if project is None:
        raise NotFound("Project not found")
    return project


@projects_router.delete("/{project_id}", status_code=204, response_class=Response)
async def delete_project(project_id: str, store: DocumentStore = Depends(get_store)):
    # Tasks keep their projectId; there is no cascade
    if not store.delete(PROJECTS, project_id):
        raise NotFound("Project not found")
    logger.info("Deleted project {}", project_id)
    return Response(status_code=204)


@projects_router.patch("/{project_id}/tasks/{task_id}", response_model=Message)
async def assign_task_to_project(project_id: str, task_id: str, store: DocumentStore = Depends(get_store)):
    assign_task(store, project_id, task_id)
    return {"message": "Task assigned to project"}


# App

async def handle_tracker_error(request: Request, exc: TaskTrackerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def handle_validation_error(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": message})


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Task Tracker")
    app.state.settings = settings
    app.state.store = None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TaskTrackerError, handle_tracker_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(tasks_router, prefix=settings.api_prefix)
    app.include_router(projects_router, prefix=settings.api_prefix)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000)
