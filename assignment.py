from loguru import logger

from errors import NotFound, StorageFailure
from storage import PROJECTS, TASKS, DocumentStore


def assign_task(store: DocumentStore, project_id: str, task_id: str) -> None:
    """Make `project_id` the only project holding `task_id`.

    The task's own projectId is not trusted to find the previous owner: every
    project listing the task is cleaned, which also repairs references left
    behind by earlier partial assignments. The three writes are not atomic
    and nothing is rolled back; re-running the call converges on the same
    state.
    """
    project = store.get(PROJECTS, project_id)
    task = store.get(TASKS, task_id)
    if project is None or task is None:
        raise NotFound("Project or task not found")

    step = "unlink from previous projects"
    try:
        pulled = store.pull_everywhere(PROJECTS, "tasks", task_id)
        logger.debug("Removed task {} from {} project(s)", task_id, pulled)

        step = "link to target project"
        store.add_to_set(PROJECTS, project_id, "tasks", task_id)

        step = "set task projectId"
        if store.update(TASKS, task_id, {"projectId": project_id}) is None:
            raise NotFound("Project or task not found")
    except (StorageFailure, NotFound) as e:
        logger.error("Assignment of task {} to project {} stopped at '{}': {}",
                     task_id, project_id, step, e.message)
        raise

    logger.info("Task {} assigned to project {}", task_id, project_id)
