from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    TODO = "to-do"
    STARTED = "started"
    DONE = "done"


class Task(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    doneDate: Optional[datetime] = None
    projectId: Optional[str] = None


class TaskCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    dueDate: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Fields a plain edit may touch; status and project go through their own routes."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    dueDate: Optional[datetime] = None


class StatusChange(BaseModel):
    # Kept as a plain string so unknown values reach the lifecycle check
    status: str


class Project(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    tasks: List[str] = []


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None


class ProjectWithTasks(Project):
    taskDetails: List[Task] = []


class TaskWithProject(Task):
    projectDetails: List[Project] = []


class Message(BaseModel):
    message: str
