"""Pydantic DTOs for the Task feature."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fieldtrack.domain.entities import TaskPriority, TaskStatus


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class TaskCreate(BaseModel):
    """Schema for creating a new task."""

    model_config = ConfigDict(extra="forbid")

    project_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", "due_date", mode="before")
    @classmethod
    def _blank_is_null(cls, value):
        return _blank_to_none(value)


class TaskUpdate(BaseModel):
    """Schema for a partial task update — all fields optional."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", "due_date", mode="before")
    @classmethod
    def _blank_is_null(cls, value):
        return _blank_to_none(value)
