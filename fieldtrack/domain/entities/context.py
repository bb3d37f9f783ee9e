"""Explicit screen context handed to services and pipelines."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ScreenContext:
    """Identifiers a screen operates on, passed in instead of read from routing state."""

    project_id: int | None = None
    task_id: int | None = None
    company_id: int | None = None
    project_name: str | None = None
