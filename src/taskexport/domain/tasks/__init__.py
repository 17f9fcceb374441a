"""Task domain exports."""

from .models import (
    ExportDocument,
    SupportsAttributes,
    TaskCollection,
    TaskOwner,
    TaskRecord,
    TaskRecordError,
    resolve_tasks,
    task_attributes,
)

__all__ = [
    "ExportDocument",
    "SupportsAttributes",
    "TaskCollection",
    "TaskOwner",
    "TaskRecord",
    "TaskRecordError",
    "resolve_tasks",
    "task_attributes",
]
