"""Ports for task sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from taskexport.domain.tasks import TaskRecord


class TaskProvider(ABC):
    """Abstract provider that returns tasks from an external system."""

    @abstractmethod
    def fetch(self) -> Iterable[TaskRecord]:
        """Retrieve tasks in source order."""


class TaskProviderError(RuntimeError):
    """Raised when a provider fails to supply a valid payload."""
