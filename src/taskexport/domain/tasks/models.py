"""Domain models for task export."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Protocol, Sequence, Tuple, Union


class TaskRecordError(ValueError):
    """Raised when a task record cannot produce its attribute mapping."""


class SupportsAttributes(Protocol):
    """Anything exposing ``attributes`` as a mapping or a zero-argument callable."""

    attributes: Union[Mapping[str, Any], Callable[[], Mapping[str, Any]]]


class TaskOwner(Protocol):
    """Parent object holding a ``tasks`` association."""

    tasks: Any


@dataclass
class TaskRecord:
    """A single task with an arbitrary set of named fields."""

    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self.data)


@dataclass
class TaskCollection:
    """Parent object whose ``tasks`` association is an ordered list of records."""

    tasks: List[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tasks)


def task_attributes(record: Union[SupportsAttributes, Mapping[str, Any]]) -> Dict[str, Any]:
    """Return a fresh copy of the attribute mapping of ``record``."""

    if isinstance(record, Mapping):
        return dict(record)
    try:
        attributes = record.attributes
    except AttributeError as exc:
        raise TaskRecordError(
            f"task record of type {type(record).__name__} does not expose attributes"
        ) from exc
    if callable(attributes):
        attributes = attributes()
    if not isinstance(attributes, Mapping):
        raise TaskRecordError(
            f"attributes of {type(record).__name__} must be a mapping, got {type(attributes).__name__}"
        )
    return dict(attributes)


def resolve_tasks(owner: TaskOwner) -> Sequence[Any]:
    """Read the ``tasks`` association of ``owner``, calling it when it is a method."""

    tasks = owner.tasks
    if callable(tasks):
        tasks = tasks()
    return list(tasks)


@dataclass(frozen=True)
class ExportDocument:
    """Ordered attribute mappings, one per exported task."""

    entries: Tuple[Dict[str, Any], ...]

    @classmethod
    def from_tasks(cls, tasks: Iterable[Any]) -> "ExportDocument":
        return cls(entries=tuple(task_attributes(task) for task in tasks))

    def __len__(self) -> int:
        return len(self.entries)

    def render(self) -> str:
        return json.dumps(list(self.entries), ensure_ascii=False, indent=2, allow_nan=False)
