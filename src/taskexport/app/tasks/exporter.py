"""Write the attributes of a parent object's tasks to a JSON file."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, TextIO, Union

from taskexport.domain.tasks import ExportDocument, TaskOwner, resolve_tasks

DEFAULT_OUTPUT_PATH = Path("file.json")
CONFIRMATION_TEMPLATE = "Tasks have been exported to {path}"


@dataclass(frozen=True)
class TaskExportResult:
    output_path: Path
    count: int
    bytes_written: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_path": str(self.output_path),
            "count": self.count,
            "bytes_written": self.bytes_written,
        }


def export(
    parent_object: TaskOwner,
    output_path: Union[str, Path] = DEFAULT_OUTPUT_PATH,
    *,
    stream: TextIO | None = None,
) -> TaskExportResult:
    """Export every task of ``parent_object`` to ``output_path`` as indented JSON.

    The file is created or truncated; its parent directory must already exist.
    Errors raised while reading tasks, serialising or writing are not caught,
    and the confirmation line is printed only after the write succeeded.
    """

    path = Path(output_path)
    document = ExportDocument.from_tasks(resolve_tasks(parent_object))
    data = document.render().encode("utf-8")

    with path.open("wb") as fh:
        fh.write(data)

    print(CONFIRMATION_TEMPLATE.format(path=output_path), file=stream or sys.stdout)
    return TaskExportResult(
        output_path=path,
        count=len(document),
        bytes_written=len(data),
    )
