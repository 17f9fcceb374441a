"""Task export package."""

from .config import ExportConfig, TaskExportConfigError, TaskExportError, load_export_config  # noqa: F401
from .exporter import DEFAULT_OUTPUT_PATH, TaskExportResult, export  # noqa: F401
from .service import TaskExportReport, TaskExportService  # noqa: F401

__all__ = [
    "DEFAULT_OUTPUT_PATH",
    "ExportConfig",
    "TaskExportConfigError",
    "TaskExportError",
    "TaskExportReport",
    "TaskExportResult",
    "TaskExportService",
    "export",
    "load_export_config",
]
