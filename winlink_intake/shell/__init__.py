"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with the file system:
- Export file reading (XML + MIME)
- Export file writing (practice data)
- Explicit rejections file
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from winlink_intake.shell.export_reader import ExportReader, parse_mime
from winlink_intake.shell.export_writer import write_export
from winlink_intake.shell.rejects_file import load_rejects
from winlink_intake.shell.config_loader import load_config, PipelineConfig

__all__ = [
    "ExportReader",
    "parse_mime",
    "write_export",
    "load_rejects",
    "load_config",
    "PipelineConfig",
]
