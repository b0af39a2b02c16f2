from __future__ import annotations

from clubevents.exports.base import ExportTarget
from clubevents.exports.factory import create_export_target, get_export_target
from clubevents.exports.google_sheets import GoogleSheetsExportTarget
from clubevents.exports.local import LocalCsvExportTarget

__all__ = [
    "ExportTarget",
    "GoogleSheetsExportTarget",
    "LocalCsvExportTarget",
    "create_export_target",
    "get_export_target",
]
