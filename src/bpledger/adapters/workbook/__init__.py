"""Workbook (JSON export) adapter."""

from __future__ import annotations

from .importer import import_workbook, load_workbook
from .schema import SheetPayload, WorkbookPayload

__all__ = ["SheetPayload", "WorkbookPayload", "import_workbook", "load_workbook"]
