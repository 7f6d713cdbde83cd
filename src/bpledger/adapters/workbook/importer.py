"""Load a JSON workbook export into a table store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bpledger.adapters.workbook.schema import WorkbookPayload

if TYPE_CHECKING:
    from collections.abc import Collection
    from pathlib import Path

    from bpledger.domain.ports import TableStore

log = logging.getLogger(__name__)


def load_workbook(path: Path) -> WorkbookPayload:
    """Parse and validate the workbook at ``path``.

    Raises ``pydantic.ValidationError`` for malformed documents.
    """

    return WorkbookPayload.model_validate_json(path.read_text(encoding="utf-8"))


def import_workbook(
    store: TableStore,
    payload: WorkbookPayload,
    *,
    only: Collection[str] | None = None,
) -> list[str]:
    """Replace the tables of ``store`` with the sheets of ``payload``.

    Sheets are written in document order; ``only`` restricts the import to the
    named sheets. Returns the names of the tables written.
    """

    imported: list[str] = []
    for sheet in payload.sheets:
        if only is not None and sheet.name not in only:
            continue
        store.replace(sheet.name, sheet.headers, sheet.rows)
        log.info("Imported %s (%s rows)", sheet.name, len(sheet.rows))
        imported.append(sheet.name)
    return imported
