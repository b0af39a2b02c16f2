from __future__ import annotations

import csv
import re
import uuid
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from clubevents.exports.base import ExportTarget, split_range
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import DependencyError

SLUG_RE = re.compile(r"[^A-Za-z0-9]+")


class LocalCsvExportTarget(ExportTarget):
    """One directory per document, one CSV file per sheet."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DependencyError(ErrorCode.EXPORT_FAILED.value, f"cannot create {self._root}: {exc}") from exc

    def _normalize_key(self, key: str) -> str:
        normalized = key.strip().lstrip("/")
        path_key = PurePosixPath(normalized)
        if not normalized or path_key.is_absolute() or ".." in path_key.parts:
            raise ValueError(f"invalid document id: {key!r}")
        return str(path_key)

    def _document_dir(self, document_id: str) -> Path:
        return self._root.joinpath(*PurePosixPath(self._normalize_key(document_id)).parts)

    def create_document(self, title: str) -> str:
        slug = SLUG_RE.sub("-", title).strip("-").lower()[:60] or "export"
        document_id = f"{slug}-{uuid.uuid4().hex[:12]}"
        try:
            self._document_dir(document_id).mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise DependencyError(ErrorCode.EXPORT_FAILED.value, f"cannot create {document_id}: {exc}") from exc
        return document_id

    def write_range(self, document_id: str, range_: str, rows: Sequence[Sequence[str]]) -> None:
        sheet, cell = split_range(range_)
        if cell != "A1":
            raise ValueError("local exports only support ranges anchored at A1")

        path = self._document_dir(document_id) / f"{self._normalize_key(sheet)}.csv"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", newline="", encoding="utf-8") as out:
                csv.writer(out).writerows(rows)
        except OSError as exc:
            raise DependencyError(ErrorCode.EXPORT_FAILED.value, f"cannot write {path}: {exc}") from exc

    def document_url(self, document_id: str) -> str:
        return f"local://{self._normalize_key(document_id)}"
