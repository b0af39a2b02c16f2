from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from clubevents.core.config import settings
from clubevents.exports.base import ExportTarget
from clubevents.exports.google_sheets import GoogleSheetsExportTarget
from clubevents.exports.local import LocalCsvExportTarget


def create_export_target(
    backend: str | None = None,
    root: str | Path | None = None,
) -> ExportTarget:
    selected_backend = (backend or settings.export_backend).strip().lower()
    if selected_backend == "local":
        return LocalCsvExportTarget(Path(root or settings.export_root))
    if selected_backend == "google_sheets":
        if not settings.google_client_email or not settings.google_private_key:
            raise ValueError("GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY are required for google_sheets")
        return GoogleSheetsExportTarget(
            settings.google_client_email,
            settings.google_private_key,
            token_uri=settings.google_token_uri,
            api_url=settings.google_sheets_api_url,
            timeout=settings.http_timeout_seconds,
        )
    raise ValueError(f"unsupported export backend: {selected_backend}")


@lru_cache(maxsize=1)
def get_export_target() -> ExportTarget:
    return create_export_target()
