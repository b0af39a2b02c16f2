from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CallableModel(BaseModel):
    # Callable clients send and expect camelCase keys
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExportRequest(CallableModel):
    event_id: str | None = Field(default=None, alias="eventId")
    spreadsheet_id: str | None = Field(default=None, alias="spreadsheetId")


class ExportResponse(CallableModel):
    success: bool = True
    spreadsheet_id: str = Field(alias="spreadsheetId")
    exported_count: int = Field(alias="exportedCount")
    spreadsheet_url: str = Field(alias="spreadsheetUrl")
