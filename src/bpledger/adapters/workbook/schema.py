"""Pydantic models describing an exported workbook."""

from __future__ import annotations

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    field_validator,
    model_validator,
)

CellPayload = StrictBool | StrictInt | StrictFloat | str | None


class WorkbookBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SheetPayload(WorkbookBaseModel):
    name: str = Field(min_length=1)
    headers: list[str] = Field(default_factory=list)
    rows: list[list[CellPayload]] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, value: object) -> object:
        if isinstance(value, list):
            return ["" if header is None else str(header) for header in value]
        return value


class WorkbookPayload(WorkbookBaseModel):
    sheets: list[SheetPayload] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_sheet_names(self) -> WorkbookPayload:
        seen: set[str] = set()
        for sheet in self.sheets:
            if sheet.name in seen:
                raise ValueError(f"Duplicate sheet name: {sheet.name}")
            seen.add(sheet.name)
        return self
