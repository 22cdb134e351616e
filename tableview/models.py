from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

Row = Tuple[str, ...]


class FileType(str, Enum):
    csv = "csv"
    json = "json"
    jsonl = "jsonl"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class Table(BaseModel):
    """A parsed document. Build it through ``tableview.table.load``."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    file_type: FileType
    headers: Tuple[str, ...]
    rows: Tuple[Row, ...] = ()

    @computed_field
    @property
    def row_count(self) -> int:
        return len(self.rows)


class SortState(BaseModel):
    model_config = ConfigDict(frozen=True)

    column_index: int = Field(ge=0)
    direction: SortDirection = SortDirection.asc


class View(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: Tuple[str, ...]
    rows: Tuple[Row, ...] = ()
    total_rows: int = 0
    term: str = ""
    sort: Optional[SortState] = None

    @computed_field
    @property
    def row_count(self) -> int:
        return len(self.rows)


# --- effects emitted by the command handlers ---

class RenderView(BaseModel):
    kind: Literal["render_view"] = "render_view"
    view: View


class UpdateRowCount(BaseModel):
    kind: Literal["update_row_count"] = "update_row_count"
    row_count: int
    total_rows: int


class ShowMessage(BaseModel):
    kind: Literal["show_message"] = "show_message"
    message: str


Effect = Annotated[Union[RenderView, UpdateRowCount, ShowMessage], Field(discriminator="kind")]


# --- API envelopes ---

class HealthResponse(BaseModel):
    ok: bool = True


class SessionCreated(BaseModel):
    session_id: str


class TableInfo(BaseModel):
    file_name: str
    file_type: FileType
    column_count: int
    row_count: int


class ViewResponse(BaseModel):
    table: Optional[TableInfo] = None
    view: Optional[View] = None
    effects: List[Effect] = Field(default_factory=list)


class OpenRequest(BaseModel):
    path: str


class FilterRequest(BaseModel):
    term: str = ""


class SortRequest(BaseModel):
    column_index: int = Field(ge=0)


class ExportRequest(BaseModel):
    path: str
    format: Literal["csv", "json"] = "csv"


class ErrorResponse(BaseModel):
    error: str
    detail: str
