from typing import Any, Literal

from pydantic import BaseModel, Field

# --- Shared Types ---
Severity = Literal["error", "warning"]
DiffType = Literal["added", "removed", "modified"]


# --- Requests ---
class LoadRequest(BaseModel):
    files: dict[str, dict[str, Any]] | None = Field(
        None, description="Token files keyed by path; omit to read the tokens directory"
    )


class ThemeRequest(BaseModel):
    theme: str


class UpdateTokenRequest(BaseModel):
    value: Any
    theme: str | None = Field(None, description="Write into this theme's files")


class AddTokenRequest(BaseModel):
    path: str
    type: str
    value: Any
    file_path: str
    description: str | None = None


class MoveTokenRequest(BaseModel):
    path: str
    target_file: str


class RenameGroupRequest(BaseModel):
    old_prefix: str
    new_prefix: str


# --- Responses ---
class ResolvedTokenModel(BaseModel):
    path: str
    type: str
    raw_value: Any
    resolved_value: Any
    source_file: str
    reference: str | None = None
    description: str | None = None


class TokenDetailResponse(ResolvedTokenModel):
    overrides: dict[str, Any] = {}


class TokenGroupModel(BaseModel):
    name: str
    path: str
    token_count: int
    children: list["TokenGroupModel"] = []


class TokenListResponse(BaseModel):
    tokens: list[ResolvedTokenModel]
    groups: list[TokenGroupModel]
    count: int
    active_theme: str | None = None


class LoadResponse(BaseModel):
    file_count: int
    token_count: int
    themes: list[str]


class ThemesResponse(BaseModel):
    themes: list[str]
    active_theme: str


class OperationResponse(BaseModel):
    path: str | None = None
    dirty_files: list[str]
    can_undo: bool
    can_redo: bool


class ValidationResultModel(BaseModel):
    path: str
    severity: Severity
    message: str
    code: str


class ValidationResponse(BaseModel):
    results: list[ValidationResultModel]
    error_count: int
    warning_count: int
    valid: bool


class DiffEntryModel(BaseModel):
    path: str
    type: DiffType
    before: Any = None
    after: Any = None


class DiffResponse(BaseModel):
    entries: list[DiffEntryModel]
    dirty_files: list[str]


class ExportResponse(BaseModel):
    files: dict[str, dict[str, Any]]
    written: list[str] = []


class ErrorResponse(BaseModel):
    errors: list[dict[str, Any]]
