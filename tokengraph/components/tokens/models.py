"""
Tokens component input/output models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from tokengraph.domain.tokens import (
    DiffEntry,
    ResolvedToken,
    TokenGroupNode,
    ValidationResult,
)

# --- Operation Error ---


@dataclass(frozen=True)
class TokenOperationError:
    """Why a token operation did nothing."""

    code: str
    message: str
    path: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class LoadTokensInput:
    """Input for loading token files. ``None`` reads from the source port."""

    files: Mapping[str, Mapping[str, Any]] | None = None


@dataclass(frozen=True)
class ListTokensInput:
    """Input for listing resolved tokens."""

    category: str | None = None
    search: str | None = None
    theme: str | None = None


@dataclass(frozen=True)
class GetTokenInput:
    """Input for getting one resolved token."""

    path: str


@dataclass(frozen=True)
class UpdateTokenInput:
    """Input for updating a token value."""

    path: str
    value: Any
    theme: str | None = None


@dataclass(frozen=True)
class AddTokenInput:
    """Input for adding a new token."""

    path: str
    type: str
    value: Any
    file_path: str
    description: str | None = None


@dataclass(frozen=True)
class RemoveTokenInput:
    """Input for removing a token from every file."""

    path: str


@dataclass(frozen=True)
class MoveTokenInput:
    """Input for moving a token to another file."""

    path: str
    target_file: str


@dataclass(frozen=True)
class RenameGroupInput:
    """Input for renaming a group prefix."""

    old_prefix: str
    new_prefix: str


@dataclass(frozen=True)
class UndoInput:
    pass


@dataclass(frozen=True)
class RedoInput:
    pass


@dataclass(frozen=True)
class ValidateTokensInput:
    pass


@dataclass(frozen=True)
class DiffTokensInput:
    pass


@dataclass(frozen=True)
class ExportTokensInput:
    """Input for exporting token files.

    With a sink port the files are written and the baseline is re-based.
    ``force`` skips the validation gate.
    """

    force: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class LoadOutput:
    """Output of a load."""

    file_count: int = 0
    token_count: int = 0
    themes: tuple[str, ...] = ()
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class TokenListOutput:
    """Output containing resolved tokens and the group tree."""

    tokens: tuple[ResolvedToken, ...]
    groups: tuple[TokenGroupNode, ...] = ()
    active_theme: str | None = None
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class TokenOutput:
    """Output containing a single resolved token and its per-theme values."""

    token: ResolvedToken | None
    overrides: dict[str, Any] = field(default_factory=dict)
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class TokenOperationOutput:
    """Output for mutations (update, add, remove, move, rename, undo, redo)."""

    path: str | None = None
    dirty_files: tuple[str, ...] = ()
    can_undo: bool = False
    can_redo: bool = False
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ValidationOutput:
    """Output of validation. ``valid`` is False when any error is present."""

    results: tuple[ValidationResult, ...]
    error_count: int = 0
    warning_count: int = 0
    valid: bool = True
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DiffOutput:
    """Output of a baseline diff."""

    entries: tuple[DiffEntry, ...]
    dirty_files: tuple[str, ...] = ()
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ExportOutput:
    """Output of an export."""

    files: dict[str, dict[str, Any]] = field(default_factory=dict)
    written: tuple[str, ...] = ()
    validation: tuple[ValidationResult, ...] = ()
    errors: list[TokenOperationError] = field(default_factory=list)
    success: bool = True
