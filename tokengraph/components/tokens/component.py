"""
Tokens component - design token graph editing.

Wraps a TokenStore with input/output models so front ends (CLI, HTTP)
get uniform results instead of booleans and exceptions.

Invariants:
- I1: Every effective mutation is undoable by exactly one undo
- I2: No-op mutations surface an error and leave history untouched
- I3: Resolution never raises; broken or circular aliases stay as alias text
- I4: Validation is advisory except at the export gate
"""

from __future__ import annotations

import logging

from ._impl import StoreNotLoadedError, TokenStore
from .fc.flatten import get_token
from .models import (
    AddTokenInput,
    DiffOutput,
    DiffTokensInput,
    ExportOutput,
    ExportTokensInput,
    GetTokenInput,
    ListTokensInput,
    LoadOutput,
    LoadTokensInput,
    MoveTokenInput,
    RedoInput,
    RemoveTokenInput,
    RenameGroupInput,
    TokenListOutput,
    TokenOperationError,
    TokenOperationOutput,
    TokenOutput,
    UndoInput,
    UpdateTokenInput,
    ValidateTokensInput,
    ValidationOutput,
)
from .ports import TokenSinkPort, TokenSourcePort

logger = logging.getLogger(__name__)

NOT_LOADED = TokenOperationError(code="not_loaded", message="Token store has not been loaded")


def _operation_output(
    store: TokenStore,
    path: str | None,
    errors: list[TokenOperationError],
) -> TokenOperationOutput:
    return TokenOperationOutput(
        path=path,
        dirty_files=tuple(sorted(store.dirty_files)),
        can_undo=store.can_undo(),
        can_redo=store.can_redo(),
        errors=errors,
        success=len(errors) == 0,
    )


def _not_loaded_output(path: str | None = None) -> TokenOperationOutput:
    return TokenOperationOutput(path=path, errors=[NOT_LOADED], success=False)


def _token_exists(store: TokenStore, path: str) -> bool:
    return any(get_token(tree, path) is not None for tree in store.files.values())


# --- Component Entry Points ---


def run_load(
    inp: LoadTokensInput,
    *,
    store: TokenStore,
    source: TokenSourcePort | None = None,
) -> LoadOutput:
    """
    Load token files into the store and establish the baseline.

    Args:
        inp: Input with raw files, or None to read from ``source``.
        store: Token store to load into.
        source: Optional source port used when ``inp.files`` is None.

    Returns:
        LoadOutput with counts and detected themes, or errors.
    """
    if inp.files is None and source is None:
        return LoadOutput(
            errors=[TokenOperationError(code="no_source", message="No files and no source")],
            success=False,
        )

    try:
        files = inp.files if inp.files is not None else source.load_all()
        store.load(files)
    except ValueError as e:
        logger.warning("Rejected token files: %s", e)
        return LoadOutput(
            errors=[TokenOperationError(code="invalid_file", message=str(e))],
            success=False,
        )

    return LoadOutput(
        file_count=len(store.files),
        token_count=len(store.resolved_tokens),
        themes=store.themes,
    )


def run_list(inp: ListTokensInput, *, store: TokenStore) -> TokenListOutput:
    """
    List resolved tokens, optionally switching the active theme first.

    Args:
        inp: Input with category, search text, and theme.
        store: Token store.

    Returns:
        TokenListOutput with matching tokens and the group tree.
    """
    if not store.is_loaded:
        return TokenListOutput(tokens=(), errors=[NOT_LOADED], success=False)

    if inp.theme is not None and inp.theme != store.active_theme:
        if inp.theme not in store.themes:
            return TokenListOutput(
                tokens=(),
                active_theme=store.active_theme,
                errors=[
                    TokenOperationError(
                        code="not_found", message=f"Unknown theme: {inp.theme}"
                    )
                ],
                success=False,
            )
        store.set_active_theme(inp.theme)

    tokens = store.list_resolved_tokens(category=inp.category, search=inp.search)
    return TokenListOutput(
        tokens=tuple(tokens),
        groups=tuple(store.get_token_groups()),
        active_theme=store.active_theme,
    )


def run_get(inp: GetTokenInput, *, store: TokenStore) -> TokenOutput:
    """Get a resolved token and its raw value under every theme."""
    if not store.is_loaded:
        return TokenOutput(token=None, errors=[NOT_LOADED], success=False)

    token = store.get_resolved_token(inp.path)
    if token is None:
        return TokenOutput(
            token=None,
            errors=[
                TokenOperationError(
                    code="not_found", message=f"Token not found: {inp.path}", path=inp.path
                )
            ],
            success=False,
        )

    return TokenOutput(token=token, overrides=store.get_theme_overrides(inp.path))


def run_update(inp: UpdateTokenInput, *, store: TokenStore) -> TokenOperationOutput:
    """
    Update a token value, in a theme's files when ``inp.theme`` is given.

    Args:
        inp: Input with path, new value, and optional theme.
        store: Token store.

    Returns:
        TokenOperationOutput; ``not_found`` when no file could take the change.
    """
    if not store.is_loaded:
        return _not_loaded_output(inp.path)

    errors: list[TokenOperationError] = []
    if not store.update_token(inp.path, inp.value, inp.theme):
        where = f" for theme {inp.theme}" if inp.theme else ""
        current = store.get_token_value(inp.path, inp.theme)
        if _token_exists(store, inp.path) and current == inp.value:
            errors.append(
                TokenOperationError(
                    code="no_change",
                    message=f"{inp.path} already has that value{where}",
                    path=inp.path,
                )
            )
        else:
            errors.append(
                TokenOperationError(
                    code="not_found",
                    message=f"No token to update at {inp.path}{where}",
                    path=inp.path,
                )
            )
    return _operation_output(store, inp.path, errors)


def run_add(inp: AddTokenInput, *, store: TokenStore) -> TokenOperationOutput:
    """Add a token, creating the target file and groups as needed."""
    if not store.is_loaded:
        return _not_loaded_output(inp.path)

    errors: list[TokenOperationError] = []
    if not inp.path or not inp.file_path:
        errors.append(
            TokenOperationError(code="invalid", message="Path and file are required", path=inp.path)
        )
    elif not store.add_token(inp.path, inp.type, inp.value, inp.file_path, inp.description):
        errors.append(
            TokenOperationError(
                code="no_change",
                message=f"{inp.path} already exists in {inp.file_path} unchanged",
                path=inp.path,
            )
        )
    return _operation_output(store, inp.path, errors)


def run_remove(inp: RemoveTokenInput, *, store: TokenStore) -> TokenOperationOutput:
    """Remove a token from every file that defines it."""
    if not store.is_loaded:
        return _not_loaded_output(inp.path)

    errors: list[TokenOperationError] = []
    if not store.remove_token(inp.path):
        errors.append(
            TokenOperationError(
                code="not_found", message=f"Token not found: {inp.path}", path=inp.path
            )
        )
    return _operation_output(store, inp.path, errors)


def run_move(inp: MoveTokenInput, *, store: TokenStore) -> TokenOperationOutput:
    """Move a token to another file, keeping its path."""
    if not store.is_loaded:
        return _not_loaded_output(inp.path)

    errors: list[TokenOperationError] = []
    if not _token_exists(store, inp.path):
        errors.append(
            TokenOperationError(
                code="not_found", message=f"Token not found: {inp.path}", path=inp.path
            )
        )
    elif not store.move_token(inp.path, inp.target_file):
        errors.append(
            TokenOperationError(
                code="no_change",
                message=f"Token {inp.path} already lives in {inp.target_file}",
                path=inp.path,
            )
        )
    return _operation_output(store, inp.path, errors)


def run_rename_group(inp: RenameGroupInput, *, store: TokenStore) -> TokenOperationOutput:
    """Rename a group and rewrite aliases pointing into it."""
    if not store.is_loaded:
        return _not_loaded_output(inp.new_prefix)

    errors: list[TokenOperationError] = []
    if not store.rename_group(inp.old_prefix, inp.new_prefix):
        code = "no_change" if inp.old_prefix == inp.new_prefix else "not_found"
        errors.append(
            TokenOperationError(
                code=code,
                message=f"Nothing to rename from {inp.old_prefix} to {inp.new_prefix}",
                path=inp.old_prefix,
            )
        )
    return _operation_output(store, inp.new_prefix, errors)


def run_undo(inp: UndoInput, *, store: TokenStore) -> TokenOperationOutput:
    if not store.is_loaded:
        return _not_loaded_output()

    errors: list[TokenOperationError] = []
    if not store.undo():
        errors.append(TokenOperationError(code="no_change", message="Nothing to undo"))
    return _operation_output(store, None, errors)


def run_redo(inp: RedoInput, *, store: TokenStore) -> TokenOperationOutput:
    if not store.is_loaded:
        return _not_loaded_output()

    errors: list[TokenOperationError] = []
    if not store.redo():
        errors.append(TokenOperationError(code="no_change", message="Nothing to redo"))
    return _operation_output(store, None, errors)


def run_validate(inp: ValidateTokensInput, *, store: TokenStore) -> ValidationOutput:
    """Validate the current files."""
    try:
        results = store.get_validation_results()
    except StoreNotLoadedError:
        return ValidationOutput(results=(), errors=[NOT_LOADED], success=False)

    error_count = sum(1 for r in results if r.severity == "error")
    return ValidationOutput(
        results=tuple(results),
        error_count=error_count,
        warning_count=len(results) - error_count,
        valid=error_count == 0,
    )


def run_diff(inp: DiffTokensInput, *, store: TokenStore) -> DiffOutput:
    """Diff the current files against the baseline."""
    try:
        entries = store.get_diff()
    except StoreNotLoadedError:
        return DiffOutput(entries=(), errors=[NOT_LOADED], success=False)

    return DiffOutput(entries=tuple(entries), dirty_files=tuple(sorted(store.dirty_files)))


def run_export(
    inp: ExportTokensInput,
    *,
    store: TokenStore,
    sink: TokenSinkPort | None = None,
    block_on_errors: bool = True,
) -> ExportOutput:
    """
    Export token files, gated on validation.

    Args:
        inp: Input with the ``force`` flag.
        store: Token store.
        sink: Optional sink port; when given, files are written and the
            store is re-based so nothing remains dirty.
        block_on_errors: Refuse to export while validation errors exist.

    Returns:
        ExportOutput with files and written paths, or a
        ``validation_failed`` error carrying the results.
    """
    try:
        validation = tuple(store.get_validation_results())
    except StoreNotLoadedError:
        return ExportOutput(errors=[NOT_LOADED], success=False)

    error_count = sum(1 for r in validation if r.severity == "error")
    if block_on_errors and error_count and not inp.force:
        logger.warning("Export blocked by %d validation error(s)", error_count)
        return ExportOutput(
            validation=validation,
            errors=[
                TokenOperationError(
                    code="validation_failed",
                    message=f"{error_count} validation error(s); export with force to override",
                )
            ],
            success=False,
        )

    files = store.export_as_json()
    written: tuple[str, ...] = ()
    if sink is not None:
        written = tuple(sink.write_all(files))
        for file_path in sorted(store.baseline.keys() - files.keys()):
            sink.delete(file_path)
            logger.info("Deleted removed token file %s", file_path)
        store.rebase()
        logger.info("Exported %d token file(s)", len(written))

    return ExportOutput(files=files, written=written, validation=validation)
