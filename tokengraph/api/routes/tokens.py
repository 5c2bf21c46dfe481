"""
Token API Routes.

Automation endpoints over the process-wide token store. Mutations are
serialized by the session lock because sync handlers run on a thread pool.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from tokengraph.adapters.fs.token_files import TokenFileSystem
from tokengraph.api.deps import TokenSession, get_session, get_token_files
from tokengraph.api.schemas import (
    AddTokenRequest,
    DiffEntryModel,
    DiffResponse,
    ErrorResponse,
    ExportResponse,
    LoadRequest,
    LoadResponse,
    MoveTokenRequest,
    OperationResponse,
    RenameGroupRequest,
    ResolvedTokenModel,
    ThemeRequest,
    ThemesResponse,
    TokenDetailResponse,
    TokenGroupModel,
    TokenListResponse,
    UpdateTokenRequest,
    ValidationResponse,
    ValidationResultModel,
)
from tokengraph.components.tokens import (
    AddTokenInput,
    DiffTokensInput,
    ExportTokensInput,
    GetTokenInput,
    ListTokensInput,
    LoadTokensInput,
    MoveTokenInput,
    RedoInput,
    RemoveTokenInput,
    RenameGroupInput,
    TokenOperationError,
    TokenOperationOutput,
    UndoInput,
    UpdateTokenInput,
    ValidateTokensInput,
    run_add,
    run_diff,
    run_export,
    run_get,
    run_list,
    run_load,
    run_move,
    run_redo,
    run_remove,
    run_rename_group,
    run_undo,
    run_update,
    run_validate,
)
from tokengraph.domain.tokens import ResolvedToken, TokenGroupNode

router = APIRouter()

ERROR_STATUS = {"not_found": 404, "validation_failed": 409}


# --- Helper Functions ---


def _serialize_errors(errors: list[TokenOperationError]) -> list[dict[str, Any]]:
    """Serialize operation errors."""
    return [{"code": e.code, "message": e.message, "path": e.path} for e in errors]


def _raise_for_errors(errors: list[TokenOperationError]) -> None:
    if not errors:
        return
    status_code = 400
    for e in errors:
        if e.code in ERROR_STATUS:
            status_code = ERROR_STATUS[e.code]
            break
    raise HTTPException(status_code=status_code, detail={"errors": _serialize_errors(errors)})


def _token_to_model(token: ResolvedToken) -> ResolvedTokenModel:
    return ResolvedTokenModel(
        path=token.path,
        type=token.type,
        raw_value=token.raw_value,
        resolved_value=token.resolved_value,
        source_file=token.source_file,
        reference=token.reference,
        description=token.description,
    )


def _group_to_model(node: TokenGroupNode) -> TokenGroupModel:
    return TokenGroupModel(
        name=node.name,
        path=node.path,
        token_count=node.token_count,
        children=[_group_to_model(child) for child in node.children],
    )


def _operation_response(result: TokenOperationOutput) -> OperationResponse:
    _raise_for_errors(result.errors)
    return OperationResponse(
        path=result.path,
        dirty_files=list(result.dirty_files),
        can_undo=result.can_undo,
        can_redo=result.can_redo,
    )


# --- Routes ---


@router.post("/load", response_model=LoadResponse, responses={400: {"model": ErrorResponse}})
def load_tokens(
    request: LoadRequest,
    session: TokenSession = Depends(get_session),
    token_files: TokenFileSystem = Depends(get_token_files),
) -> LoadResponse:
    """Load token files from the body, or from the tokens directory when omitted."""
    with session.lock:
        try:
            result = run_load(
                LoadTokensInput(files=request.files), store=session.store, source=token_files
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
    _raise_for_errors(result.errors)
    return LoadResponse(
        file_count=result.file_count,
        token_count=result.token_count,
        themes=list(result.themes),
    )


@router.get("/", response_model=TokenListResponse)
def list_tokens(
    category: str | None = None,
    search: str | None = None,
    session: TokenSession = Depends(get_session),
) -> TokenListResponse:
    """List resolved tokens of the active theme."""
    with session.lock:
        result = run_list(ListTokensInput(category=category, search=search), store=session.store)
    _raise_for_errors(result.errors)
    return TokenListResponse(
        tokens=[_token_to_model(t) for t in result.tokens],
        groups=[_group_to_model(g) for g in result.groups],
        count=len(result.tokens),
        active_theme=result.active_theme,
    )


@router.get("/themes", response_model=ThemesResponse)
def list_themes(session: TokenSession = Depends(get_session)) -> ThemesResponse:
    with session.lock:
        return ThemesResponse(
            themes=list(session.store.themes), active_theme=session.store.active_theme
        )


@router.put("/theme", response_model=ThemesResponse, responses={404: {"model": ErrorResponse}})
def set_theme(
    request: ThemeRequest,
    session: TokenSession = Depends(get_session),
) -> ThemesResponse:
    """Switch the active theme."""
    with session.lock:
        result = run_list(ListTokensInput(theme=request.theme), store=session.store)
        _raise_for_errors(result.errors)
        return ThemesResponse(
            themes=list(session.store.themes), active_theme=session.store.active_theme
        )


@router.get(
    "/token/{path}",
    response_model=TokenDetailResponse,
    responses={404: {"description": "Token not found"}},
)
def get_token(path: str, session: TokenSession = Depends(get_session)) -> TokenDetailResponse:
    """Get one resolved token with its value under every theme."""
    with session.lock:
        result = run_get(GetTokenInput(path=path), store=session.store)
    _raise_for_errors(result.errors)
    assert result.token is not None
    return TokenDetailResponse(
        **_token_to_model(result.token).model_dump(),
        overrides=result.overrides,
    )


@router.put(
    "/token/{path}",
    response_model=OperationResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def update_token(
    path: str,
    request: UpdateTokenRequest,
    session: TokenSession = Depends(get_session),
) -> OperationResponse:
    """Update a token value, optionally for one theme."""
    with session.lock:
        result = run_update(
            UpdateTokenInput(path=path, value=request.value, theme=request.theme),
            store=session.store,
        )
    return _operation_response(result)


@router.post(
    "/token",
    response_model=OperationResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
def add_token(
    request: AddTokenRequest,
    session: TokenSession = Depends(get_session),
) -> OperationResponse:
    with session.lock:
        result = run_add(
            AddTokenInput(
                path=request.path,
                type=request.type,
                value=request.value,
                file_path=request.file_path,
                description=request.description,
            ),
            store=session.store,
        )
    return _operation_response(result)


@router.delete(
    "/token/{path}",
    response_model=OperationResponse,
    responses={404: {"model": ErrorResponse}},
)
def remove_token(path: str, session: TokenSession = Depends(get_session)) -> OperationResponse:
    with session.lock:
        result = run_remove(RemoveTokenInput(path=path), store=session.store)
    return _operation_response(result)


@router.post(
    "/move",
    response_model=OperationResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def move_token(
    request: MoveTokenRequest,
    session: TokenSession = Depends(get_session),
) -> OperationResponse:
    with session.lock:
        result = run_move(
            MoveTokenInput(path=request.path, target_file=request.target_file),
            store=session.store,
        )
    return _operation_response(result)


@router.post(
    "/rename-group",
    response_model=OperationResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def rename_group(
    request: RenameGroupRequest,
    session: TokenSession = Depends(get_session),
) -> OperationResponse:
    """Rename a group and rewrite aliases pointing into it."""
    with session.lock:
        result = run_rename_group(
            RenameGroupInput(old_prefix=request.old_prefix, new_prefix=request.new_prefix),
            store=session.store,
        )
    return _operation_response(result)


@router.post("/undo", response_model=OperationResponse, responses={400: {"model": ErrorResponse}})
def undo(session: TokenSession = Depends(get_session)) -> OperationResponse:
    with session.lock:
        result = run_undo(UndoInput(), store=session.store)
    return _operation_response(result)


@router.post("/redo", response_model=OperationResponse, responses={400: {"model": ErrorResponse}})
def redo(session: TokenSession = Depends(get_session)) -> OperationResponse:
    with session.lock:
        result = run_redo(RedoInput(), store=session.store)
    return _operation_response(result)


@router.get("/validate", response_model=ValidationResponse)
def validate(session: TokenSession = Depends(get_session)) -> ValidationResponse:
    with session.lock:
        result = run_validate(ValidateTokensInput(), store=session.store)
    _raise_for_errors(result.errors)
    return ValidationResponse(
        results=[
            ValidationResultModel(path=r.path, severity=r.severity, message=r.message, code=r.code)
            for r in result.results
        ],
        error_count=result.error_count,
        warning_count=result.warning_count,
        valid=result.valid,
    )


@router.get("/diff", response_model=DiffResponse)
def diff(session: TokenSession = Depends(get_session)) -> DiffResponse:
    """Changes since the last load or save."""
    with session.lock:
        result = run_diff(DiffTokensInput(), store=session.store)
    _raise_for_errors(result.errors)
    return DiffResponse(
        entries=[
            DiffEntryModel(path=e.path, type=e.type, before=e.before, after=e.after)
            for e in result.entries
        ],
        dirty_files=list(result.dirty_files),
    )


@router.get(
    "/export",
    response_model=ExportResponse,
    responses={409: {"model": ErrorResponse}},
)
def export_tokens(
    force: bool = Query(False, description="Export even with validation errors"),
    session: TokenSession = Depends(get_session),
) -> ExportResponse:
    """Export every file; refused while validation errors exist unless forced."""
    with session.lock:
        result = run_export(
            ExportTokensInput(force=force),
            store=session.store,
            block_on_errors=session.rules.export.block_on_errors,
        )
    _raise_for_errors(result.errors)
    return ExportResponse(files=result.files)


@router.post(
    "/save",
    response_model=ExportResponse,
    responses={409: {"model": ErrorResponse}},
)
def save_tokens(
    force: bool = Query(False, description="Save even with validation errors"),
    session: TokenSession = Depends(get_session),
    token_files: TokenFileSystem = Depends(get_token_files),
) -> ExportResponse:
    """Write every file to the tokens directory and make it the new baseline."""
    with session.lock:
        result = run_export(
            ExportTokensInput(force=force),
            store=session.store,
            sink=token_files,
            block_on_errors=session.rules.export.block_on_errors,
        )
    _raise_for_errors(result.errors)
    return ExportResponse(files=result.files, written=list(result.written))
