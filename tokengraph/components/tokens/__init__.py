"""
Tokens component - design token graph (flatten, themes, aliases, validation, history).
"""

from ._impl import (
    DEFAULT_CONFIG,
    StoreNotLoadedError,
    TokenStore,
    TokenStoreConfig,
    build_group_tree,
    create_token_store,
    trim_stack,
)
from .component import (
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

__all__ = [
    # Entry points
    "run_add",
    "run_diff",
    "run_export",
    "run_get",
    "run_list",
    "run_load",
    "run_move",
    "run_redo",
    "run_remove",
    "run_rename_group",
    "run_undo",
    "run_update",
    "run_validate",
    # Input models
    "AddTokenInput",
    "DiffTokensInput",
    "ExportTokensInput",
    "GetTokenInput",
    "ListTokensInput",
    "LoadTokensInput",
    "MoveTokenInput",
    "RedoInput",
    "RemoveTokenInput",
    "RenameGroupInput",
    "UndoInput",
    "UpdateTokenInput",
    "ValidateTokensInput",
    # Output models
    "DiffOutput",
    "ExportOutput",
    "LoadOutput",
    "TokenListOutput",
    "TokenOperationError",
    "TokenOperationOutput",
    "TokenOutput",
    "ValidationOutput",
    # Ports
    "TokenSinkPort",
    "TokenSourcePort",
    # _impl re-exports
    "DEFAULT_CONFIG",
    "StoreNotLoadedError",
    "TokenStore",
    "TokenStoreConfig",
    "build_group_tree",
    "create_token_store",
    "trim_stack",
]
