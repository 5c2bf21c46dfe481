"""
TokenStore - stateful orchestrator of the token graph.

Owns the authoritative file -> tree map and a baseline copy, re-runs the
functional core after every change, and keeps bounded undo/redo history.

Key behaviors:
- Every effective mutation pushes exactly one snapshot and clears redo
- Mutations that would change nothing are no-ops (no history entry)
- Resolution is global: every change re-resolves the whole merged set
- A file is dirty iff its serialized content differs from the baseline
- Validation is advisory; mutations never consult it

Single mutator assumed. Callers that share a store across threads must
serialize their own calls.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from tokengraph.adapters.clock import SystemClock
from tokengraph.components.tokens.fc.differ import compute_diff
from tokengraph.components.tokens.fc.exporter import export_tokens
from tokengraph.components.tokens.fc.flatten import (
    delete_token,
    flatten,
    get_token,
    is_within,
    reparent,
    set_token,
    split_path,
)
from tokengraph.components.tokens.fc.resolver import (
    format_reference,
    get_reference,
    resolve_all,
)
from tokengraph.components.tokens.fc.themes import (
    DEFAULT_THEME,
    detect_themes,
    file_theme,
    is_theme_file,
    theme_file_path,
)
from tokengraph.components.tokens.fc.validator import (
    DEFAULT_CONFIG as DEFAULT_VALIDATOR_CONFIG,
)
from tokengraph.components.tokens.fc.validator import (
    ValidatorConfig,
    validate_tokens,
)
from tokengraph.domain.tokens import (
    DiffEntry,
    ResolvedToken,
    Token,
    TokenGroup,
    TokenGroupNode,
    TokenSnapshot,
    ValidationResult,
    parse_file,
)
from tokengraph.ports.clock import ClockPort
from tokengraph.rules.models import Rules

logger = logging.getLogger(__name__)

MAX_UNDO_STACK = 50

DEFAULT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "colors": ("color",),
    "typography": ("fontFamily", "fontWeight", "fontStyle", "typography"),
    "dimensions": ("dimension", "number"),
    "shadows": ("shadow",),
}

T = TypeVar("T")


# --- Configuration ---


@dataclass(frozen=True)
class TokenStoreConfig:
    """Token store configuration from rules."""

    max_undo_stack: int = MAX_UNDO_STACK
    default_theme: str = DEFAULT_THEME
    categories: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORIES)
    )
    validator: ValidatorConfig = DEFAULT_VALIDATOR_CONFIG

    @classmethod
    def from_rules(cls, rules: Rules) -> TokenStoreConfig:
        validation = rules.validation
        return cls(
            max_undo_stack=rules.store.max_undo_stack,
            default_theme=rules.themes.default_theme,
            categories={name: tuple(types) for name, types in rules.categories.items()},
            validator=ValidatorConfig(
                dimension_units=tuple(validation.dimension_units),
                font_weight_min=validation.font_weight_min,
                font_weight_max=validation.font_weight_max,
                duplicate_scope=validation.duplicate_scope,
                default_theme=rules.themes.default_theme,
                check_type_mismatch=validation.check_type_mismatch,
            ),
        )


DEFAULT_CONFIG = TokenStoreConfig()


class StoreNotLoadedError(RuntimeError):
    """Raised when a store is read before ``load`` was ever called."""


# --- Helpers ---


def trim_stack(stack: list[T], item: T, limit: int = MAX_UNDO_STACK) -> list[T]:
    """Append ``item``, evicting the oldest entries beyond ``limit``."""
    new_stack = [*stack, item]
    return new_stack[-limit:] if len(new_stack) > limit else new_stack


def _serialize(tree: TokenGroup | None) -> str | None:
    if tree is None:
        return None
    return json.dumps(tree.to_json(), ensure_ascii=False)


def build_group_tree(paths: Iterable[str]) -> list[TokenGroupNode]:
    """Group tree with per-group direct token counts."""
    root = TokenGroupNode(name="", path="")
    index: dict[str, TokenGroupNode] = {"": root}

    for path in paths:
        parts = split_path(path)
        current = root
        for i in range(len(parts) - 1):
            group_path = ".".join(parts[: i + 1])
            child = index.get(group_path)
            if child is None:
                child = TokenGroupNode(name=parts[i], path=group_path)
                current.children.append(child)
                index[group_path] = child
            current = child
        current.token_count += 1

    return root.children


# --- Token Store ---


class TokenStore:
    """
    Token store.

    Holds ``{files, baseline, dirty_files, active_theme, undo_stack,
    redo_stack}``. Trees are immutable, so snapshots share structure with
    the live map without ever aliasing mutable state.
    """

    def __init__(
        self,
        config: TokenStoreConfig | None = None,
        clock: ClockPort | None = None,
    ) -> None:
        """Initialize store."""
        self._config = config or DEFAULT_CONFIG
        self._clock = clock or SystemClock()

        self._files: dict[str, TokenGroup] | None = None
        self._baseline: dict[str, TokenGroup] = {}
        self._baseline_json: dict[str, str] = {}
        self._dirty: set[str] = set()
        self._themes: list[str] = [self._config.default_theme]
        self._active_theme = self._config.default_theme
        self._undo_stack: list[TokenSnapshot] = []
        self._redo_stack: list[TokenSnapshot] = []
        self._resolved: list[ResolvedToken] = []
        self._resolved_index: dict[str, ResolvedToken] = {}

    # --- State accessors ---

    @property
    def config(self) -> TokenStoreConfig:
        return self._config

    @property
    def is_loaded(self) -> bool:
        return self._files is not None

    @property
    def files(self) -> Mapping[str, TokenGroup]:
        return dict(self._require_files())

    @property
    def baseline(self) -> Mapping[str, TokenGroup]:
        return dict(self._baseline)

    @property
    def dirty_files(self) -> frozenset[str]:
        return frozenset(self._dirty)

    @property
    def themes(self) -> tuple[str, ...]:
        return tuple(self._themes)

    @property
    def active_theme(self) -> str:
        return self._active_theme

    @property
    def resolved_tokens(self) -> tuple[ResolvedToken, ...]:
        self._require_files()
        return tuple(self._resolved)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    # --- Internals ---

    def _require_files(self) -> dict[str, TokenGroup]:
        if self._files is None:
            raise StoreNotLoadedError("Token store has not been loaded")
        return self._files

    def _is_theme_file(self, file_path: str) -> bool:
        return is_theme_file(file_path, self._config.default_theme)

    def _snapshot(self) -> TokenSnapshot:
        return TokenSnapshot(files=dict(self._require_files()), timestamp=self._clock.now())

    def _set_baseline(self, files: Mapping[str, TokenGroup]) -> None:
        self._baseline = dict(files)
        self._baseline_json = {
            path: json.dumps(tree.to_json(), ensure_ascii=False) for path, tree in files.items()
        }

    def _is_dirty(self, file_path: str) -> bool:
        current = _serialize(self._require_files().get(file_path))
        return current != self._baseline_json.get(file_path)

    def _recompute_dirty(self, file_paths: Iterable[str]) -> None:
        for file_path in file_paths:
            if self._is_dirty(file_path):
                self._dirty.add(file_path)
            else:
                self._dirty.discard(file_path)

    def _recompute_all_dirty(self) -> None:
        self._dirty = set()
        self._recompute_dirty(set(self._require_files()) | set(self._baseline))

    def _refresh_themes(self) -> None:
        self._themes = detect_themes(self._require_files().keys(), self._config.default_theme)
        if self._active_theme not in self._themes:
            self._active_theme = self._config.default_theme

    def _resolve(self) -> None:
        self._resolved = resolve_all(
            self._require_files(),
            self._active_theme,
            self._config.default_theme,
        )
        self._resolved_index = {token.path: token for token in self._resolved}

    def _commit(self, changes: Mapping[str, TokenGroup | None]) -> bool:
        """
        Apply a set of file changes as one undoable transition.

        ``None`` deletes the file. Changes that leave a file's serialized
        content identical are dropped; if none remain nothing is recorded.
        """
        files = self._require_files()
        changes = {
            file_path: tree
            for file_path, tree in changes.items()
            if _serialize(tree) != _serialize(files.get(file_path))
        }
        if not changes:
            logger.debug("Mutation left every file unchanged; nothing recorded")
            return False

        snapshot = self._snapshot()
        new_files = dict(files)
        for file_path, tree in changes.items():
            if tree is None:
                new_files.pop(file_path, None)
            else:
                new_files[file_path] = tree

        keys_changed = new_files.keys() != files.keys()
        self._files = new_files
        self._undo_stack = trim_stack(self._undo_stack, snapshot, self._config.max_undo_stack)
        self._redo_stack = []
        if keys_changed:
            self._refresh_themes()
        self._recompute_dirty(changes.keys())
        self._resolve()
        logger.debug("Committed changes to %d file(s)", len(changes))
        return True

    def _restore(self, files: Mapping[str, TokenGroup]) -> None:
        self._files = dict(files)
        self._refresh_themes()
        self._recompute_all_dirty()
        self._resolve()

    # --- Lifecycle ---

    def load(self, files: Mapping[str, Mapping[str, Any] | TokenGroup]) -> None:
        """
        Replace everything with ``files`` and re-establish the baseline.

        History and dirty state are cleared and the default theme becomes
        active.
        """
        parsed = _parse_all(files)
        self._files = parsed
        self._set_baseline(parsed)
        self._dirty = set()
        self._undo_stack = []
        self._redo_stack = []
        self._active_theme = self._config.default_theme
        self._refresh_themes()
        self._resolve()
        logger.info(
            "Loaded %d token file(s), %d resolved token(s), themes=%s",
            len(parsed),
            len(self._resolved),
            ",".join(self._themes),
        )

    def load_draft(self, files: Mapping[str, Mapping[str, Any] | TokenGroup]) -> None:
        """
        Replace the working files but keep the existing baseline.

        Used to restore an unsaved working copy. Establishes a baseline
        only if the store never had one.
        """
        parsed = _parse_all(files)
        if not self._baseline:
            self._set_baseline(parsed)
        self._files = parsed
        self._undo_stack = []
        self._redo_stack = []
        self._refresh_themes()
        self._recompute_all_dirty()
        self._resolve()
        logger.info("Loaded draft of %d file(s), %d dirty", len(parsed), len(self._dirty))

    def rebase(self) -> None:
        """Make the current files the new baseline."""
        self._set_baseline(self._require_files())
        self._dirty = set()

    def set_active_theme(self, theme: str) -> None:
        self._require_files()
        self._active_theme = theme
        self._resolve()
        logger.debug("Active theme set to %s", theme)

    # --- Reads ---

    def list_resolved_tokens(
        self,
        category: str | None = None,
        search: str | None = None,
    ) -> list[ResolvedToken]:
        """
        Resolved tokens of the active theme.

        An unknown category yields every token. ``search`` matches path or
        resolved value, case-insensitively.
        """
        self._require_files()
        tokens = list(self._resolved)

        if category:
            types = self._config.categories.get(category)
            if types is not None:
                tokens = [t for t in tokens if t.type in types]

        if search:
            needle = search.lower()
            tokens = [
                t
                for t in tokens
                if needle in t.path.lower() or needle in str(t.resolved_value).lower()
            ]

        return tokens

    def get_resolved_token(self, path: str) -> ResolvedToken | None:
        self._require_files()
        return self._resolved_index.get(path)

    def get_validation_results(self) -> list[ValidationResult]:
        return validate_tokens(self._require_files(), self._config.validator)

    def get_diff(self) -> list[DiffEntry]:
        return compute_diff(self._baseline, self._require_files())

    def get_token_groups(self) -> list[TokenGroupNode]:
        self._require_files()
        return build_group_tree(t.path for t in self._resolved)

    def get_token_value(self, path: str, theme: str | None = None) -> Any:
        """
        Raw (unresolved) value of ``path`` as seen by ``theme``.

        Looks in the theme's files first, then base files, then anywhere.
        """
        files = self._require_files()
        effective = theme or self._active_theme

        if effective != self._config.default_theme:
            for file_path, tree in files.items():
                if file_theme(file_path) == effective:
                    token = get_token(tree, path)
                    if token is not None:
                        return token.value

        for file_path, tree in files.items():
            if not self._is_theme_file(file_path):
                token = get_token(tree, path)
                if token is not None:
                    return token.value

        for tree in files.values():
            token = get_token(tree, path)
            if token is not None:
                return token.value

        return None

    def get_theme_overrides(self, path: str) -> dict[str, Any]:
        return {theme: self.get_token_value(path, theme) for theme in self._themes}

    def export_as_json(self) -> dict[str, dict[str, Any]]:
        return export_tokens(self._require_files())

    def export_token_file(self, file_path: str) -> dict[str, Any] | None:
        tree = self._require_files().get(file_path)
        return tree.to_json() if tree is not None else None

    # --- Mutations ---

    def update_token(self, path: str, value: Any, theme: str | None = None) -> bool:
        """
        Set the value of an existing token.

        With a non-default ``theme`` the change lands in that theme's
        files: an existing override is rewritten, otherwise one is created
        in the base file's existing theme companion. Returns False (no-op)
        when nothing matches.
        """
        files = self._require_files()

        if theme and theme != self._config.default_theme:
            change = self._locate_theme_update(path, value, theme)
        else:
            change = None
            for file_path, tree in files.items():
                if self._is_theme_file(file_path):
                    continue
                token = get_token(tree, path)
                if token is not None:
                    change = (file_path, set_token(tree, path, token.with_value(value)))
                    break

        if change is None:
            logger.warning("update_token: no token at %s (theme=%s)", path, theme)
            return False

        file_path, new_tree = change
        return self._commit({file_path: new_tree})

    def _locate_theme_update(
        self, path: str, value: Any, theme: str
    ) -> tuple[str, TokenGroup] | None:
        files = self._require_files()

        for file_path, tree in files.items():
            if file_theme(file_path) != theme:
                continue
            token = get_token(tree, path)
            if token is not None:
                return file_path, set_token(tree, path, token.with_value(value))

        for file_path, tree in files.items():
            if self._is_theme_file(file_path):
                continue
            base_token = get_token(tree, path)
            if base_token is None:
                continue
            companion = theme_file_path(file_path, theme, self._config.default_theme)
            if companion in files:
                override = Token.create(base_token.type, value)
                return companion, set_token(files[companion], path, override)

        return None

    def add_token(
        self,
        path: str,
        type_: str,
        value: Any,
        file_path: str,
        description: str | None = None,
    ) -> bool:
        """
        Insert a token into ``file_path``, creating the file and any
        intermediate groups. Existing paths in other files are not checked.
        """
        files = self._require_files()
        tree = files.get(file_path, TokenGroup())
        token = Token.create(type_, value, description)
        if not self._commit({file_path: set_token(tree, path, token)}):
            return False
        logger.debug("Added %s to %s", path, file_path)
        return True

    def remove_token(self, path: str) -> bool:
        """Remove ``path`` from every file that defines it."""
        changes: dict[str, TokenGroup | None] = {}
        for file_path, tree in self._require_files().items():
            new_tree = delete_token(tree, path)
            if new_tree is not tree:
                changes[file_path] = new_tree

        if not changes:
            logger.warning("remove_token: no token at %s", path)
            return False

        self._commit(changes)
        return True

    def move_token(self, path: str, target_file: str) -> bool:
        """Move a token verbatim from its (first) owning file to ``target_file``."""
        files = self._require_files()

        source_file: str | None = None
        token: Token | None = None
        for file_path, tree in files.items():
            token = get_token(tree, path)
            if token is not None:
                source_file = file_path
                break

        if source_file is None or token is None:
            logger.warning("move_token: no token at %s", path)
            return False
        if source_file == target_file:
            return False

        target_tree = files.get(target_file, TokenGroup())
        self._commit(
            {
                source_file: delete_token(files[source_file], path),
                target_file: set_token(target_tree, path, token),
            }
        )
        logger.debug("Moved %s from %s to %s", path, source_file, target_file)
        return True

    def rename_group(self, old_prefix: str, new_prefix: str) -> bool:
        """
        Rename a group (or token) path across all files in one transition.

        Rewrites both the paths under ``old_prefix`` and every alias that
        points under it. Groups emptied by the move are pruned.
        """
        if not old_prefix or not new_prefix or old_prefix == new_prefix:
            return False

        changes: dict[str, TokenGroup | None] = {}
        for file_path, tree in self._require_files().items():
            new_tree = _rename_in_tree(tree, file_path, old_prefix, new_prefix)
            if new_tree is not tree:
                changes[file_path] = new_tree

        if not changes:
            logger.warning("rename_group: nothing under %s", old_prefix)
            return False

        self._commit(changes)
        logger.info("Renamed %s -> %s in %d file(s)", old_prefix, new_prefix, len(changes))
        return True

    def create_token_file(self, file_path: str) -> bool:
        """Add an empty file. Not recorded in history."""
        files = self._require_files()
        if file_path in files:
            return False
        self._files = {**files, file_path: TokenGroup()}
        self._refresh_themes()
        self._recompute_dirty([file_path])
        return True

    def delete_token_file(self, file_path: str) -> bool:
        if file_path not in self._require_files():
            return False
        self._commit({file_path: None})
        return True

    def replace_token_file(self, file_path: str, file: Mapping[str, Any] | TokenGroup) -> bool:
        tree = file if isinstance(file, TokenGroup) else parse_file(file)
        return self._commit({file_path: tree})

    # --- History ---

    def undo(self) -> bool:
        if not self._undo_stack:
            return False
        current = self._snapshot()
        previous = self._undo_stack[-1]
        self._undo_stack = self._undo_stack[:-1]
        self._redo_stack = trim_stack(self._redo_stack, current, self._config.max_undo_stack)
        self._restore(previous.files)
        logger.info("Undo (remaining=%d)", len(self._undo_stack))
        return True

    def redo(self) -> bool:
        if not self._redo_stack:
            return False
        current = self._snapshot()
        following = self._redo_stack[-1]
        self._redo_stack = self._redo_stack[:-1]
        self._undo_stack = trim_stack(self._undo_stack, current, self._config.max_undo_stack)
        self._restore(following.files)
        logger.info("Redo (remaining=%d)", len(self._redo_stack))
        return True


def _parse_all(files: Mapping[str, Mapping[str, Any] | TokenGroup]) -> dict[str, TokenGroup]:
    return {
        path: tree if isinstance(tree, TokenGroup) else parse_file(tree)
        for path, tree in files.items()
    }


def _rename_in_tree(
    tree: TokenGroup, file_path: str, old_prefix: str, new_prefix: str
) -> TokenGroup:
    moved: list[tuple[str, Token]] = []
    new_tree = tree

    for entry in flatten(tree, file_path):
        token = entry.token
        ref = get_reference(token.value)
        if ref is not None and is_within(ref, old_prefix):
            token = token.with_value(format_reference(reparent(ref, old_prefix, new_prefix)))

        if is_within(entry.path, old_prefix):
            new_tree = delete_token(new_tree, entry.path, prune=True)
            moved.append((reparent(entry.path, old_prefix, new_prefix), token))
        elif token is not entry.token:
            new_tree = set_token(new_tree, entry.path, token)

    for path, token in moved:
        new_tree = set_token(new_tree, path, token)

    return new_tree


def create_token_store(
    rules: Rules | None = None,
    clock: ClockPort | None = None,
) -> TokenStore:
    """Create a TokenStore configured from rules."""
    config = TokenStoreConfig.from_rules(rules) if rules is not None else None
    return TokenStore(config=config, clock=clock)
