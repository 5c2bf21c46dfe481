"""
Design token domain model.

Token files are parsed once into an immutable tree of ``Token`` and
``TokenGroup`` nodes. A JSON object is a token iff it carries both
``$type`` and ``$value``; every other object is a group. Non-object
entries inside a group (a group-level ``$description``, stray scalars)
are kept verbatim so that export round-trips byte for byte.

Trees are never mutated in place. Edits build a new spine and share the
untouched subtrees, so holding a reference to an old tree is a safe
snapshot.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

# --- Enums / Literals ---

TokenType = Literal[
    "color",
    "dimension",
    "fontFamily",
    "fontWeight",
    "duration",
    "cubicBezier",
    "number",
    "strokeStyle",
    "border",
    "transition",
    "shadow",
    "gradient",
    "typography",
    "fontStyle",
]

TOKEN_TYPES: tuple[str, ...] = (
    "color",
    "dimension",
    "fontFamily",
    "fontWeight",
    "duration",
    "cubicBezier",
    "number",
    "strokeStyle",
    "border",
    "transition",
    "shadow",
    "gradient",
    "typography",
    "fontStyle",
)

Severity = Literal["error", "warning"]
ValidationCode = Literal[
    "DUPLICATE_PATH",
    "BROKEN_REF",
    "CIRCULAR_REF",
    "INVALID_VALUE",
    "TYPE_MISMATCH",
]
DiffType = Literal["added", "modified", "removed"]

TYPE_KEY = "$type"
VALUE_KEY = "$value"
DESCRIPTION_KEY = "$description"


# --- Nodes ---


@dataclass(frozen=True)
class Token:
    """
    Leaf of a token tree.

    ``fields`` holds the token object's items in source order, including
    keys this engine does not interpret (``$extensions`` and friends).
    """

    fields: tuple[tuple[str, Any], ...]

    @classmethod
    def create(
        cls,
        type_: str,
        value: Any,
        description: str | None = None,
    ) -> Token:
        items: list[tuple[str, Any]] = [(TYPE_KEY, type_), (VALUE_KEY, copy.deepcopy(value))]
        if description is not None:
            items.append((DESCRIPTION_KEY, description))
        return cls(fields=tuple(items))

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> Token:
        return cls(fields=tuple((k, copy.deepcopy(v)) for k, v in raw.items()))

    def _get(self, key: str) -> Any:
        for k, v in self.fields:
            if k == key:
                return v
        return None

    @property
    def type(self) -> str:
        return str(self._get(TYPE_KEY))

    @property
    def value(self) -> Any:
        """A private copy of ``$value``; trees are shared by snapshots."""
        return copy.deepcopy(self._get(VALUE_KEY))

    @property
    def description(self) -> str | None:
        desc = self._get(DESCRIPTION_KEY)
        return desc if isinstance(desc, str) else None

    def with_value(self, value: Any) -> Token:
        """Return a copy with ``$value`` replaced, key order unchanged."""
        new_value = copy.deepcopy(value)
        return Token(
            fields=tuple((k, new_value if k == VALUE_KEY else v) for k, v in self.fields)
        )

    def to_json(self) -> dict[str, Any]:
        return {k: copy.deepcopy(v) for k, v in self.fields}


@dataclass(frozen=True)
class TokenGroup:
    """Ordered, immutable mapping of key -> Token | TokenGroup | raw JSON."""

    entries: tuple[tuple[str, Any], ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self.entries)

    def keys(self) -> list[str]:
        return [k for k, _ in self.entries]

    def items(self) -> Iterator[tuple[str, Any]]:
        return iter(self.entries)

    def get(self, key: str) -> Any:
        for k, v in self.entries:
            if k == key:
                return v
        return None

    def with_entry(self, key: str, node: Any) -> TokenGroup:
        """Replace ``key`` in place, or append it when absent."""
        if key in self:
            return TokenGroup(
                entries=tuple((k, node if k == key else v) for k, v in self.entries)
            )
        return TokenGroup(entries=(*self.entries, (key, node)))

    def without_entry(self, key: str) -> TokenGroup:
        return TokenGroup(entries=tuple((k, v) for k, v in self.entries if k != key))

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, node in self.entries:
            if isinstance(node, (Token, TokenGroup)):
                out[key] = node.to_json()
            else:
                out[key] = copy.deepcopy(node)
        return out


Node = Token | TokenGroup


def parse_node(raw: Any) -> Any:
    """Classify one JSON value. Dicts become nodes, anything else is kept raw."""
    if isinstance(raw, Mapping):
        if TYPE_KEY in raw and VALUE_KEY in raw:
            return Token.from_json(raw)
        return TokenGroup(entries=tuple((str(k), parse_node(v)) for k, v in raw.items()))
    return copy.deepcopy(raw)


def parse_file(raw: Mapping[str, Any]) -> TokenGroup:
    """Parse the root object of a token file."""
    if not isinstance(raw, Mapping):
        raise ValueError(f"Token file root must be an object, got {type(raw).__name__}")
    node = parse_node(raw)
    if isinstance(node, Token):
        raise ValueError("Token file root must be a group, not a token")
    return node


def parse_files(raw_files: Mapping[str, Mapping[str, Any]]) -> dict[str, TokenGroup]:
    return {path: parse_file(tree) for path, tree in raw_files.items()}


# --- Read projections ---


@dataclass(frozen=True)
class FlatToken:
    """A token addressed by its dot path, with the file that owns it."""

    path: str
    token: Token
    source_file: str


@dataclass(frozen=True)
class ResolvedToken:
    """
    Read-only projection consumed by front ends.

    ``resolved_value`` falls back to an alias string when the chain is
    broken or cyclic; ``reference`` is always the one-hop target.
    """

    path: str
    type: str
    raw_value: Any
    resolved_value: Any
    source_file: str
    reference: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Validation problem with actionable message."""

    path: str
    severity: Severity
    message: str
    code: ValidationCode


@dataclass(frozen=True)
class DiffEntry:
    path: str
    type: DiffType
    before: Any = None
    after: Any = None


@dataclass(frozen=True)
class TokenSnapshot:
    """Undo/redo history entry."""

    files: Mapping[str, TokenGroup]
    timestamp: datetime


@dataclass
class TokenGroupNode:
    """Group tree node used by catalog views."""

    name: str
    path: str
    children: list[TokenGroupNode] = field(default_factory=list)
    token_count: int = 0
