"""
Reference resolver.

Follows alias chains (``"{path.to.token}"``) to their concrete value.
Resolution is fail-soft: a missing target or a cycle yields the last
alias string seen instead of raising, so one bad token never blocks the
rest of the set.

Cycle *reporting* is a separate DFS over the dependency graph and feeds
the validator.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from tokengraph.components.tokens.fc.flatten import flatten_files
from tokengraph.components.tokens.fc.themes import DEFAULT_THEME, active_set
from tokengraph.domain.tokens import FlatToken, ResolvedToken, Token, TokenGroup

REFERENCE_PATTERN = re.compile(r"^\{([^}]+)\}$")

DependencyGraph = dict[str, list[str]]


def get_reference(value: Any) -> str | None:
    """One-hop alias target of a value, or None for a literal."""
    if not isinstance(value, str):
        return None
    match = REFERENCE_PATTERN.match(value)
    return match.group(1) if match else None


def format_reference(path: str) -> str:
    return "{" + path + "}"


def resolve_value(value: Any, token_map: Mapping[str, Token], path: str = "") -> Any:
    """
    Resolve ``value`` (owned by the token at ``path``) to its final value.

    ``visited`` collects the token paths already walked in this chain; a
    hop back into it stops the walk and returns the current alias string.
    """
    visited: set[str] = set()
    current_value = value
    current_path = path
    while True:
        ref = get_reference(current_value)
        if ref is None or ref in visited:
            return current_value
        visited.add(current_path)
        target = token_map.get(ref)
        if target is None:
            return current_value
        current_value = target.value
        current_path = ref


def _to_resolved(entry: FlatToken, token_map: Mapping[str, Token]) -> ResolvedToken:
    token = entry.token
    return ResolvedToken(
        path=entry.path,
        type=token.type,
        raw_value=token.value,
        resolved_value=resolve_value(token.value, token_map, entry.path),
        source_file=entry.source_file,
        reference=get_reference(token.value),
        description=token.description,
    )


def resolve_all(
    files: Mapping[str, TokenGroup],
    active_theme: str = DEFAULT_THEME,
    default_theme: str = DEFAULT_THEME,
) -> list[ResolvedToken]:
    """Resolve the base layer merged with the active theme."""
    merged = active_set(files, active_theme, default_theme)
    token_map = {path: entry.token for path, entry in merged.items()}
    return [_to_resolved(entry, token_map) for entry in merged.values()]


# --- Dependency graph ---


def build_dependency_graph(entries: Iterable[FlatToken]) -> DependencyGraph:
    """
    Map each aliasing path to the paths it references.

    Entries sharing a path (duplicates, theme overrides) contribute all of
    their edges. Edge order follows entry order.
    """
    graph: DependencyGraph = {}
    for entry in entries:
        ref = get_reference(entry.token.value)
        if ref is None:
            continue
        deps = graph.setdefault(entry.path, [])
        if ref not in deps:
            deps.append(ref)
    return graph


def detect_circular_references(
    graph: Mapping[str, list[str]],
    paths: Iterable[str],
) -> list[list[str]]:
    """
    Find every cycle reachable from ``paths``.

    Each cycle is reported as the stack slice starting at the repeated
    node, closed by that node again: ``["a", "b", "c", "a"]``. Scanning
    continues after a cycle is found.
    """
    cycles: list[list[str]] = []
    global_visited: set[str] = set()

    for start in paths:
        if start in global_visited:
            continue

        stack: list[str] = []
        stack_set: set[str] = set()

        def dfs(current: str) -> None:
            if current in stack_set:
                cycle_start = stack.index(current)
                cycles.append([*stack[cycle_start:], current])
                return
            if current in global_visited:
                return

            stack.append(current)
            stack_set.add(current)
            for dep in graph.get(current, []):
                dfs(dep)
            stack.pop()
            stack_set.discard(current)
            global_visited.add(current)

        dfs(start)

    return cycles


# --- Resolver ---


class TokenResolver:
    """
    Token map plus forward and reverse dependency graphs.

    Used by tooling that needs "what does this token depend on" and
    "who depends on this token" queries.
    """

    def __init__(self) -> None:
        self._token_map: dict[str, Token] = {}
        self._path_to_file: dict[str, str] = {}
        self._graph: DependencyGraph = {}
        self._reverse_graph: DependencyGraph = {}

    def load(self, files: Mapping[str, TokenGroup]) -> None:
        """Load every file; later files win on path collisions."""
        entries = flatten_files(files)
        self._token_map = {}
        self._path_to_file = {}
        for entry in entries:
            self._token_map[entry.path] = entry.token
            self._path_to_file[entry.path] = entry.source_file

        self._graph = build_dependency_graph(
            FlatToken(path=path, token=token, source_file=self._path_to_file[path])
            for path, token in self._token_map.items()
        )
        self._reverse_graph = {}
        for path, deps in self._graph.items():
            for dep in deps:
                self._reverse_graph.setdefault(dep, []).append(path)

    def resolve_value(self, value: Any, path: str = "") -> Any:
        return resolve_value(value, self._token_map, path)

    def resolve_all(self) -> list[ResolvedToken]:
        return [
            _to_resolved(
                FlatToken(path=path, token=token, source_file=self._path_to_file[path]),
                self._token_map,
            )
            for path, token in self._token_map.items()
        ]

    def get_referenced_by(self, path: str) -> list[str]:
        """Tokens whose value aliases ``path`` directly."""
        return list(self._reverse_graph.get(path, []))

    def get_references(self, path: str) -> list[str]:
        """Direct and transitive alias targets of ``path``."""
        result: list[str] = []
        visited: set[str] = set()
        pending = [path]
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            for dep in self._graph.get(current, []):
                if dep not in result:
                    result.append(dep)
                pending.append(dep)
        return result

    def detect_circular_references(self) -> list[list[str]]:
        return detect_circular_references(self._graph, self._token_map.keys())


def resolve_tokens(files: Mapping[str, TokenGroup]) -> list[ResolvedToken]:
    """Resolve every file with no theme overlay."""
    resolver = TokenResolver()
    resolver.load(files)
    return resolver.resolve_all()
