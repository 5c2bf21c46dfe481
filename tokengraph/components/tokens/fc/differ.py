"""
Differ - baseline vs working copy over the merged path space.

File ownership is ignored. Moves are never reported as moves: a token
re-homed under a new path is a ``removed`` + ``added`` pair with the same
value, and one that keeps its path in another file produces no entry.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from tokengraph.components.tokens.fc.flatten import flatten_files
from tokengraph.domain.tokens import DiffEntry, TokenGroup


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def _flat_values(files: Mapping[str, TokenGroup]) -> dict[str, Any]:
    return {entry.path: entry.token.value for entry in flatten_files(files)}


def compute_diff(
    baseline: Mapping[str, TokenGroup],
    current: Mapping[str, TokenGroup],
) -> list[DiffEntry]:
    """Added and modified entries in current order, then removed entries."""
    base_flat = _flat_values(baseline)
    current_flat = _flat_values(current)
    diffs: list[DiffEntry] = []

    for path, value in current_flat.items():
        if path not in base_flat:
            diffs.append(DiffEntry(path=path, type="added", after=value))
        elif _canonical(value) != _canonical(base_flat[path]):
            diffs.append(
                DiffEntry(path=path, type="modified", before=base_flat[path], after=value)
            )

    for path, value in base_flat.items():
        if path not in current_flat:
            diffs.append(DiffEntry(path=path, type="removed", before=value))

    return diffs
