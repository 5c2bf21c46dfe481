"""
Flattener and path helpers.

Walks token trees depth-first in insertion order and addresses tokens by
dot path. The edit helpers return new trees and never touch their input.
"""

from __future__ import annotations

from collections.abc import Mapping

from tokengraph.domain.tokens import FlatToken, Token, TokenGroup

PATH_SEPARATOR = "."


def join_path(prefix: str, key: str) -> str:
    return f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key


def split_path(path: str) -> list[str]:
    return path.split(PATH_SEPARATOR)


def is_within(path: str, prefix: str) -> bool:
    """True when ``path`` is ``prefix`` itself or a descendant of it."""
    return path == prefix or path.startswith(prefix + PATH_SEPARATOR)


def reparent(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap the ``old_prefix`` head of ``path`` for ``new_prefix``."""
    if path == old_prefix:
        return new_prefix
    return new_prefix + path[len(old_prefix) :]


def flatten(tree: TokenGroup, source_file: str, prefix: str = "") -> list[FlatToken]:
    """Flatten one file into ``(path, token, source_file)`` entries."""
    results: list[FlatToken] = []
    for key, node in tree.items():
        current = join_path(prefix, key)
        if isinstance(node, Token):
            results.append(FlatToken(path=current, token=node, source_file=source_file))
        elif isinstance(node, TokenGroup):
            results.extend(flatten(node, source_file, current))
    return results


def flatten_files(files: Mapping[str, TokenGroup]) -> list[FlatToken]:
    """Flatten every file, preserving file order then tree order."""
    results: list[FlatToken] = []
    for source_file, tree in files.items():
        results.extend(flatten(tree, source_file))
    return results


def get_token(tree: TokenGroup, path: str) -> Token | None:
    node: object = tree
    for part in split_path(path):
        if not isinstance(node, TokenGroup):
            return None
        node = node.get(part)
    return node if isinstance(node, Token) else None


def set_token(tree: TokenGroup, path: str, token: Token) -> TokenGroup:
    """
    Place ``token`` at ``path``, creating intermediate groups.

    An intermediate segment that currently holds a token or a raw value is
    replaced by a fresh group.
    """
    head, *rest = split_path(path)
    if not rest:
        return tree.with_entry(head, token)
    child = tree.get(head)
    if not isinstance(child, TokenGroup):
        child = TokenGroup()
    return tree.with_entry(head, set_token(child, PATH_SEPARATOR.join(rest), token))


def delete_token(tree: TokenGroup, path: str, prune: bool = False) -> TokenGroup:
    """
    Remove the token at ``path``.

    Returns ``tree`` itself (same object) when no token lives there. With
    ``prune`` the groups emptied by the removal are dropped as well.
    """
    head, *rest = split_path(path)
    child = tree.get(head)
    if not rest:
        if not isinstance(child, Token):
            return tree
        return tree.without_entry(head)
    if not isinstance(child, TokenGroup):
        return tree
    new_child = delete_token(child, PATH_SEPARATOR.join(rest), prune)
    if new_child is child:
        return tree
    if prune and len(new_child) == 0:
        return tree.without_entry(head)
    return tree.with_entry(head, new_child)
