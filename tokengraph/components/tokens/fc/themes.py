"""
Theme overlay.

Themes are derived from file naming only: ``<base>.<theme>.json`` is the
``<theme>`` variant of ``<base>.json``. Files without a suffix (or with
the default theme's suffix) form the base layer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from tokengraph.components.tokens.fc.flatten import flatten
from tokengraph.domain.tokens import FlatToken, TokenGroup

DEFAULT_THEME = "light"
JSON_SUFFIX = ".json"


def file_theme(file_path: str) -> str | None:
    """
    Theme suffix of a file path, or None for a suffix-less file.

    "colors/primitives.dark.json" -> "dark"; "colors/primitives.json" -> None
    """
    file_name = file_path.rsplit("/", 1)[-1]
    segments = file_name.split(".")
    if len(segments) >= 3 and segments[-1] == "json":
        return segments[-2]
    return None


def is_theme_file(file_path: str, default_theme: str = DEFAULT_THEME) -> bool:
    theme = file_theme(file_path)
    return theme is not None and theme != default_theme


def theme_file_path(file_path: str, theme: str, default_theme: str = DEFAULT_THEME) -> str:
    """Companion file holding ``theme`` overrides for a base file."""
    if theme == default_theme:
        return file_path
    base = file_path[: -len(JSON_SUFFIX)] if file_path.endswith(JSON_SUFFIX) else file_path
    return f"{base}.{theme}{JSON_SUFFIX}"


def detect_themes(
    file_paths: Iterable[str],
    default_theme: str = DEFAULT_THEME,
) -> list[str]:
    """Default theme first, then themes in order of discovery."""
    themes = [default_theme]
    for path in file_paths:
        theme = file_theme(path)
        if theme is not None and theme not in themes:
            themes.append(theme)
    return themes


def active_set(
    files: Mapping[str, TokenGroup],
    active_theme: str = DEFAULT_THEME,
    default_theme: str = DEFAULT_THEME,
) -> dict[str, FlatToken]:
    """
    Merge the base layer with the active theme's overrides.

    Files belonging to other themes are left out entirely.
    """
    merged: dict[str, FlatToken] = {}

    for file_path, tree in files.items():
        if is_theme_file(file_path, default_theme):
            continue
        for entry in flatten(tree, file_path):
            merged[entry.path] = entry

    if active_theme != default_theme:
        for file_path, tree in files.items():
            if file_theme(file_path) != active_theme:
                continue
            for entry in flatten(tree, file_path):
                merged[entry.path] = entry

    return merged
