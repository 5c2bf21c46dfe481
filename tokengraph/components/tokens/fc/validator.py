"""
Token set validator.

Runs over every file at once, all themes included, since duplicates and
references cross file boundaries. Checks are independent and always run
in this order:

1. DUPLICATE_PATH - a path defined in more than one file
2. BROKEN_REF     - an alias whose one-hop target does not exist
3. INVALID_VALUE  - per-type format checks on literal values
4. CIRCULAR_REF   - one result per alias cycle

TYPE_MISMATCH (alias to a token of another type) is opt-in through
``ValidatorConfig.check_type_mismatch``.

Problems are reported, never raised.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from tokengraph.components.tokens.fc.flatten import flatten_files
from tokengraph.components.tokens.fc.resolver import (
    build_dependency_graph,
    detect_circular_references,
    get_reference,
)
from tokengraph.components.tokens.fc.themes import DEFAULT_THEME, file_theme
from tokengraph.domain.tokens import FlatToken, TokenGroup, ValidationResult

HEX_PATTERN = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

DuplicateScope = Literal["file", "theme"]


# --- Configuration ---


@dataclass(frozen=True)
class ValidatorConfig:
    """Validator configuration from rules."""

    dimension_units: tuple[str, ...] = ("px", "rem", "em", "%", "pt", "vw", "vh")
    font_weight_min: int = 1
    font_weight_max: int = 1000

    # "file": any path defined in two files is a duplicate.
    # "theme": only files of the same theme layer are compared.
    duplicate_scope: DuplicateScope = "file"
    default_theme: str = DEFAULT_THEME

    check_type_mismatch: bool = False

    def dimension_pattern(self) -> re.Pattern[str]:
        units = "|".join(re.escape(u) for u in self.dimension_units)
        return re.compile(rf"^[\d.]+({units})?$")


DEFAULT_CONFIG = ValidatorConfig()


# --- Value checks ---


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_color_value(value: Any) -> bool:
    return isinstance(value, str) and HEX_PATTERN.match(value) is not None


def validate_dimension_value(value: Any, config: ValidatorConfig = DEFAULT_CONFIG) -> bool:
    if _is_number(value):
        return True
    if not isinstance(value, str):
        return False
    return config.dimension_pattern().match(value) is not None


def validate_font_weight(value: Any, config: ValidatorConfig = DEFAULT_CONFIG) -> bool:
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return False
    if not _is_number(value):
        return False
    return config.font_weight_min <= value <= config.font_weight_max


def _check_value(entry: FlatToken, config: ValidatorConfig) -> ValidationResult | None:
    token = entry.token
    value = token.value

    if token.type == "color" and not validate_color_value(value):
        return ValidationResult(
            path=entry.path,
            severity="error",
            message=f'Invalid color value: "{value}"',
            code="INVALID_VALUE",
        )
    if token.type == "dimension" and not validate_dimension_value(value, config):
        return ValidationResult(
            path=entry.path,
            severity="error",
            message=f'Invalid dimension value: "{value}"',
            code="INVALID_VALUE",
        )
    if token.type == "fontWeight" and not validate_font_weight(value, config):
        return ValidationResult(
            path=entry.path,
            severity="warning",
            message=f'Invalid font weight: "{value}"',
            code="INVALID_VALUE",
        )
    return None


# --- Checks ---


def _layer_of(file_path: str, config: ValidatorConfig) -> str:
    if config.duplicate_scope == "file":
        return ""
    theme = file_theme(file_path)
    return theme if theme is not None else config.default_theme


def check_duplicates(
    entries: list[FlatToken],
    config: ValidatorConfig = DEFAULT_CONFIG,
) -> list[ValidationResult]:
    counts: dict[tuple[str, str], int] = {}
    for entry in entries:
        key = (_layer_of(entry.source_file, config), entry.path)
        counts[key] = counts.get(key, 0) + 1

    results: list[ValidationResult] = []
    reported: set[str] = set()
    for (_, path), count in counts.items():
        if count > 1 and path not in reported:
            reported.add(path)
            results.append(
                ValidationResult(
                    path=path,
                    severity="error",
                    message=f'Duplicate token path "{path}" defined in {count} files',
                    code="DUPLICATE_PATH",
                )
            )
    return results


def check_references(entries: list[FlatToken]) -> list[ValidationResult]:
    all_paths = {entry.path for entry in entries}
    results: list[ValidationResult] = []
    for entry in entries:
        ref = get_reference(entry.token.value)
        if ref is not None and ref not in all_paths:
            results.append(
                ValidationResult(
                    path=entry.path,
                    severity="error",
                    message=f'Broken reference: "{{{ref}}}" does not exist',
                    code="BROKEN_REF",
                )
            )
    return results


def check_values(
    entries: list[FlatToken],
    config: ValidatorConfig = DEFAULT_CONFIG,
) -> list[ValidationResult]:
    results: list[ValidationResult] = []
    for entry in entries:
        if get_reference(entry.token.value) is not None:
            continue
        problem = _check_value(entry, config)
        if problem is not None:
            results.append(problem)
    return results


def check_cycles(entries: list[FlatToken]) -> list[ValidationResult]:
    graph = build_dependency_graph(entries)
    paths = list(dict.fromkeys(entry.path for entry in entries))
    return [
        ValidationResult(
            path=cycle[0],
            severity="error",
            message=f"Circular reference: {' -> '.join(cycle)}",
            code="CIRCULAR_REF",
        )
        for cycle in detect_circular_references(graph, paths)
    ]


def check_type_mismatches(entries: list[FlatToken]) -> list[ValidationResult]:
    types_by_path: dict[str, set[str]] = {}
    for entry in entries:
        types_by_path.setdefault(entry.path, set()).add(entry.token.type)

    results: list[ValidationResult] = []
    for entry in entries:
        ref = get_reference(entry.token.value)
        if ref is None or ref not in types_by_path:
            continue
        target_types = types_by_path[ref]
        if entry.token.type not in target_types:
            results.append(
                ValidationResult(
                    path=entry.path,
                    severity="warning",
                    message=(
                        f'Type mismatch: "{entry.path}" is {entry.token.type} but '
                        f'references {ref} of type {", ".join(sorted(target_types))}'
                    ),
                    code="TYPE_MISMATCH",
                )
            )
    return results


def validate_tokens(
    files: Mapping[str, TokenGroup],
    config: ValidatorConfig = DEFAULT_CONFIG,
) -> list[ValidationResult]:
    """Validate all tokens in the given file set and return any issues found."""
    entries = flatten_files(files)

    results: list[ValidationResult] = []
    results.extend(check_duplicates(entries, config))
    results.extend(check_references(entries))
    results.extend(check_values(entries, config))
    results.extend(check_cycles(entries))
    if config.check_type_mismatch:
        results.extend(check_type_mismatches(entries))
    return results
