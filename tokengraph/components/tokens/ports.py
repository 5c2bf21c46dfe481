"""
Tokens component port definitions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class TokenSourcePort(Protocol):
    """Where token files are read from."""

    def load_all(self) -> dict[str, dict[str, Any]]:
        """Return every token file keyed by its relative path."""
        ...


class TokenSinkPort(Protocol):
    """Where exported token files are written to."""

    def write_all(self, files: Mapping[str, Mapping[str, Any]]) -> list[str]:
        """Write files and return the paths written."""
        ...

    def delete(self, path: str) -> None:
        """Remove a file that no longer exists in the store."""
        ...
