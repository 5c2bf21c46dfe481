import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tokengraph.components.tokens.fc.exporter import serialize_token_file

logger = logging.getLogger(__name__)

TOKEN_FILE_GLOB = "*.json"


class TokenFileSystem:
    """Token files on disk, keyed by their POSIX path relative to ``base_path``."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).resolve()
        if not self.base_path.exists():
            os.makedirs(self.base_path, exist_ok=True)

    def _safe_path(self, path: str) -> Path:
        # Prevent traversal
        target = (self.base_path / path).resolve()
        if target != self.base_path and self.base_path not in target.parents:
            raise ValueError(f"Path traversal attempt detected: {path}")
        return target

    def list_files(self) -> list[str]:
        return sorted(
            p.relative_to(self.base_path).as_posix()
            for p in self.base_path.rglob(TOKEN_FILE_GLOB)
            if p.is_file()
        )

    def read_text(self, path: str) -> str:
        """Raw file content. Raises FileNotFoundError."""
        target = self._safe_path(path)
        if not target.exists():
            raise FileNotFoundError(f"Token file not found: {path}")
        return target.read_text(encoding="utf-8")

    def load(self, path: str) -> dict[str, Any]:
        try:
            data = json.loads(self.read_text(path))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Token file {path} must contain a JSON object")
        return data

    def load_all(self) -> dict[str, dict[str, Any]]:
        files = {path: self.load(path) for path in self.list_files()}
        logger.info("Read %d token file(s) from %s", len(files), self.base_path)
        return files

    def write(self, path: str, file: Mapping[str, Any]) -> str:
        target = self._safe_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(serialize_token_file(file), encoding="utf-8")
        return target.relative_to(self.base_path).as_posix()

    def write_all(self, files: Mapping[str, Mapping[str, Any]]) -> list[str]:
        written = [self.write(path, file) for path, file in files.items()]
        logger.info("Wrote %d token file(s) to %s", len(written), self.base_path)
        return written

    def delete(self, path: str) -> None:
        target = self._safe_path(path)
        if target.exists():
            os.remove(target)
