"""
Exporter - token trees back to DTCG JSON.

The serialized form (2-space indent, trailing newline) is compared byte
for byte by external generators.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from tokengraph.domain.tokens import TokenGroup


def export_tokens(files: Mapping[str, TokenGroup]) -> dict[str, dict[str, Any]]:
    """Exports token files as independent JSON-ready dicts, preserving file structure."""
    return {file_path: tree.to_json() for file_path, tree in files.items()}


def serialize_token_file(file: TokenGroup | Mapping[str, Any]) -> str:
    """
    Serializes a single token file to a formatted JSON string.
    Key order is preserved from the original file.
    """
    data = file.to_json() if isinstance(file, TokenGroup) else file
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
