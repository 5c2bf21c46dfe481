from datetime import UTC, datetime
from typing import Any

import pytest

from tokengraph.adapters.clock import FixedClock
from tokengraph.components.tokens import TokenStore, create_token_store


def color(value: str) -> dict[str, Any]:
    return {"$type": "color", "$value": value}


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def base_files() -> dict[str, dict[str, Any]]:
    """Primitive palette plus semantic aliases, no theme files."""
    return {
        "colors/primitives.json": {
            "blue": {"500": color("#3B82F6"), "700": color("#1D4ED8")},
            "gray": {"50": color("#F9FAFB"), "900": color("#111827")},
        },
        "colors/semantic.json": {
            "background": {
                "primary": color("{blue.500}"),
                "surface": color("{gray.50}"),
            },
            "text": {"default": color("{gray.900}")},
        },
        "spacing.json": {
            "space": {
                "sm": {"$type": "dimension", "$value": "4px"},
                "md": {"$type": "dimension", "$value": "8px"},
            },
            "font": {"weight": {"bold": {"$type": "fontWeight", "$value": 700}}},
        },
    }


@pytest.fixture
def themed_files(base_files: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """``base_files`` plus a dark companion for the semantic layer."""
    return {
        **base_files,
        "colors/semantic.dark.json": {
            "background": {"surface": color("{gray.900}")},
            "text": {"default": color("{gray.50}")},
        },
    }


@pytest.fixture
def store(clock: FixedClock, base_files: dict[str, dict[str, Any]]) -> TokenStore:
    store = create_token_store(clock=clock)
    store.load(base_files)
    return store


@pytest.fixture
def themed_store(clock: FixedClock, themed_files: dict[str, dict[str, Any]]) -> TokenStore:
    store = create_token_store(clock=clock)
    store.load(themed_files)
    return store
