"""
Tokens component unit tests.

Tests for the token store (mutations, history, dirty tracking, themes)
and the component entry points.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from tokengraph.adapters.clock import FixedClock
from tokengraph.components.tokens import (
    AddTokenInput,
    DiffTokensInput,
    ExportTokensInput,
    GetTokenInput,
    ListTokensInput,
    LoadTokensInput,
    MoveTokenInput,
    RedoInput,
    RemoveTokenInput,
    RenameGroupInput,
    StoreNotLoadedError,
    TokenStore,
    TokenStoreConfig,
    UndoInput,
    UpdateTokenInput,
    ValidateTokensInput,
    build_group_tree,
    run_add,
    run_diff,
    run_export,
    run_get,
    run_list,
    run_load,
    run_move,
    run_redo,
    run_remove,
    run_rename_group,
    run_undo,
    run_update,
    run_validate,
    trim_stack,
)


def color(value: str) -> dict[str, Any]:
    return {"$type": "color", "$value": value}


def files() -> dict[str, dict[str, Any]]:
    return {
        "primitives.json": {"blue": {"500": color("#3B82F6"), "700": color("#1D4ED8")}},
        "semantic.json": {"background": {"primary": color("{blue.500}")}},
        "semantic.dark.json": {},
    }


# --- Mock Ports ---


class MemorySource:
    def __init__(self, data: dict[str, dict[str, Any]]) -> None:
        self.data = data

    def load_all(self) -> dict[str, dict[str, Any]]:
        return self.data


class BrokenSource:
    def load_all(self) -> dict[str, dict[str, Any]]:
        raise ValueError("Invalid JSON in broken.json")


class MemorySink:
    def __init__(self) -> None:
        self.written: dict[str, Any] = {}
        self.deleted: list[str] = []

    def write_all(self, data) -> list[str]:
        self.written.update(data)
        return list(data)

    def delete(self, path: str) -> None:
        self.deleted.append(path)


@pytest.fixture
def store() -> TokenStore:
    store = TokenStore(clock=FixedClock(datetime(2025, 1, 1, tzinfo=UTC)))
    store.load(files())
    return store


def resolved(store: TokenStore, path: str) -> Any:
    token = store.get_resolved_token(path)
    assert token is not None
    return token.resolved_value


# --- Store: Load ---


class TestLoad:
    def test_load_resolves_and_detects_themes(self, store: TokenStore) -> None:
        assert resolved(store, "background.primary") == "#3B82F6"
        assert store.themes == ("light", "dark")
        assert store.active_theme == "light"
        assert store.dirty_files == frozenset()
        assert not store.can_undo()

    def test_reads_before_load_raise(self) -> None:
        store = TokenStore()
        with pytest.raises(StoreNotLoadedError):
            store.list_resolved_tokens()
        with pytest.raises(StoreNotLoadedError):
            store.get_diff()

    def test_reload_clears_history(self, store: TokenStore) -> None:
        store.update_token("blue.500", "#000000")
        store.load(files())
        assert not store.can_undo()
        assert store.dirty_files == frozenset()

    def test_load_draft_keeps_baseline(self, store: TokenStore) -> None:
        draft = files()
        draft["primitives.json"]["blue"]["500"] = color("#000000")
        store.load_draft(draft)

        assert store.dirty_files == {"primitives.json"}
        assert [d.path for d in store.get_diff()] == ["blue.500"]
        assert not store.can_undo()

    def test_load_draft_without_baseline(self) -> None:
        store = TokenStore()
        store.load_draft(files())
        assert store.dirty_files == frozenset()


# --- Store: Update ---


class TestUpdate:
    def test_update_propagates_to_aliases(self, store: TokenStore) -> None:
        assert store.update_token("blue.500", "#EF4444")
        assert resolved(store, "background.primary") == "#EF4444"
        assert store.dirty_files == {"primitives.json"}

    def test_update_missing_path_is_noop(self, store: TokenStore) -> None:
        assert not store.update_token("blue.900", "#000000")
        assert not store.can_undo()

    def test_update_same_value_is_noop(self, store: TokenStore) -> None:
        assert not store.update_token("blue.500", "#3B82F6")
        assert not store.can_undo()

    def test_update_back_to_baseline_clears_dirty(self, store: TokenStore) -> None:
        store.update_token("blue.500", "#000000")
        store.update_token("blue.500", "#3B82F6")
        assert store.dirty_files == frozenset()
        assert store.undo_depth == 2

    def test_theme_update_creates_override_in_companion(self, store: TokenStore) -> None:
        assert store.update_token("background.primary", "#000000", theme="dark")

        dark = store.export_token_file("semantic.dark.json")
        assert dark == {"background": {"primary": {"$type": "color", "$value": "#000000"}}}
        assert store.get_token_value("background.primary") == "{blue.500}"
        assert store.dirty_files == {"semantic.dark.json"}

    def test_theme_update_rewrites_existing_override(self, store: TokenStore) -> None:
        store.update_token("background.primary", "#000000", theme="dark")
        store.update_token("background.primary", "#111111", theme="dark")
        assert store.get_token_value("background.primary", "dark") == "#111111"

    def test_theme_update_without_companion_is_noop(self, store: TokenStore) -> None:
        """primitives.json has no dark companion."""
        assert not store.update_token("blue.500", "#000000", theme="dark")
        assert not store.can_undo()

    def test_default_theme_update_skips_theme_files(self, store: TokenStore) -> None:
        store.update_token("background.primary", "#000000", theme="dark")
        store.update_token("background.primary", "{blue.700}", theme="light")
        assert store.get_token_value("background.primary", "light") == "{blue.700}"
        assert store.get_token_value("background.primary", "dark") == "#000000"


# --- Store: Themes ---


class TestThemes:
    def test_active_theme_changes_resolution(self, store: TokenStore) -> None:
        store.update_token("background.primary", "#000000", theme="dark")
        store.set_active_theme("dark")
        assert resolved(store, "background.primary") == "#000000"
        store.set_active_theme("light")
        assert resolved(store, "background.primary") == "#3B82F6"

    def test_theme_overrides(self, store: TokenStore) -> None:
        store.update_token("background.primary", "#000000", theme="dark")
        assert store.get_theme_overrides("background.primary") == {
            "light": "{blue.500}",
            "dark": "#000000",
        }

    def test_new_theme_file_is_detected(self, store: TokenStore) -> None:
        store.add_token("blue.500", "color", "#FFFF00", "primitives.hc.json")
        assert store.themes == ("light", "dark", "hc")

    def test_deleting_active_theme_falls_back(self, store: TokenStore) -> None:
        store.set_active_theme("dark")
        store.delete_token_file("semantic.dark.json")
        assert store.themes == ("light",)
        assert store.active_theme == "light"


# --- Store: Add / Remove / Move ---


class TestStructuralEdits:
    def test_add_creates_file_and_groups(self, store: TokenStore) -> None:
        assert store.add_token("x.y", "color", "#000000", "new.json", description="Ink")
        token = store.get_resolved_token("x.y")
        assert token is not None
        assert token.source_file == "new.json"
        assert token.description == "Ink"
        assert store.dirty_files == {"new.json"}

    def test_remove_from_every_file(self, store: TokenStore) -> None:
        store.add_token("blue.500", "color", "#000000", "extra.json")
        assert store.remove_token("blue.500")
        assert store.get_resolved_token("blue.500") is None
        assert store.undo_depth == 2

    def test_remove_leaves_alias_broken(self, store: TokenStore) -> None:
        store.remove_token("blue.500")
        assert resolved(store, "background.primary") == "{blue.500}"
        codes = [r.code for r in store.get_validation_results()]
        assert codes == ["BROKEN_REF"]

    def test_remove_missing_is_noop(self, store: TokenStore) -> None:
        assert not store.remove_token("nope")
        assert not store.can_undo()

    def test_move(self, store: TokenStore) -> None:
        store.add_token("x.y", "color", "#000000", "f.json")
        assert store.move_token("x.y", "g.json")

        assert store.export_token_file("f.json") == {"x": {}}
        assert store.get_resolved_token("x.y").source_file == "g.json"  # type: ignore[union-attr]
        assert store.undo_depth == 2

    def test_move_to_same_file_is_noop(self, store: TokenStore) -> None:
        assert not store.move_token("blue.500", "primitives.json")
        assert not store.move_token("nope", "g.json")
        assert not store.can_undo()

    def test_move_keeps_extra_fields(self) -> None:
        store = TokenStore()
        store.load({"a.json": {"t": {"$value": 1, "$type": "number", "$extensions": {"k": 1}}}})
        store.move_token("t", "b.json")
        assert store.export_token_file("b.json") == {
            "t": {"$value": 1, "$type": "number", "$extensions": {"k": 1}}
        }


# --- Store: Rename Group ---


class TestRenameGroup:
    def test_rename_moves_paths_and_rewrites_aliases(self, store: TokenStore) -> None:
        assert store.rename_group("blue", "brand")

        assert store.get_resolved_token("blue.500") is None
        assert resolved(store, "brand.500") == "#3B82F6"
        assert store.get_token_value("background.primary") == "{brand.500}"
        assert resolved(store, "background.primary") == "#3B82F6"
        assert store.export_token_file("primitives.json") == {
            "brand": {"500": color("#3B82F6"), "700": color("#1D4ED8")}
        }

    def test_rename_is_one_undo_step(self, store: TokenStore) -> None:
        store.rename_group("blue", "brand")
        assert store.undo_depth == 1
        store.undo()
        assert resolved(store, "blue.500") == "#3B82F6"
        assert store.get_token_value("background.primary") == "{blue.500}"
        assert store.dirty_files == frozenset()

    def test_rename_does_not_touch_sibling_prefixes(self) -> None:
        store = TokenStore()
        store.load(
            {
                "a.json": {
                    "blue": {"a": color("#000000")},
                    "blueish": {"a": color("#111111")},
                    "alias": color("{blueish.a}"),
                }
            }
        )
        store.rename_group("blue", "navy")
        assert store.get_resolved_token("blueish.a") is not None
        assert store.get_token_value("alias") == "{blueish.a}"

    def test_rename_missing_is_noop(self, store: TokenStore) -> None:
        assert not store.rename_group("nope", "other")
        assert not store.rename_group("blue", "blue")
        assert not store.can_undo()


# --- Store: History ---


class TestHistory:
    def test_undo_redo_symmetry(self, store: TokenStore) -> None:
        before = store.export_as_json()
        store.update_token("blue.500", "#000000")
        after = store.export_as_json()

        assert store.undo()
        assert store.export_as_json() == before
        assert store.redo()
        assert store.export_as_json() == after

    def test_new_mutation_clears_redo(self, store: TokenStore) -> None:
        store.update_token("blue.500", "#000000")
        store.undo()
        assert store.can_redo()
        store.update_token("blue.700", "#000000")
        assert not store.can_redo()

    def test_undo_on_empty_stack(self, store: TokenStore) -> None:
        assert not store.undo()
        assert not store.redo()

    def test_undo_restores_dirty_state(self, store: TokenStore) -> None:
        store.update_token("blue.500", "#000000")
        store.undo()
        assert store.dirty_files == frozenset()
        store.redo()
        assert store.dirty_files == {"primitives.json"}

    def test_undo_restores_themes(self, store: TokenStore) -> None:
        store.add_token("t", "color", "#000000", "x.hc.json")
        store.undo()
        assert store.themes == ("light", "dark")

    def test_stack_is_bounded(self) -> None:
        store = TokenStore(config=TokenStoreConfig(max_undo_stack=3))
        store.load(files())
        for i in range(5):
            store.update_token("blue.500", f"#00000{i}")
        assert store.undo_depth == 3
        while store.undo():
            pass
        assert store.get_token_value("blue.500") == "#000001"

    def test_snapshots_use_clock(self, store: TokenStore) -> None:
        store.update_token("blue.500", "#000000")
        assert store._undo_stack[-1].timestamp == datetime(2025, 1, 1, tzinfo=UTC)

    def test_trim_stack(self) -> None:
        assert trim_stack([1, 2, 3], 4, limit=3) == [2, 3, 4]
        assert trim_stack([], 1, limit=3) == [1]


# --- Store: Composite values ---


class TestCompositeValues:
    """Values handed out by reads never alias stored trees."""

    SHADOW = {"color": "#000000", "blur": "2px"}

    @pytest.fixture
    def shadow_store(self) -> TokenStore:
        store = TokenStore()
        store.load({"effects.json": {"shadow": {"sm": {"$type": "shadow", "$value": self.SHADOW}}}})
        return store

    def test_mutating_resolved_value_leaves_store_clean(self, shadow_store: TokenStore) -> None:
        token = shadow_store.get_resolved_token("shadow.sm")
        assert token is not None
        token.raw_value["blur"] = "99px"
        token.resolved_value["blur"] = "99px"

        exported = shadow_store.export_as_json()["effects.json"]
        assert exported["shadow"]["sm"]["$value"] == self.SHADOW
        assert shadow_store.get_diff() == []
        assert shadow_store.dirty_files == frozenset()

    def test_mutating_raw_lookup_leaves_store_clean(self, shadow_store: TokenStore) -> None:
        shadow_store.get_token_value("shadow.sm")["blur"] = "99px"
        assert shadow_store.get_token_value("shadow.sm") == self.SHADOW

    def test_mutating_value_does_not_corrupt_history(self, shadow_store: TokenStore) -> None:
        large = {"color": "#000000", "blur": "8px"}
        shadow_store.add_token("shadow.lg", "shadow", large, "effects.json")
        token = shadow_store.get_resolved_token("shadow.lg")
        assert token is not None
        token.raw_value["blur"] = "77px"

        assert shadow_store.undo()
        assert shadow_store.redo()
        assert shadow_store.get_token_value("shadow.lg") == large

    def test_caller_value_is_copied_on_write(self, shadow_store: TokenStore) -> None:
        value = {"color": "#FFFFFF", "blur": "4px"}
        shadow_store.update_token("shadow.sm", value)
        value["blur"] = "99px"
        assert shadow_store.get_token_value("shadow.sm") == {"color": "#FFFFFF", "blur": "4px"}


# --- Store: Reads ---


class TestReads:
    def test_category_filter(self, store: TokenStore) -> None:
        store.add_token("space.sm", "dimension", "4px", "spacing.json")
        assert [t.path for t in store.list_resolved_tokens(category="dimensions")] == ["space.sm"]

    def test_unknown_category_returns_everything(self, store: TokenStore) -> None:
        assert len(store.list_resolved_tokens(category="nope")) == 3

    def test_search_matches_path_or_value(self, store: TokenStore) -> None:
        assert [t.path for t in store.list_resolved_tokens(search="BACKGROUND")] == [
            "background.primary"
        ]
        assert [t.path for t in store.list_resolved_tokens(search="#1d4ed8")] == ["blue.700"]

    def test_group_tree(self) -> None:
        tree = build_group_tree(["a.b.c", "a.b.d", "a.e", "f"])
        assert [(n.path, n.token_count) for n in tree] == [("a", 1)]
        [a] = tree
        assert [(n.path, n.token_count) for n in a.children] == [("a.b", 2)]

    def test_rebase_clears_dirty(self, store: TokenStore) -> None:
        store.update_token("blue.500", "#000000")
        store.rebase()
        assert store.dirty_files == frozenset()
        assert store.get_diff() == []
        assert store.can_undo()


# --- Store: Files ---


class TestFileOperations:
    def test_create_file_is_not_recorded(self, store: TokenStore) -> None:
        assert store.create_token_file("new.json")
        assert not store.create_token_file("new.json")
        assert not store.can_undo()
        assert store.dirty_files == {"new.json"}

    def test_delete_file(self, store: TokenStore) -> None:
        assert store.delete_token_file("semantic.json")
        assert store.get_resolved_token("background.primary") is None
        assert store.dirty_files == {"semantic.json"}
        assert not store.delete_token_file("semantic.json")

    def test_replace_file(self, store: TokenStore) -> None:
        assert store.replace_token_file("semantic.json", {"fg": color("#FFFFFF")})
        assert store.get_resolved_token("fg") is not None
        assert not store.replace_token_file("semantic.json", {"fg": color("#FFFFFF")})


# --- Component Entry Points ---


class TestComponent:
    def test_run_load_from_source(self) -> None:
        store = TokenStore()
        result = run_load(LoadTokensInput(), store=store, source=MemorySource(files()))
        assert result.success
        assert result.file_count == 3
        assert result.token_count == 3
        assert result.themes == ("light", "dark")

    def test_run_load_without_source(self) -> None:
        result = run_load(LoadTokensInput(), store=TokenStore())
        assert not result.success
        assert result.errors[0].code == "no_source"

    def test_run_load_reports_unreadable_source(self) -> None:
        store = TokenStore()
        result = run_load(LoadTokensInput(), store=store, source=BrokenSource())
        assert result.errors[0].code == "invalid_file"
        assert "broken.json" in result.errors[0].message
        assert not store.is_loaded

    def test_run_load_rejects_token_root(self) -> None:
        result = run_load(
            LoadTokensInput(files={"bad.json": color("#000000")}), store=TokenStore()
        )
        assert result.errors[0].code == "invalid_file"

    def test_not_loaded(self) -> None:
        store = TokenStore()
        assert run_list(ListTokensInput(), store=store).errors[0].code == "not_loaded"
        assert run_validate(ValidateTokensInput(), store=store).errors[0].code == "not_loaded"
        assert run_undo(UndoInput(), store=store).errors[0].code == "not_loaded"

    def test_run_list_with_theme(self, store: TokenStore) -> None:
        result = run_list(ListTokensInput(theme="dark"), store=store)
        assert result.success
        assert result.active_theme == "dark"
        assert [g.path for g in result.groups] == ["blue", "background"]

    def test_run_list_unknown_theme(self, store: TokenStore) -> None:
        result = run_list(ListTokensInput(theme="sepia"), store=store)
        assert result.errors[0].code == "not_found"
        assert store.active_theme == "light"

    def test_run_get(self, store: TokenStore) -> None:
        result = run_get(GetTokenInput(path="background.primary"), store=store)
        assert result.token is not None
        assert result.token.reference == "blue.500"
        assert result.overrides == {"light": "{blue.500}", "dark": "{blue.500}"}

        missing = run_get(GetTokenInput(path="nope"), store=store)
        assert missing.errors[0].code == "not_found"

    def test_run_update(self, store: TokenStore) -> None:
        result = run_update(UpdateTokenInput(path="blue.500", value="#000000"), store=store)
        assert result.success
        assert result.dirty_files == ("primitives.json",)
        assert result.can_undo

    def test_run_update_codes(self, store: TokenStore) -> None:
        same = run_update(UpdateTokenInput(path="blue.500", value="#3B82F6"), store=store)
        missing = run_update(UpdateTokenInput(path="nope", value="#000000"), store=store)
        assert same.errors[0].code == "no_change"
        assert missing.errors[0].code == "not_found"

    def test_run_add_and_remove(self, store: TokenStore) -> None:
        added = run_add(
            AddTokenInput(path="x.y", type="color", value="#000000", file_path="f.json"),
            store=store,
        )
        assert added.success
        removed = run_remove(RemoveTokenInput(path="x.y"), store=store)
        assert removed.success
        again = run_remove(RemoveTokenInput(path="x.y"), store=store)
        assert again.errors[0].code == "not_found"

    def test_run_add_requires_path_and_file(self, store: TokenStore) -> None:
        result = run_add(
            AddTokenInput(path="", type="color", value="#000000", file_path="f.json"),
            store=store,
        )
        assert result.errors[0].code == "invalid"

    def test_run_move_codes(self, store: TokenStore) -> None:
        missing = run_move(MoveTokenInput(path="nope", target_file="g.json"), store=store)
        same = run_move(MoveTokenInput(path="blue.500", target_file="primitives.json"), store=store)
        assert missing.errors[0].code == "not_found"
        assert same.errors[0].code == "no_change"

    def test_run_rename_group(self, store: TokenStore) -> None:
        result = run_rename_group(RenameGroupInput(old_prefix="blue", new_prefix="brand"), store=store)
        assert result.success
        same = run_rename_group(RenameGroupInput(old_prefix="brand", new_prefix="brand"), store=store)
        assert same.errors[0].code == "no_change"

    def test_run_undo_redo(self, store: TokenStore) -> None:
        assert run_undo(UndoInput(), store=store).errors[0].code == "no_change"
        run_update(UpdateTokenInput(path="blue.500", value="#000000"), store=store)
        undone = run_undo(UndoInput(), store=store)
        assert undone.success
        assert undone.can_redo
        assert run_redo(RedoInput(), store=store).success

    def test_run_validate_and_diff(self, store: TokenStore) -> None:
        run_remove(RemoveTokenInput(path="blue.500"), store=store)

        validation = run_validate(ValidateTokensInput(), store=store)
        assert not validation.valid
        assert validation.error_count == 1

        diff = run_diff(DiffTokensInput(), store=store)
        assert [(d.path, d.type) for d in diff.entries] == [("blue.500", "removed")]
        assert diff.dirty_files == ("primitives.json",)

    def test_run_export_gate(self, store: TokenStore) -> None:
        run_remove(RemoveTokenInput(path="blue.500"), store=store)

        blocked = run_export(ExportTokensInput(), store=store)
        assert blocked.errors[0].code == "validation_failed"
        assert blocked.files == {}

        forced = run_export(ExportTokensInput(force=True), store=store)
        assert forced.success
        assert "primitives.json" in forced.files

        ungated = run_export(ExportTokensInput(), store=store, block_on_errors=False)
        assert ungated.success

    def test_run_export_to_sink_rebases(self, store: TokenStore) -> None:
        run_update(UpdateTokenInput(path="blue.500", value="#000000"), store=store)
        sink = MemorySink()

        result = run_export(ExportTokensInput(), store=store, sink=sink)

        assert result.written == ("primitives.json", "semantic.json", "semantic.dark.json")
        assert sink.written["primitives.json"]["blue"]["500"]["$value"] == "#000000"
        assert store.dirty_files == frozenset()
        assert sink.deleted == []

    def test_run_export_to_sink_deletes_removed_files(self, store: TokenStore) -> None:
        store.delete_token_file("semantic.dark.json")
        sink = MemorySink()

        result = run_export(ExportTokensInput(), store=store, sink=sink)

        assert result.success
        assert sink.deleted == ["semantic.dark.json"]
        assert "semantic.dark.json" not in sink.written
        assert store.dirty_files == frozenset()
