import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from tokengraph.adapters.fs.token_files import TokenFileSystem
from tokengraph.components.tokens import (
    GetTokenInput,
    ListTokensInput,
    LoadTokensInput,
    TokenStore,
    ValidateTokensInput,
    create_token_store,
    run_get,
    run_list,
    run_load,
    run_validate,
)
from tokengraph.components.tokens.fc.differ import compute_diff
from tokengraph.components.tokens.fc.exporter import serialize_token_file
from tokengraph.domain.tokens import parse_files
from tokengraph.rules.loader import load_rules
from tokengraph.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

TOKENS_DIR = "tokens"
RULES_PATH = "rules.yaml"


def get_rules(path: str | None) -> Rules:
    if path is None:
        default = Path(RULES_PATH)
        return load_rules(default) if default.exists() else Rules()

    if not Path(path).exists():
        logger.error("Rules file %s not found.", path)
        sys.exit(1)
    return load_rules(Path(path))


def get_store(args: argparse.Namespace) -> tuple[TokenStore, TokenFileSystem]:
    store = create_token_store(get_rules(args.rules))
    fs = TokenFileSystem(args.tokens_dir)
    result = run_load(LoadTokensInput(), store=store, source=fs)
    if not result.success:
        for error in result.errors:
            logger.error("%s", error.message)
        sys.exit(1)
    return store, fs


def _format_value(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)


def handle_list(args: argparse.Namespace) -> None:
    store, _ = get_store(args)
    result = run_list(
        ListTokensInput(category=args.category, search=args.search, theme=args.theme),
        store=store,
    )
    if not result.success:
        for error in result.errors:
            logger.error("%s", error.message)
        sys.exit(1)

    for token in result.tokens:
        print(f"{token.path}\t{token.type}\t{_format_value(token.resolved_value)}")
    print(f"{len(result.tokens)} token(s), theme '{result.active_theme}'")


def handle_get(args: argparse.Namespace) -> None:
    store, _ = get_store(args)
    result = run_get(GetTokenInput(path=args.path), store=store)
    if result.token is None:
        logger.error("Token %s not found.", args.path)
        sys.exit(1)

    token = result.token
    print(f"path:      {token.path}")
    print(f"type:      {token.type}")
    print(f"value:     {_format_value(token.raw_value)}")
    print(f"resolved:  {_format_value(token.resolved_value)}")
    print(f"file:      {token.source_file}")
    if token.reference:
        print(f"reference: {token.reference}")
    if token.description:
        print(f"description: {token.description}")
    for theme, value in result.overrides.items():
        print(f"  [{theme}] {_format_value(value)}")


def handle_validate(args: argparse.Namespace) -> None:
    store, _ = get_store(args)
    result = run_validate(ValidateTokensInput(), store=store)

    for issue in result.results:
        print(f"{issue.severity.upper():7} {issue.code:18} {issue.path}: {issue.message}")
    print(f"{result.error_count} error(s), {result.warning_count} warning(s)")

    if not result.valid:
        sys.exit(1)


def handle_diff(args: argparse.Namespace) -> None:
    store, _ = get_store(args)
    baseline = parse_files(TokenFileSystem(args.baseline_dir).load_all())
    entries = compute_diff(baseline, store.files)

    markers = {"added": "+", "removed": "-", "modified": "~"}
    for entry in entries:
        line = f"{markers[entry.type]} {entry.path}"
        if entry.type == "modified":
            line += f": {_format_value(entry.before)} -> {_format_value(entry.after)}"
        print(line)
    print(f"{len(entries)} change(s)")


def handle_format(args: argparse.Namespace) -> None:
    fs = TokenFileSystem(args.tokens_dir)
    unformatted = []
    for path in fs.list_files():
        data = fs.load(path)
        if fs.read_text(path) != serialize_token_file(data):
            unformatted.append(path)
            if not args.check:
                fs.write(path, data)

    verb = "would reformat" if args.check else "reformatted"
    for path in unformatted:
        print(f"{verb} {path}")
    print(f"{len(unformatted)} file(s) {verb}")

    if args.check and unformatted:
        sys.exit(1)


def handle_themes(args: argparse.Namespace) -> None:
    store, _ = get_store(args)
    for theme in store.themes:
        marker = "*" if theme == store.active_theme else " "
        print(f"{marker} {theme}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Design token graph CLI")
    parser.add_argument("--tokens-dir", default=TOKENS_DIR, help="Directory of token files")
    parser.add_argument("--rules", default=None, help=f"Rules file (default: {RULES_PATH})")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    list_parser = subparsers.add_parser("list", help="List resolved tokens")
    list_parser.add_argument("--category", help="colors, typography, dimensions, shadows")
    list_parser.add_argument("--search", help="Match path or resolved value")
    list_parser.add_argument("--theme", help="Theme to resolve against")

    # get
    get_parser = subparsers.add_parser("get", help="Show one token")
    get_parser.add_argument("path", help="Dotted token path")

    # validate
    subparsers.add_parser("validate", help="Validate tokens; exit 1 on errors")

    # diff
    diff_parser = subparsers.add_parser("diff", help="Diff against another token directory")
    diff_parser.add_argument("baseline_dir", help="Directory holding the baseline files")

    # format
    format_parser = subparsers.add_parser("format", help="Rewrite files in canonical form")
    format_parser.add_argument(
        "--check", action="store_true", help="Only report files that would change"
    )

    # themes
    subparsers.add_parser("themes", help="List detected themes")

    args = parser.parse_args(argv)

    if args.command == "list":
        handle_list(args)
    elif args.command == "get":
        handle_get(args)
    elif args.command == "validate":
        handle_validate(args)
    elif args.command == "diff":
        handle_diff(args)
    elif args.command == "format":
        handle_format(args)
    elif args.command == "themes":
        handle_themes(args)


if __name__ == "__main__":
    main()
