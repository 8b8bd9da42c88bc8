"""CLI for validating, exporting, importing, and migrating characters in the local library."""

from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path

from book_gen.adapters.observability import configure_runtime_logging
from book_gen.adapters.sqlite_asset_store import SQLiteAssetStore
from book_gen.adapters.sqlite_book_store import SQLiteBookStore
from book_gen.application.character_migration import CharacterMigrationService, MigrationResult
from book_gen.application.library import BookLibrary
from book_gen.core.exchange_codec import load_exchange_json, save_exchange_json
from book_gen.domain.errors import BookGenError

DEFAULT_DB_PATH = "work/local/book_gen.db"


def build_arg_parser() -> argparse.ArgumentParser:
    """Define the library subcommands."""
    parser = argparse.ArgumentParser(description="Manage books in the local book_gen library.")
    parser.add_argument(
        "--db-path",
        default="",
        help=f"SQLite path for book persistence (default: $BOOK_GEN_DB_PATH or {DEFAULT_DB_PATH}).",
    )
    parser.add_argument(
        "--asset-db-path",
        default="",
        help="SQLite path for image assets (default: $BOOK_GEN_ASSET_DB_PATH or the book database).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    validate = commands.add_parser("validate", help="Report validation errors and warnings.")
    validate.add_argument("book_id")

    export = commands.add_parser("export", help="Write a book as a portable exchange document.")
    export.add_argument("book_id")
    export.add_argument("--output", required=True, help="Path to write exchange JSON.")
    export.add_argument("--include-image-history", action="store_true")

    import_ = commands.add_parser("import", help="Create a new book from an exchange document.")
    import_.add_argument("--input", required=True, help="Path to exchange JSON.")

    promote = commands.add_parser("promote", help="Move a story character to the book cast.")
    promote.add_argument("book_id")
    promote.add_argument("story_id")
    promote.add_argument("character_name")

    demote = commands.add_parser("demote", help="Move a book character into one story.")
    demote.add_argument("book_id")
    demote.add_argument("character_name")
    demote.add_argument("--target-story-id", default="")
    return parser


def _db_paths(parsed: argparse.Namespace) -> tuple[Path, Path]:
    db_path = (
        str(parsed.db_path).strip()
        or os.environ.get("BOOK_GEN_DB_PATH", "").strip()
        or DEFAULT_DB_PATH
    )
    asset_db_path = (
        str(parsed.asset_db_path).strip()
        or os.environ.get("BOOK_GEN_ASSET_DB_PATH", "").strip()
        or db_path
    )
    return Path(db_path), Path(asset_db_path)


def _print_migration(result: MigrationResult) -> None:
    if not result.success:
        code = result.error_code.value if result.error_code else "Error"
        lines = [f"{code}: {result.message}"]
        lines.extend(
            f"  - {usage.title} ({usage.id}): {usage.scene_count} scene(s)"
            for usage in result.stories_using
        )
        raise SystemExit("\n".join(lines))
    print(
        f"Moved {result.character_name}: {result.source_scope} -> {result.target_scope} "
        f"({result.assets_migrated} asset(s))"
    )
    for failure in result.asset_failures:
        print(f"  asset {failure.asset_id} {failure.operation} failed: {failure.message}")


def main(argv: list[str] | None = None) -> None:
    """Run one library subcommand against the SQLite stores."""
    configure_runtime_logging()
    parser = build_arg_parser()
    parsed = parser.parse_args(argv)
    db_path, asset_db_path = _db_paths(parsed)
    book_store = SQLiteBookStore(db_path=db_path)
    library = BookLibrary(book_store)

    try:
        if parsed.command == "validate":
            result = library.validate(str(parsed.book_id))
            for warning in result.warnings:
                print(f"warning: {warning}")
            for error in result.errors:
                print(f"error: {error}")
            if not result.is_valid:
                raise SystemExit(f"Book {parsed.book_id} has {len(result.errors)} error(s).")
            print(f"Book {parsed.book_id} is valid.")
        elif parsed.command == "export":
            output_path = Path(str(parsed.output))
            payload = library.export_book(
                str(parsed.book_id),
                include_image_history=bool(parsed.include_image_history),
            )
            save_exchange_json(output_path, payload)
            print(f"Wrote exchange JSON: {output_path}")
        elif parsed.command == "import":
            book = library.import_book(load_exchange_json(Path(str(parsed.input))))
            print(f"Imported book {book.id}: {book.title}")
        else:
            service = CharacterMigrationService(book_store, SQLiteAssetStore(db_path=asset_db_path))
            if parsed.command == "promote":
                outcome = asyncio.run(
                    service.promote(
                        str(parsed.book_id), str(parsed.story_id), str(parsed.character_name)
                    )
                )
            else:
                outcome = asyncio.run(
                    service.demote(
                        str(parsed.book_id),
                        str(parsed.character_name),
                        str(parsed.target_story_id).strip() or None,
                    )
                )
            _print_migration(outcome)
    except BookGenError as exc:
        raise SystemExit(f"{exc.code.value}: {exc}") from exc


if __name__ == "__main__":
    main()
