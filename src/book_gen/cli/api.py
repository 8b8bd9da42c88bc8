"""CLI entrypoint for serving the book_gen HTTP API."""

from __future__ import annotations

import argparse
import os

import uvicorn

from book_gen.adapters.observability import configure_runtime_logging


def build_arg_parser() -> argparse.ArgumentParser:
    """Create CLI args for the local API server process."""
    parser = argparse.ArgumentParser(description="Serve the book_gen API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument(
        "--db-path",
        default="",
        help="SQLite path for book persistence (default: work/local/book_gen.db).",
    )
    parser.add_argument(
        "--asset-db-path",
        default="",
        help="SQLite path for image assets (default: the book database).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI flags and start uvicorn with the app module path."""
    configure_runtime_logging()
    parser = build_arg_parser()
    parsed = parser.parse_args(argv)
    db_path = str(parsed.db_path).strip()
    if db_path:
        os.environ["BOOK_GEN_DB_PATH"] = db_path
    asset_db_path = str(parsed.asset_db_path).strip()
    if asset_db_path:
        os.environ["BOOK_GEN_ASSET_DB_PATH"] = asset_db_path
    uvicorn.run(
        "book_gen.api.app:app",
        host=str(parsed.host),
        port=int(parsed.port),
        reload=bool(parsed.reload),
    )


if __name__ == "__main__":
    main()
