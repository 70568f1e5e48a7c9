"""procstore CLI - operational commands for the document storage service.

Usage:
    python -m procstore locate <document_id> [--root DIR]
    python -m procstore digest <file> [--algorithm NAME]
    python -m procstore config
    python -m procstore migrate [--revision REV | --check]
    python -m procstore serve [--host HOST] [--port PORT]

Exit codes:
    0: Success
    1: Error (invalid id, unreadable file, bad configuration, ...)
       or, for migrate --check, a schema behind the head revision
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from procstore.config import ConfigError, load_settings_from_env
from procstore.storage.errors import PathTraversalError
from procstore.storage.integrity import DEFAULT_ALGORITHM, compute_digest
from procstore.storage.locator import locate


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _error(code: str, message: str) -> int:
    _output_json({"code": code, "message": message})
    return 1


def cmd_locate(args: argparse.Namespace) -> int:
    """Print the sharded content path of a document id."""
    root = args.root if args.root is not None else load_settings_from_env().folder
    try:
        path = locate(args.document_id, root)
    except PathTraversalError as e:
        return _error("INVALID_ID", str(e))
    print(path)
    return 0


def cmd_digest(args: argparse.Namespace) -> int:
    """Print the uppercase hex digest of a file."""
    try:
        with open(args.file, "rb") as f:
            digest = compute_digest(f, args.algorithm)
    except FileNotFoundError:
        return _error("FILE_NOT_FOUND", f"File not found: {args.file}")
    except ValueError as e:
        return _error("INVALID_ALGORITHM", str(e))
    except OSError as e:
        return _error("READ_EXCEPTION", f"Cannot read file: {e}")
    print(digest)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective settings."""
    _output_json(load_settings_from_env().to_dict())
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    """Upgrade the metadata database schema, or report its revision with --check."""
    from procstore.persistence.db import get_engine
    from procstore.persistence.migrate import (
        get_current_revision,
        get_head_revision,
        run_upgrade,
    )

    if args.check:
        current = get_current_revision(get_engine())
        head = get_head_revision()
        _output_json({"current": current, "head": head, "up_to_date": current == head})
        return 0 if current == head else 1

    run_upgrade(revision=args.revision)
    print(f"Database upgraded to {args.revision}", file=sys.stderr)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    import uvicorn

    from procstore.api.main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="procstore",
        description="Procurement document storage service CLI",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    locate_parser = subparsers.add_parser(
        "locate",
        help="Print the storage path of a document id",
    )
    locate_parser.add_argument("document_id", help="Document id")
    locate_parser.add_argument(
        "--root",
        default=None,
        metavar="DIR",
        help="Storage root (default: PROCSTORE_UPLOAD_FOLDER)",
    )
    locate_parser.set_defaults(handler=cmd_locate)

    digest_parser = subparsers.add_parser(
        "digest",
        help="Print the content digest of a file, as expected at registration",
    )
    digest_parser.add_argument("file", metavar="PATH", help="File to hash")
    digest_parser.add_argument(
        "--algorithm",
        default=DEFAULT_ALGORITHM,
        help=f"hashlib algorithm (default: {DEFAULT_ALGORITHM})",
    )
    digest_parser.set_defaults(handler=cmd_digest)

    config_parser = subparsers.add_parser(
        "config",
        help="Print the effective storage settings as JSON",
    )
    config_parser.set_defaults(handler=cmd_config)

    migrate_parser = subparsers.add_parser(
        "migrate",
        help="Run database migrations against PROCSTORE_DATABASE_URL",
    )
    migrate_parser.add_argument(
        "--revision",
        default="head",
        metavar="REV",
        help="Target revision (default: head)",
    )
    migrate_parser.add_argument(
        "--check",
        action="store_true",
        help="Print current and head revisions; exit 1 when behind",
    )
    migrate_parser.set_defaults(handler=cmd_migrate)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API with uvicorn",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8080, help="Bind port")
    serve_parser.set_defaults(handler=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Error
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        result: int = args.handler(args)
        return result
    except ConfigError as e:
        return _error("CONFIG_ERROR", str(e))
    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        return _error("INTERNAL_ERROR", str(e))


if __name__ == "__main__":
    sys.exit(main())
