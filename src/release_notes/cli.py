"""Command-line entry point for the release notes service.

Usage:
    release-notes serve --port 8080
    release-notes fetch
    release-notes extract --input body.md
    cat body.md | release-notes extract
"""

from __future__ import annotations

import argparse
import json
import sys

from release_notes.config import load_config
from release_notes.logging_config import setup_logging
from release_notes.prerequisite import extract_prerequisite


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    # log_config=None keeps uvicorn on the handlers set up by setup_logging
    uvicorn.run("release_notes.main:app", host=args.host, port=args.port, log_config=None)
    return 0


def _fetch(args: argparse.Namespace) -> int:
    from release_notes.service import ReleaseNoteService

    service = ReleaseNoteService.from_config(load_config())
    # from_config already warmed the cache; a failure there shows up here
    releases = service.get_releases()
    print(json.dumps([r.model_dump(mode="json") for r in releases], indent=2))
    return 0


def _extract(args: argparse.Namespace) -> int:
    if args.input:
        with open(args.input) as f:
            body = f.read()
    elif sys.stdin.isatty():
        print("Provide --input FILE or pipe a release body via stdin.")
        return 2
    else:
        body = sys.stdin.read()

    prerequisite, message = extract_prerequisite(body)
    print(json.dumps({"prerequisite": prerequisite, "prerequisiteMessage": message}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-notes", description="Release notes cache service"
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    serve.set_defaults(func=_serve)

    fetch = sub.add_parser("fetch", help="Fetch releases from GitHub and print them")
    fetch.set_defaults(func=_fetch)

    extract = sub.add_parser("extract", help="Extract upgrade prerequisites from a body")
    extract.add_argument(
        "--input", "-i",
        type=str,
        help="Path to a file with the release body (reads stdin if omitted)",
    )
    extract.set_defaults(func=_extract)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_usage()
        return 2

    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
