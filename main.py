"""CLI entrypoint: ingest notes, run a first scan, auto-create artefacts, serve the API."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict

from utils.exceptions import MemoryMuseError
from utils.logger import configure_package_logging


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _read_json(path: str) -> Dict[str, Any]:
    raw = _read_text(path).strip()
    if not raw:
        return {}
    return json.loads(raw)


def _print(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


async def _first_scan(args: argparse.Namespace) -> Dict[str, Any]:
    from muse import split_notes
    from webapp.runtime import get_synthesis_service

    records = split_notes(_read_text(args.file), split=not args.whole)
    result = await get_synthesis_service().first_scan(records, args.muse, args.budget, user_id=args.user_id)
    payload = result.to_response()
    if args.out:
        Path(args.out).write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return payload


async def _auto_create(args: argparse.Namespace) -> Dict[str, Any]:
    from muse import coerce_synthesis
    from webapp.runtime import get_orchestrator

    scan = _read_json(args.scan)
    synthesis = coerce_synthesis(scan.get("result", scan))
    source_text = _read_text(args.file) if args.file else ""
    result = await get_orchestrator().auto_create(
        synthesis,
        args.muse or scan.get("museType"),
        source_text,
        user_id=args.user_id,
    )
    return result.to_response()


def main() -> None:
    parser = argparse.ArgumentParser(description="Memory Muse CLI")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="split a notes file into memory records")
    ingest.add_argument("--file", required=True)
    ingest.add_argument("--whole", action="store_true", help="treat the file as one memory")

    scan = sub.add_parser("first-scan", help="run a first scan over a notes file")
    scan.add_argument("--file", required=True)
    scan.add_argument("--muse", default="synthesis")
    scan.add_argument("--budget", type=int, default=None)
    scan.add_argument("--whole", action="store_true")
    scan.add_argument("--user-id", default="local")
    scan.add_argument("--out", default="")

    create = sub.add_parser("auto-create", help="derive artefacts from a saved first scan")
    create.add_argument("--scan", required=True, help="JSON written by first-scan --out")
    create.add_argument("--file", default="", help="source notes used for the image fallback")
    create.add_argument("--muse", default="")
    create.add_argument("--user-id", default="local")

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    configure_package_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("webapp.app:app", host=args.host, port=args.port)
        return

    try:
        if args.command == "ingest":
            from muse import split_notes

            records = split_notes(_read_text(args.file), split=not args.whole)
            _print([record.model_dump(mode="json", by_alias=True) for record in records])
            return

        if args.command == "first-scan":
            _print(asyncio.run(_first_scan(args)))
            return

        if args.command == "auto-create":
            _print(asyncio.run(_auto_create(args)))
            return
    except MemoryMuseError as exc:
        _print({"error": exc.message, "status": exc.status_code})
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
