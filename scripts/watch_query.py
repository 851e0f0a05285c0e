#!/usr/bin/env python3
"""Run one paginated query cycle against a live JSON endpoint.

Prints every state transition the manager goes through, so the two-phase
flow (LOADING -> LOADED -> HYDRATING -> HYDRATED) can be checked against a
real server.

Usage
-----
::

    python scripts/watch_query.py https://example.com/api/projects \\
        --page 1 --page-size 30 --hydrate-include task_number,total_annotations_number

Options::

    --page N                 Page to fetch first (default: 1)
    --page-size N            Page size (default: 30)
    --next                   Also fetch the following page
    --hydrate-include FIELDS Hydrate the page with these fields, using the
                             ids returned by the primary fetch
    --header 'Name: value'   Extra request header (repeatable)
    --verbose                Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from querycycle import HttpTransport, QueryConfig, QueryManager, QuerySnapshot  # noqa: E402


def _discover_ids(payload: Any) -> dict[str, Any] | None:
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        return None
    return {"ids": [row["id"] for row in results if isinstance(row, dict) and "id" in row]}


def _print_snapshot(snapshot: QuerySnapshot) -> None:
    line = f"[{snapshot.status.value:>9}]"
    if snapshot.error:
        line += f" error={snapshot.error}"
    elif isinstance(snapshot.data, dict) and "count" in snapshot.data:
        line += f" count={snapshot.data['count']} rows={len(snapshot.data.get('results') or [])}"
    print(line)


def _parse_headers(raw: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in raw:
        name, sep, value = item.partition(":")
        if not sep:
            raise SystemExit(f"Invalid header (expected 'Name: value'): {item!r}")
        headers[name.strip()] = value.strip()
    return headers


async def run(args: argparse.Namespace) -> int:
    config = QueryConfig.from_env()
    options: dict[str, Any] = {"query": {"page": args.page, "page_size": args.page_size}}
    hydrate_params: dict[str, Any] = {}
    if args.hydrate_include:
        options["hydrate"] = {}
        hydrate_params["include"] = args.hydrate_include

    async with aiohttp.ClientSession(headers=_parse_headers(args.header)) as http:
        transport = HttpTransport(
            http,
            args.url,
            config=config,
            hydrate_params=hydrate_params,
            discover_hydration=_discover_ids if args.hydrate_include else None,
        )
        async with QueryManager(transport, options, config=config, on_change=_print_snapshot) as manager:
            if args.next and not manager.snapshot.error:
                await manager.request({"query": {"page": args.page + 1}})

            snapshot = manager.snapshot
            if args.json:
                print(json.dumps(snapshot.data, indent=2, default=str))
            return 1 if snapshot.error else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a two-phase query cycle against a JSON endpoint.")
    parser.add_argument("url", help="Endpoint URL")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--page-size", type=int, default=30)
    parser.add_argument("--next", action="store_true", help="Also fetch the following page")
    parser.add_argument("--hydrate-include", help="Comma-separated fields to hydrate")
    parser.add_argument("--header", action="append", default=[], help="Extra header 'Name: value'")
    parser.add_argument("--json", action="store_true", help="Print the final data as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
