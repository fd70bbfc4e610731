# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""wwwdude CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from ..client import create_client
from ..config import ClientSettings, load_client_settings
from ..errors import WwwdudeError, error_category_to_reason
from ..events import Event, EventKind
from ..http.models import METHODS
from ..http.transport import Transport
from ..log import setup_logging
from ..parsers import PARSERS

CLI_TEXT_TRUNCATION_BYTES = 4096


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="wwwdude HTTP client: issue one request and print its events")
    parser.add_argument("url", help="Absolute target URL")
    parser.add_argument("-X", "--method", default="GET", type=str.upper, choices=sorted(METHODS), help="HTTP method")
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="NAME: VALUE",
        help="Request header (repeatable)",
    )
    parser.add_argument("-d", "--data", default=None, help="Request payload")
    parser.add_argument("--timeout", type=float, default=None, help="Per-hop timeout in seconds")
    parser.add_argument("--no-follow", action="store_true", help="Do not follow 301/302/303 redirects")
    parser.add_argument("--max-redirects", type=int, default=None, help="Maximum number of redirects to follow")
    parser.add_argument("--parser", choices=sorted(PARSERS), default=None, help="Parse the body before dispatch")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of human-friendly summary")
    parser.add_argument("--log-level", default=None, help="Logging level (default from WWWDUDE_LOG_LEVEL)")
    return parser


def parse_header_args(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header {raw!r}; expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max_bytes - len(suffix.encode("utf-8"))
    if keep <= 0:
        return suffix[:max_bytes]
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def _describe_payload(payload: Any) -> Any:
    if isinstance(payload, bytes):
        return _truncate_text_bytes(payload.decode("utf-8", errors="replace"), CLI_TEXT_TRUNCATION_BYTES)
    if isinstance(payload, str):
        return _truncate_text_bytes(payload, CLI_TEXT_TRUNCATION_BYTES)
    if isinstance(payload, (dict, list, int, float, bool)) or payload is None:
        return payload
    return repr(payload)


def summarize(events: list[Event]) -> dict[str, Any]:
    """JSON-friendly summary of a finished request."""
    terminal = events[-1] if events else None
    summary: dict[str, Any] = {"events": [event.name for event in events]}
    if terminal is None:
        return summary
    if terminal.kind is EventKind.ERROR:
        exc = terminal.payload
        category = getattr(exc, "category", None)
        summary["error"] = {
            "type": type(exc).__name__,
            "message": str(exc),
            "category": category.value if category is not None else None,
            "reason": error_category_to_reason(category),
        }
        return summary
    response = terminal.response
    if response is not None:
        summary["status_code"] = response.status_code
        summary["url"] = response.url
        summary["headers"] = response.headers
        summary["body"] = _describe_payload(response.payload)
        summary["redirects"] = response.chain.urls if response.chain is not None else []
        if response.meta:
            summary["meta"] = response.meta
    return summary


async def run(args: argparse.Namespace, *, settings: ClientSettings | None = None, transport: Transport | None = None) -> list[Event]:
    events: list[Event] = []
    async with create_client(
        timeout=args.timeout,
        follow_redirect=False if args.no_follow else None,
        max_redirects=args.max_redirects,
        content_parser=PARSERS[args.parser] if args.parser else None,
        settings=settings,
        transport=transport,
    ) as client:
        handle = client.request(args.method, args.url, headers=parse_header_args(args.header), payload=args.data)
        handle.on_any(events.append)
        if not args.json:
            handle.on_any(lambda event: print(f"event: {event.name}"))
        await handle
    return events


def exit_code(events: list[Event]) -> int:
    if not events:
        return 1
    terminal = events[-1]
    if terminal.kind is EventKind.ERROR or terminal.response is None:
        return 1
    return 0 if terminal.response.status_code < 400 else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        parse_header_args(args.header)
    except ValueError as exc:
        parser.error(str(exc))

    settings = load_client_settings()
    try:
        events = asyncio.run(run(args, settings=settings))
    except (ValueError, WwwdudeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    summary = summarize(events)
    if args.json:
        json.dump(summary, sys.stdout, indent=2, sort_keys=True, default=str)
        sys.stdout.write("\n")
    elif "error" in summary:
        print(f"Error: {summary['error']['message']} ({summary['error']['reason']})")
    else:
        print(f"Status: {summary.get('status_code')} {summary.get('url')}")
        if summary.get("redirects") and len(summary["redirects"]) > 1:
            print(f"Redirects: {' -> '.join(summary['redirects'])}")
        body = summary.get("body")
        if body not in (None, ""):
            print(body if isinstance(body, str) else json.dumps(body, indent=2, default=str))

    return exit_code(events)


if __name__ == "__main__":
    raise SystemExit(main())
