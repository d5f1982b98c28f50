"""Command line entrypoint: manage the stored key, run queries, serve the proxy."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from av_dashboard.config import get_settings
from av_dashboard.core.logging import setup_logging
from av_dashboard.providers.alpha_vantage import stored_key_client
from av_dashboard.storage.key_store import KeyStore, build_key_store


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 4)}"


def parse_params(pairs: Sequence[str]) -> dict[str, str]:
    """Turn ``name=value`` arguments into a parameter mapping."""

    params: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise argparse.ArgumentTypeError(f"Expected name=value, got {pair!r}")
        params[name] = value
    return params


def _store() -> KeyStore:
    # Each command is its own process, so only the file store outlives it
    return build_key_store(get_settings(), persistent=True)


def _key_command(args: argparse.Namespace) -> int:
    store = _store()
    if args.action == "set":
        if not store.set(args.value):
            print("Could not save API key", file=sys.stderr)
            return 1
        print("API key saved")
        return 0
    if args.action == "clear":
        if not store.clear():
            print("Could not clear API key", file=sys.stderr)
            return 1
        print("API key cleared")
        return 0
    current = store.get()
    print(_mask(current) if current else "No API key stored")
    return 0


async def _run_query(store: KeyStore, function: str, params: dict[str, str]) -> dict:
    settings = get_settings()
    client = stored_key_client(
        store,
        base_url=settings.alpha_vantage_base_url,
        timeout=settings.alpha_vantage_timeout_seconds,
    )
    result = await client.call(function, params)
    return result.to_dict()


def _query_command(args: argparse.Namespace) -> int:
    try:
        params = parse_params(args.params)
    except argparse.ArgumentTypeError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    if args.apikey:
        params["apikey"] = args.apikey
    result = asyncio.run(_run_query(_store(), args.function, params))
    print(json.dumps(result, indent=2))
    return 0 if result["ok"] else 1


def _serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("av_dashboard.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="av-dashboard", description="Alpha Vantage dashboard proxy")
    sub = parser.add_subparsers(dest="command", required=True)

    key = sub.add_parser("key", help="Manage the stored API key")
    key_sub = key.add_subparsers(dest="action", required=True)
    key_set = key_sub.add_parser("set")
    key_set.add_argument("value")
    key_sub.add_parser("clear")
    key_sub.add_parser("show")
    key.set_defaults(handler=_key_command)

    query = sub.add_parser("query", help="Call an Alpha Vantage function with the stored key")
    query.add_argument("function")
    query.add_argument("params", nargs="*", metavar="name=value")
    query.add_argument("--apikey", default=None, help="Override the stored key")
    query.set_defaults(handler=_query_command)

    serve = sub.add_parser("serve", help="Run the HTTP proxy")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(handler=_serve_command)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # stdout carries command output
    setup_logging(get_settings().log_level, stream=sys.stderr)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
