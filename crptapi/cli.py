"""Command line front end: submit a document from a JSON file, or check that
the certificate exchange issues a token.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .config import REQUEST_LIMIT, WINDOW_SECONDS
from .errors import CrptApiError


def app(argv: list[str] | None = None) -> None:
    """Console script entrypoint."""
    raise SystemExit(main(argv))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="crptapi",
        description="Submit introduce-goods documents to the CRPT API within its call quota.",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"crptapi {__version__}",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_submit = sub.add_parser("submit", help="Submit an introduce-goods document")
    p_submit.add_argument("--document", "-d", type=Path, required=True, help="Document JSON file")
    p_submit.add_argument("--signature", "-s", type=Path, required=True, help="File holding the signature")
    p_submit.add_argument("--product-group", "-g", help="Product group (e.g. shoes, milk)")
    p_submit.add_argument("--limit", type=int, default=REQUEST_LIMIT, help="Calls allowed per window")
    p_submit.add_argument("--window", type=float, default=WINDOW_SECONDS, help="Window length in seconds")

    p_auth = sub.add_parser("auth", help="Run the signing exchange and show the token expiry")
    p_auth.add_argument("--signature", "-s", type=Path, required=True, help="File holding the signature")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "submit":
        return _cmd_submit(args)
    if args.cmd == "auth":
        return _cmd_auth(args)

    parser.print_help()
    return 2


def _read_signature(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip()


def _cmd_submit(args: Any) -> int:
    from .api.client import CrptApiClient
    from .documents.models import IntroduceGoodsDocument

    try:
        raw = json.loads(args.document.read_text(encoding="utf-8"))
        document = IntroduceGoodsDocument.model_validate(raw)
        signature = _read_signature(args.signature)
    except (OSError, ValueError, PydanticValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async def _run() -> int:
        try:
            async with CrptApiClient(args.limit, args.window) as client:
                result = await client.submit(document, signature, product_group=args.product_group)
        except CrptApiError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        print("✓ Document created")
        print(f"  Id: {result.value}")
        return 0

    return asyncio.run(_run())


def _cmd_auth(args: Any) -> int:
    from .api.token import TokenCache
    from .api.transport import Transport

    try:
        signature = _read_signature(args.signature)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async def _run() -> int:
        tokens = TokenCache(Transport())
        try:
            await tokens.get_auth_header(signature)
        except CrptApiError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        print("✓ Token issued")
        print(f"  Expires: {tokens.credential.expires_at.isoformat()}")
        return 0

    return asyncio.run(_run())


if __name__ == "__main__":
    app()
