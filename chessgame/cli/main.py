from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn

from ..protocol.uci.loop import run_uci


APP_FACTORY = "chessgame.protocol.http.app:create_app"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chessgame", description="Chess rules engine and AI")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("uci", help="Speak UCI on stdin/stdout")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))
    if args.command == "uci":
        run_uci()
        return
    host = getattr(args, "host", "127.0.0.1")
    port = getattr(args, "port", 8000)
    uvicorn.run(
        APP_FACTORY, factory=True, host=host, port=port, log_level=args.log_level.lower()
    )


if __name__ == "__main__":
    main()
