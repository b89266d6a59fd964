#!/usr/bin/env python3
"""
ThingGate -- role-gated access to Thing records over HTTP.

Usage:
  python main.py
  python main.py --port 9000
  python main.py --host 0.0.0.0 --log-level debug
  python main.py --reload

Environment variables (see core/config.py for the full list):
  SECRET_KEY          JWT signing key, at least 32 characters. Required unless DEBUG=true.
  DEBUG               "true" auto-generates SECRET_KEY for local development.
  DATABASE_URL        SQLAlchemy URL for the Thing table.
  IDENTITY_USERNAME   Username of the single configured principal (default "user").
  IDENTITY_PASSWORD   Its password (default "password").
  IDENTITY_ROLES      JSON list of its roles (default ["USER"]).
"""

import argparse

import uvicorn


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thinggate",
        description="Serve the ThingGate API.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn log level (default: info)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    # Import string rather than the app object so --reload works.
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload, log_level=args.log_level)


if __name__ == "__main__":
    main()
