"""Launch the carevoice backend."""

from __future__ import annotations

import argparse

import uvicorn


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="carevoice", description=__doc__)
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for the service.")
    parser.add_argument("--port", type=int, default=8000, help="Port to expose.")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (only for local development).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    uvicorn.run(
        "carevoice.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
