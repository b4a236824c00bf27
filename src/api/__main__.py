#!/usr/bin/env python3
"""
Serve the cron trigger endpoint.

Usage:
    uv run -m src.api
    uv run -m src.api --host 0.0.0.0 --port 8080
"""

import argparse
import sys

import uvicorn

from src.config.settings import Settings
from src.scheduler import build_scheduler

from .app import create_app


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve GET /api/cron/{password}")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    return parser.parse_args()


def main():
    args = parse_arguments()
    settings = Settings.from_env()
    try:
        scheduler = build_scheduler(settings)
    except ValueError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(create_app(scheduler, settings), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
