"""Run the PodSync server."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from loguru import logger

from podsync import __version__


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="podsync", description="gpodder-compatible sync server")
    parser.add_argument("-s", "--secure", action="store_true", help="Send the session cookie only over HTTPS")
    parser.add_argument("-l", "--local", action="store_true", help="Listen on 127.0.0.1 only")
    parser.add_argument("-p", "--port", type=int, default=None, help="Port to listen on (default 80)")
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding pod.sql or the flat files")
    parser.add_argument("--backend", choices=("sql", "file"), default=None, help="Storage backend")
    parser.add_argument("--version", action="store_true", help="Print the version and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.version:
        print(f"PodSync {__version__}")
        return 0

    # Settings are read at import time, so flags are applied through the environment first
    if args.secure:
        os.environ["PODSYNC_SECURE_COOKIES"] = "true"
    if args.local:
        os.environ["PODSYNC_LOCAL_ONLY"] = "true"
    if args.port is not None:
        os.environ["PODSYNC_PORT"] = str(args.port)
    if args.backend is not None:
        os.environ["PODSYNC_BACKEND"] = args.backend
    if args.data_dir is not None:
        data_dir = args.data_dir.resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        os.environ["PODSYNC_DATA_DIR"] = str(data_dir)
        os.environ.setdefault("PODSYNC_DATABASE_URL", f"sqlite:///{data_dir / 'pod.sql'}")

    import uvicorn

    from podsync.config import settings
    from podsync.db.session import init_db

    if settings.BACKEND == "sql":
        init_db()
    else:
        (settings.DATA_DIR / "users").mkdir(parents=True, exist_ok=True)
        logger.info(f"Using flat files under {settings.DATA_DIR.resolve()}")

    from podsync.main import app

    uvicorn.run(app, host=settings.bind_host, port=settings.PORT)
    return 0


if __name__ == "__main__":
    sys.exit(main())
