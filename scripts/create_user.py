"""CLI script to create an account or reset its password."""
from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from podsync.backend import Backend
from podsync.backend.files import FileBackend
from podsync.backend.sql import SqlBackend
from podsync.config import settings
from podsync.core.security import get_password_hash
from podsync.db.session import SessionLocal, init_db


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Create a PodSync account, or reset the password of an existing one",
    )
    parser.add_argument("username", help="Account name used in API paths")
    parser.add_argument(
        "--password",
        help="Password (prompted for when omitted)",
    )
    args = parser.parse_args()

    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    if not password:
        parser.error("password must not be empty")

    password_hash = get_password_hash(password)

    if settings.BACKEND == "file":
        backend: Backend = FileBackend(settings.DATA_DIR)
        backend.create_account(args.username, password_hash)
    else:
        init_db()
        db = SessionLocal()
        try:
            SqlBackend(db).create_account(args.username, password_hash)
        finally:
            db.close()

    print(f"Account {args.username} ready ({settings.BACKEND} backend)")


if __name__ == "__main__":
    main()
