#!/usr/bin/env python3
"""
drlm-auth -- Session tokens and account management service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py bootstrap

Environment variables (see core/config.py for the full list):
  SECRET_KEY              Token signing secret, at least 32 characters. Required
                          unless DEBUG=true.
  TOKEN_LIFESPAN_SECONDS  Lifespan of every issued or renewed token (default 3600).
  DATABASE_URL            SQLAlchemy URL of the user store (default sqlite:///drlm_auth.db).

On first run there is no "admin" account yet: both commands ask for its
password on the terminal (twice) before doing anything else. If the admin
account cannot be created the process exits with status 1 and the server is
never started.

This module is the only place that terminates the process.
"""

import argparse
import logging
import sys

from pydantic import ValidationError

from api.main import create_app
from auth.bootstrap import ensure_admin, masked_terminal
from auth.directory import AccountDirectory
from auth.errors import BootstrapError
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings

logger = logging.getLogger("drlm")


def _bootstrap(settings: Settings, store: UserStore) -> AccountDirectory:
    """Guarantee the admin account exists. Exits the process on failure."""
    directory = AccountDirectory(store)
    try:
        with masked_terminal() as read_password:
            ensure_admin(directory, read_password, rounds=settings.bcrypt_rounds)
    except BootstrapError as exc:
        logger.critical("%s", exc)
        store.close()
        sys.exit(1)
    return directory


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="drlm-auth",
        description="Session tokens and account management service.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    serve = subcommands.add_parser("serve", help="Ensure the admin account exists, then start the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT or 8000)")

    subcommands.add_parser("bootstrap", help="Only ensure the admin account exists")

    args = parser.parse_args()

    try:
        settings = get_settings()
    except ValidationError as exc:
        print(f"  [!] Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    store = UserStore(db_url=settings.database_url)
    directory = _bootstrap(settings, store)

    if args.command == "bootstrap":
        store.close()
        return

    service = AuthService(
        directory=directory,
        tokens=TokenService(secret=settings.secret_key, lifespan=settings.token_lifespan),
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    app = create_app(service, store)

    import uvicorn

    uvicorn.run(app, host=args.host or settings.host, port=args.port or settings.port)


if __name__ == "__main__":
    main()
