"""
auth/bootstrap.py -- First-run creation of the administrative account.

ensure_admin() runs once, before the service accepts any call, and
guarantees that an active "admin" record exists. When it does not, the
operator is asked for the password twice on the terminal; a mismatch, a weak
password or a store failure aborts with BootstrapError before anything is
written. The sequencer never retries and never exits the process itself:
main.py is the only place that turns BootstrapError into an exit status.

masked_terminal() is the scoped terminal resource used for those two reads.
Echo is switched off on entry and the saved terminal attributes are restored
on every exit path, including the error aborts. When the input is not a TTY
(piped stdin, tests) it reads lines without touching terminal settings.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import sys
import termios
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TextIO

from auth import passwords
from auth.directory import AccountDirectory
from auth.errors import AlreadyExistsError, BootstrapError, NotFoundError, StoreError, WeakPasswordError
from auth.models import AuthType, User

logger = logging.getLogger("drlm.bootstrap")

ADMIN_USERNAME = "admin"

PasswordReader = Callable[[str], str]


@contextmanager
def masked_terminal(stdin: TextIO | None = None, stdout: TextIO | None = None) -> Iterator[PasswordReader]:
    """Yield a read(prompt) function that reads one line with echo disabled."""
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    fd: int | None = None
    saved = None
    if stdin.isatty():
        fd = stdin.fileno()
        saved = termios.tcgetattr(fd)
        masked = termios.tcgetattr(fd)
        masked[3] &= ~termios.ECHO  # lflags
        termios.tcsetattr(fd, termios.TCSAFLUSH, masked)

    def read(prompt: str) -> str:
        stdout.write(prompt)
        stdout.flush()
        line = stdin.readline()
        # The user's newline was not echoed.
        stdout.write("\n")
        stdout.flush()
        if not line:
            raise EOFError("no password was entered")
        return line.rstrip("\r\n")

    try:
        yield read
    finally:
        if saved is not None:
            termios.tcsetattr(fd, termios.TCSAFLUSH, saved)


def ensure_admin(
    directory: AccountDirectory,
    read_password: PasswordReader,
    rounds: int = passwords.DEFAULT_ROUNDS,
) -> User:
    """Return the active admin record, creating it interactively if missing.

    Raises BootstrapError on any failure. Nothing is written unless both
    password reads match and the password passes the strength policy.
    """
    try:
        return directory.find_by_username(ADMIN_USERNAME)
    except NotFoundError:
        pass
    except StoreError as exc:
        raise BootstrapError(f"error creating the admin user: {exc}") from exc

    logger.info("No %r account found, creating it", ADMIN_USERNAME)
    try:
        first = read_password("Please, set the admin password: ")
        second = read_password("Please, repeat admin password: ")
    except (OSError, EOFError) as exc:
        raise BootstrapError(f"error creating the admin user: error reading the password: {exc}") from exc

    if first != second:
        raise BootstrapError("error creating the admin user: passwords don't match")

    password = first.strip()
    try:
        passwords.check_strength(password)
        user = directory.create(
            ADMIN_USERNAME,
            passwords.hash_password(password, rounds=rounds),
            AuthType.local,
        )
    except (WeakPasswordError, AlreadyExistsError, StoreError) as exc:
        raise BootstrapError(f"error creating the admin user: {exc}") from exc

    logger.info("Created the %r account", ADMIN_USERNAME)
    return user
