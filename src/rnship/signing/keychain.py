"""Ephemeral keychain for iOS code signing.

The user keychain search list is host-wide mutable state, so every
:class:`EphemeralKeychain` holds a lock from the moment it touches the
search list until the list has been restored. Within one process this
serializes iOS builds; separate processes must not build iOS concurrently.

Usage::

    async with EphemeralKeychain(runner, certificate, password) as keychain:
        await run_xcodebuild(...)
    # search list restored and keychain deleted, even if xcodebuild raised
"""

from __future__ import annotations

import asyncio
import os
import secrets
import time
import weakref
from pathlib import Path
from types import TracebackType

import structlog

from rnship.core.constants import KEYCHAIN_PARTITION_LIST, KEYCHAIN_TRUSTED_APPS
from rnship.core.exceptions import CommandError, SigningError
from rnship.utils.process import ProcessRunner

logger = structlog.get_logger(__name__)

_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = (
    weakref.WeakKeyDictionary()
)


def search_list_lock() -> asyncio.Lock:
    """The keychain search-list lock for the running event loop."""
    loop = asyncio.get_running_loop()
    lock = _locks.get(loop)
    if lock is None:
        lock = asyncio.Lock()
        _locks[loop] = lock
    return lock


def new_keychain_name() -> str:
    return f"rnship-{time.time_ns()}-{os.getpid()}.keychain"


def parse_keychain_list(output: str) -> list[str]:
    """``security list-keychains`` prints one quoted path per line."""
    keychains = []
    for line in output.splitlines():
        entry = line.strip().strip('"').strip()
        if entry:
            keychains.append(entry)
    return keychains


class EphemeralKeychain:
    """Creates an isolated keychain, imports the certificate, and removes it on exit.

    Args:
        runner: Executes the ``security`` tool.
        certificate: Path to the ``.p12`` signing certificate.
        certificate_password: Password protecting *certificate*.
        timeout: Auto-lock timeout in seconds; the keychain locks itself
            after this even if cleanup never runs.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        certificate: Path,
        certificate_password: str,
        timeout: int = 3600,
        name: str | None = None,
    ) -> None:
        self._runner = runner
        self.certificate = certificate
        self._certificate_password = certificate_password
        self.timeout = timeout
        self.name = name or new_keychain_name()
        self._password = secrets.token_urlsafe(24)
        self.previous_search_list: list[str] | None = None
        self._created = False
        self._lock: asyncio.Lock | None = None

    @property
    def active(self) -> bool:
        return self._created

    async def __aenter__(self) -> EphemeralKeychain:
        self._lock = search_list_lock()
        await self._lock.acquire()
        try:
            await self._setup()
        except BaseException:
            await self._teardown()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        errors = await self._teardown()
        if errors and exc_type is None:
            raise SigningError("keychain cleanup failed", errors=errors)

    async def _security(self, *args: str) -> str:
        result = await self._runner.run(["security", *args], log=False)
        return result.stdout

    async def _setup(self) -> None:
        name = self.name
        await self._security("create-keychain", "-p", self._password, name)
        self._created = True
        await self._security("unlock-keychain", "-p", self._password, name)
        await self._security("set-keychain-settings", "-t", str(self.timeout), name)

        self.previous_search_list = parse_keychain_list(
            await self._security("list-keychains", "-d", "user")
        )
        await self._security(
            "list-keychains", "-d", "user", "-s", name, *self.previous_search_list
        )

        trusted: list[str] = []
        for app in KEYCHAIN_TRUSTED_APPS:
            trusted += ["-T", app]
        await self._security(
            "import",
            str(self.certificate),
            "-k",
            name,
            "-P",
            self._certificate_password,
            *trusted,
        )
        await self._security(
            "set-key-partition-list",
            "-S",
            KEYCHAIN_PARTITION_LIST,
            "-s",
            "-k",
            self._password,
            name,
        )
        logger.info("certificate_imported", certificate=str(self.certificate), keychain=name)

    async def _teardown(self) -> list[str]:
        """Restore the search list, delete the keychain, release the lock.

        Both steps are attempted even if one fails; failures are returned.
        """
        errors: list[str] = []
        try:
            if self.previous_search_list is not None:
                try:
                    await self._security(
                        "list-keychains", "-d", "user", "-s", *self.previous_search_list
                    )
                    self.previous_search_list = None
                except (CommandError, OSError) as exc:
                    logger.error("keychain_search_list_restore_failed", error=str(exc))
                    errors.append(f"could not restore keychain search list: {exc}")
            if self._created:
                try:
                    await self._security("delete-keychain", self.name)
                    self._created = False
                    logger.info("keychain_removed", keychain=self.name)
                except (CommandError, OSError) as exc:
                    logger.error("keychain_delete_failed", keychain=self.name, error=str(exc))
                    errors.append(f"could not delete keychain {self.name}: {exc}")
        finally:
            if self._lock is not None and self._lock.locked():
                self._lock.release()
                self._lock = None
        return errors
