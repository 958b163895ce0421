"""Process execution for external toolchains.

All components accept the :class:`ProcessRunner` protocol so the real
:class:`AsyncProcessRunner` can be swapped for :class:`MockProcessRunner`
in tests without touching any tool on the host.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Callable, Protocol, Union, runtime_checkable

import structlog

from rnship.core.exceptions import CommandError
from rnship.core.types import CommandResult
from rnship.utils.logging import mask_secrets

logger = structlog.get_logger(__name__)


@runtime_checkable
class ProcessRunner(Protocol):
    """Structural type for anything that can run an external command."""

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        log: bool = True,
    ) -> CommandResult: ...


class AsyncProcessRunner:
    """Runs commands with :func:`asyncio.create_subprocess_exec`.

    The calling coroutine is suspended until the tool exits; output is
    captured in full and returned on the :class:`CommandResult`.
    """

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        log: bool = True,
    ) -> CommandResult:
        args = [str(a) for a in argv]
        if log:
            logger.info("command_started", argv=mask_secrets(args), cwd=str(cwd) if cwd else None)

        merged_env = None
        if env:
            merged_env = {**os.environ, **env}

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise CommandError(args, 127, stderr=f"{args[0]}: command not found") from exc

        stdout_b, stderr_b = await proc.communicate()
        result = CommandResult(
            argv=args,
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout_b.decode("utf-8", errors="replace"),
            stderr=stderr_b.decode("utf-8", errors="replace"),
        )

        if log:
            logger.debug("command_finished", tool=args[0], returncode=result.returncode)
        if check and result.returncode != 0:
            logger.error(
                "command_failed",
                argv=mask_secrets(args),
                returncode=result.returncode,
                stderr=result.stderr.strip()[-2000:],
            )
            raise CommandError(args, result.returncode, result.stdout, result.stderr)
        return result


_Response = Union[
    CommandResult, str, Exception, Callable[[list[str], "Path | None"], "CommandResult | str"]
]


class MockProcessRunner:
    """In-memory :class:`ProcessRunner` for testing.

    Responses are matched on the longest registered argv prefix::

        runner = MockProcessRunner()
        runner.register(["node", "--version"], "v18.17.0")
        runner.register(["yarn", "install"], CommandResult(argv=[], returncode=1))
        runner.register(["xcodebuild"], RuntimeError("boom"))   # raised
        runner.register(["git"], lambda argv, cwd: "ok")        # dynamic

    Unregistered commands succeed with empty output unless ``strict`` is set.
    A non-zero ``delay`` makes every call sleep first, so concurrent callers
    interleave.
    """

    def __init__(self, strict: bool = False, delay: float = 0.0) -> None:
        self._strict = strict
        self._delay = delay
        self._responses: dict[tuple[str, ...], _Response] = {}
        self.calls: list[tuple[list[str], Path | None]] = []

    def register(self, prefix: Sequence[str], response: _Response) -> None:
        self._responses[tuple(prefix)] = response

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        log: bool = True,
    ) -> CommandResult:
        args = [str(a) for a in argv]
        self.calls.append((args, cwd))
        if self._delay:
            await asyncio.sleep(self._delay)

        response = self._match(args)
        if response is None:
            if self._strict:
                raise KeyError(f"MockProcessRunner: no response registered for {args!r}")
            response = ""
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(args, cwd)

        if isinstance(response, str):
            result = CommandResult(argv=args, returncode=0, stdout=response)
        else:
            result = response.model_copy(update={"argv": args})

        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, result.stdout, result.stderr)
        return result

    def _match(self, args: list[str]) -> _Response | None:
        """Longest registered prefix; the program may be given by basename."""
        short = [Path(args[0]).name, *args[1:]] if args else []
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            n = len(prefix)
            if tuple(args[:n]) == prefix or tuple(short[:n]) == prefix:
                if best is None or len(prefix) > len(best):
                    best = prefix
        return self._responses[best] if best is not None else None

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def commands(self) -> list[list[str]]:
        return [c[0] for c in self.calls]

    def assert_called(self, *prefix: str) -> None:
        cmds = self.commands()
        assert any(tuple(c[: len(prefix)]) == prefix for c in cmds), (
            f"Expected a call starting with {list(prefix)!r}, got: {cmds}"
        )

    def assert_not_called(self, *prefix: str) -> None:
        cmds = self.commands()
        assert not any(tuple(c[: len(prefix)]) == prefix for c in cmds), (
            f"Unexpected call starting with {list(prefix)!r}"
        )
