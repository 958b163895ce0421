from __future__ import annotations

from typing import Any


class RnShipError(Exception):
    """Base exception for all rnship errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"EJECT_FAILED"``).
        details: Arbitrary key/value context about the error.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(RnShipError): ...


class ConfigNotFoundError(ConfigurationError):
    """The project metadata file is missing or not valid JSON."""


class PrerequisiteError(RnShipError): ...


class StagingError(RnShipError): ...


class UserAbortError(RnShipError):
    """The user declined an interactive confirmation."""


class EjectError(RnShipError): ...


class SigningError(RnShipError):
    """Signing inputs are invalid or the keychain could not be prepared.

    ``errors`` holds every validation problem found, not just the first.
    """

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.errors = errors or [message]


class ProvisioningProfileError(SigningError): ...


class BuildError(RnShipError): ...


class CommandError(RnShipError):
    """An external tool exited with a non-zero status."""

    def __init__(
        self,
        argv: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        tail = (stderr or stdout).strip().splitlines()[-5:]
        message = f"{argv[0] if argv else '?'} exited with status {returncode}"
        if tail:
            message += ": " + " | ".join(tail)
        super().__init__(
            message,
            code="COMMAND_FAILED",
            details={"argv": list(argv), "returncode": returncode},
        )
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
