"""Prerequisite checks for the external toolchain.

Each tool is asked for its version, the first version-looking token of the
output is extracted and compared against a minimum. Reports are computed
fresh on every call; the environment can change between builds.
"""

from __future__ import annotations

import os
import platform as host_platform
import re
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import structlog

from rnship.core.constants import (
    BASE_REQUIRED_VERSIONS,
    PLATFORM_REQUIRED_VERSIONS,
    Platform,
)
from rnship.core.exceptions import CommandError
from rnship.core.types import PrerequisiteReport, ToolCheck
from rnship.utils.process import ProcessRunner

logger = structlog.get_logger(__name__)

_DOTTED = re.compile(r"\d+(?:\.\d+)+")
_BARE = re.compile(r"\d+")


def _gradle_output(text: str) -> str:
    idx = text.find("Gradle")
    return text[idx:] if idx >= 0 else text


# tool -> (version command, optional output transform)
VERSION_COMMANDS: dict[str, tuple[list[str], Callable[[str], str] | None]] = {
    "node": (["node", "--version"], None),
    "java": (["java", "-version"], None),
    "yarn": (["yarn", "--version"], None),
    "gradle": (["gradle", "--version"], _gradle_output),
    "git": (["git", "--version"], None),
    "expo": (["expo", "--version"], None),
    "pod": (["pod", "--version"], None),
}


def parse_version(text: str) -> str | None:
    """Pull the first version token out of a tool's output.

    ``"v18.17.0"`` gives ``"18.17.0"``, ``'openjdk version "1.8.0_292"'``
    gives ``"1.8.0"`` and ``'openjdk version "21" 2023-09-19'`` gives ``"21"``.
    """
    match = _DOTTED.search(text) or _BARE.search(text)
    return match.group(0) if match else None


def version_tuple(version: str) -> tuple[int, int, int]:
    """major.minor.patch with missing or unparsable segments as zero."""
    parts: list[int] = []
    for segment in version.strip().lstrip("vV").split(".")[:3]:
        m = _BARE.match(segment)
        parts.append(int(m.group(0)) if m else 0)
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def version_satisfies(version: str, minimum: str | None) -> bool:
    if minimum is None:
        return True
    return version_tuple(version) >= version_tuple(minimum)


def required_versions_for(
    platform: Platform,
    overrides: Mapping[str, str | None] | None = None,
) -> dict[str, str | None]:
    """Base table, then the platform's overrides, then the caller's."""
    table = dict(BASE_REQUIRED_VERSIONS)
    table.update(PLATFORM_REQUIRED_VERSIONS.get(platform, {}))
    if overrides:
        table.update(overrides)
    return table


class PrerequisiteValidator:
    """Checks installed tools and environment variables.

    Args:
        runner: Used to invoke each tool's version command.
        env: Environment to inspect (defaults to ``os.environ``).
    """

    def __init__(
        self,
        runner: ProcessRunner,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._runner = runner
        self._env = env if env is not None else os.environ

    async def check_tool(self, name: str, required: str | None = None) -> ToolCheck:
        argv, transform = VERSION_COMMANDS.get(name, ([name, "--version"], None))
        try:
            result = await self._runner.run(argv, log=False)
        except (CommandError, OSError) as exc:
            logger.error("prerequisite_missing", tool=name, error=str(exc))
            return ToolCheck(
                name=name,
                required=required,
                message=f"{name} is not installed or failed to run",
            )

        text = result.output
        if transform is not None:
            text = transform(text)
        version = parse_version(text)
        if version is None:
            logger.error("prerequisite_unparsable", tool=name, output=result.output[:200])
            return ToolCheck(
                name=name,
                required=required,
                message=f"could not determine the {name} version",
            )

        logger.info("prerequisite_found", tool=name, version=version)
        if not version_satisfies(version, required):
            logger.error("prerequisite_too_old", tool=name, version=version, required=required)
            return ToolCheck(
                name=name,
                version=version,
                required=required,
                message=f"minimum {name} version required is {required}, found {version}",
            )
        return ToolCheck(name=name, version=version, required=required, satisfied=True)

    async def check(
        self,
        tools: Iterable[str],
        required_versions: Mapping[str, str | None] | None = None,
    ) -> PrerequisiteReport:
        """Check every tool in *tools* against *required_versions*.

        Every tool is checked even after a failure so the report lists all
        problems at once.
        """
        table = required_versions if required_versions is not None else BASE_REQUIRED_VERSIONS
        report = PrerequisiteReport()
        for name in tools:
            report.checks[name] = await self.check_tool(name, table.get(name))
        if "java" in report.checks:
            self._check_java_home(report)
        return report

    async def check_platform(
        self,
        platform: Platform,
        tools: Iterable[str],
        overrides: Mapping[str, str | None] | None = None,
    ) -> PrerequisiteReport:
        report = await self.check(tools, required_versions_for(platform, overrides))
        if platform is Platform.ANDROID:
            await self._check_android_sdk(report)
        return report

    # ------------------------------------------------------------------ #
    # Environment checks
    # ------------------------------------------------------------------ #

    def _check_java_home(self, report: PrerequisiteReport) -> None:
        java_home = self._env.get("JAVA_HOME")
        if not java_home:
            logger.error("java_home_missing")
            report.errors.append("JAVA_HOME environment variable is not set")
        elif not Path(java_home).exists():
            logger.error("java_home_invalid", path=java_home)
            report.errors.append(f"JAVA_HOME points to a non-existent path: {java_home}")

    async def _check_android_sdk(self, report: PrerequisiteReport) -> None:
        sdk_root = self._env.get("ANDROID_SDK_ROOT")
        android_home = self._env.get("ANDROID_HOME")
        if android_home and not sdk_root:
            logger.warning("android_home_deprecated", hint="set ANDROID_SDK_ROOT instead")

        sdk = sdk_root or android_home
        if not sdk:
            logger.error("android_sdk_missing")
            report.errors.append(
                "ANDROID_SDK_ROOT environment variable is not set; "
                "point it to a valid Android SDK directory"
            )
            return
        if not Path(sdk).exists():
            logger.error("android_sdk_invalid", path=sdk)
            report.errors.append(f"Android SDK path does not exist: {sdk}")
            return

        sdkmanager = Path(sdk) / "tools" / "bin" / "sdkmanager"
        if host_platform.system() == "Windows":
            sdkmanager = sdkmanager.with_suffix(".bat")
        if not sdkmanager.exists():
            logger.warning("android_sdkmanager_missing", path=str(sdkmanager))
            return
        logger.info("android_sdkmanager_found", path=str(sdkmanager))
        try:
            await self._runner.run([str(sdkmanager), "--list"], log=False)
        except (CommandError, OSError) as exc:
            logger.warning("android_sdkmanager_failed", error=str(exc))
