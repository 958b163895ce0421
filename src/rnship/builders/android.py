from __future__ import annotations

import os
import stat
from pathlib import Path

import structlog

from rnship.builders.base import PlatformBuilder, newest_file
from rnship.core.constants import ANDROID_BUILD_TOOLS, BuildType
from rnship.core.exceptions import BuildError
from rnship.core.types import BuildRequest

logger = structlog.get_logger(__name__)


def validate_android_signing(request: BuildRequest) -> list[str]:
    errors: list[str] = []
    if not (request.keystore and Path(request.keystore).is_file()):
        errors.append(f"keystore is required (valid file): {request.keystore}")
    if not request.key_alias:
        errors.append("keyAlias is required.")
    if not request.key_password:
        errors.append("keyPassword is required.")
    if not request.store_password:
        errors.append("storePassword is required.")
    return errors


def gradle_task(request: BuildRequest) -> tuple[str, str]:
    """(gradle task, artifact extension) for the request."""
    if request.build_type is BuildType.DEVELOPMENT:
        return "assembleDebug", "apk"
    if request.android_bundle:
        return "bundleRelease", "aab"
    return "assembleRelease", "apk"


class AndroidBuilder(PlatformBuilder):
    """Runs the Gradle wrapper in ``android/`` and collects the APK/AAB."""

    required_tools = ANDROID_BUILD_TOOLS

    def validate(self) -> list[str]:
        request = self._ctx.request
        if request.build_type is BuildType.PRODUCTION:
            return validate_android_signing(request)
        return []

    def _gradlew(self, android_dir: Path) -> Path:
        name = "gradlew.bat" if os.name == "nt" else "gradlew"
        wrapper = android_dir / name
        if not wrapper.is_file():
            raise BuildError(f"gradle wrapper not found at {wrapper}; was the project ejected?")
        if os.name != "nt":
            wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return wrapper

    def signing_properties(self) -> list[str]:
        request = self._ctx.request
        if request.build_type is not BuildType.PRODUCTION:
            return []
        keystore = Path(request.keystore or "").expanduser().resolve()
        return [
            f"-Pandroid.injected.signing.store.file={keystore}",
            f"-Pandroid.injected.signing.store.password={request.store_password}",
            f"-Pandroid.injected.signing.key.alias={request.key_alias}",
            f"-Pandroid.injected.signing.key.password={request.key_password}",
        ]

    async def _build(self) -> Path:
        ctx = self._ctx
        android_dir = ctx.project_dir / "android"
        task, ext = gradle_task(ctx.request)
        wrapper = self._gradlew(android_dir)

        logger.info("android_build_started", task=task)
        await ctx.runner.run(
            [str(wrapper), task, "--no-daemon", *self.signing_properties()],
            cwd=android_dir,
        )

        outputs = android_dir / "app" / "build" / "outputs" / ("bundle" if ext == "aab" else "apk")
        artifact = newest_file(outputs, f"*.{ext}")
        if artifact is None:
            raise BuildError(f"gradle {task} finished but no .{ext} was found under {outputs}")

        metadata = ctx.require_metadata()
        variant = "debug" if task == "assembleDebug" else "release"
        collected = self.collect_artifact(artifact, f"{metadata.name}-{variant}.{ext}")
        logger.info("android_build_finished", artifact=str(collected))
        return collected
