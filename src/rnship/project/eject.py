"""One-time conversion of an Expo template project into native projects.

Eject is gated by the ``ejected`` flag in the project metadata. The flag is
only written after every step has succeeded, so a failed eject is simply
re-attempted from scratch on the next run.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

import structlog

from rnship.core.constants import (
    APP_MANIFEST_FILE,
    EJECT_TOOLS,
    PACKAGE_DESCRIPTOR_FILE,
    PACKAGE_ENTRY_POINT,
)
from rnship.core.context import PipelineContext
from rnship.core.exceptions import EjectError, PrerequisiteError, RnShipError
from rnship.core.types import EjectResult, ProjectMetadata
from rnship.project.assets import normalize_asset_path
from rnship.project.metadata import ConfigStore, read_json_object, write_json_atomic
from rnship.requirements.validator import PrerequisiteValidator, required_versions_for

logger = structlog.get_logger(__name__)


def update_app_manifest(project_dir: Path, metadata: ProjectMetadata) -> dict[str, Any]:
    """Inject identity, JS engine and asset paths into ``app.json``."""
    path = project_dir / APP_MANIFEST_FILE
    data = read_json_object(path)
    expo: dict[str, Any] = data.setdefault("expo", {})

    expo["name"] = metadata.name
    expo["slug"] = metadata.name
    expo["jsEngine"] = "hermes" if metadata.hermes_enabled else "jsc"

    android: dict[str, Any] = expo.setdefault("android", {})
    ios: dict[str, Any] = expo.setdefault("ios", {})
    android["package"] = metadata.id
    ios["bundleIdentifier"] = metadata.id

    icon = normalize_asset_path(metadata.icon.src)
    if icon:
        expo["icon"] = icon
        android.setdefault("adaptiveIcon", {})["foregroundImage"] = icon
    splash = normalize_asset_path(metadata.splash.src)
    if splash:
        expo.setdefault("splash", {})["image"] = splash

    write_json_atomic(path, data)
    logger.info("app_manifest_updated", path=str(path), app_id=metadata.id)
    return data


def update_package_descriptor(project_dir: Path) -> dict[str, Any]:
    path = project_dir / PACKAGE_DESCRIPTOR_FILE
    data = read_json_object(path)
    data["main"] = PACKAGE_ENTRY_POINT
    write_json_atomic(path, data)
    logger.info("package_descriptor_updated", path=str(path))
    return data


def replace_runtime_package(project_dir: Path, package: str, override: Path) -> Path:
    """Swap ``node_modules/<package>`` for a full copy of *override*."""
    if not override.is_dir():
        raise EjectError(f"local runtime path is not a directory: {override}")
    target = project_dir / "node_modules" / package
    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.exists():
        shutil.rmtree(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(override, target, symlinks=True)
    logger.info("runtime_package_replaced", package=package, source=str(override))
    return target


class EjectTransformer:
    """Runs the eject steps against the staged destination."""

    def __init__(
        self,
        ctx: PipelineContext,
        validator: PrerequisiteValidator | None = None,
    ) -> None:
        self._ctx = ctx
        self._validator = validator or PrerequisiteValidator(ctx.runner)

    async def eject(self) -> EjectResult:
        ctx = self._ctx
        log = logger.bind(platform=ctx.platform.value, dest=str(ctx.project_dir))
        try:
            metadata = await self._eject()
        except (RnShipError, OSError) as exc:
            log.error("eject_failed", error=str(exc))
            return EjectResult(success=False, errors=[f"eject failed: {exc}"])
        except Exception as exc:  # noqa: BLE001
            log.exception("eject_crashed", error=str(exc))
            return EjectResult(success=False, errors=[f"eject failed: {exc!r}"])
        log.info("eject_succeeded")
        return EjectResult(success=True, metadata=metadata)

    async def _eject(self) -> ProjectMetadata:
        ctx = self._ctx
        project_dir = ctx.project_dir
        store = ConfigStore(project_dir)
        metadata = ctx.metadata or store.read()

        report = await self._validator.check(
            EJECT_TOOLS, required_versions_for(ctx.platform)
        )
        if not report.ok:
            raise PrerequisiteError(
                "check if all prerequisites are installed. " + report.summary()
            )

        update_app_manifest(project_dir, metadata)
        update_package_descriptor(project_dir)

        await ctx.runner.run(["yarn", "install"], cwd=project_dir)

        if ctx.request.local_runtime_path:
            replace_runtime_package(
                project_dir,
                ctx.settings.runtime_package,
                Path(ctx.request.local_runtime_path).expanduser().resolve(),
            )

        # expo eject refuses to run outside a git repository
        await ctx.runner.run(["git", "init"], cwd=project_dir)
        logger.info("expo_eject_started")
        await ctx.runner.run(["expo", "eject"], cwd=project_dir)

        metadata = store.write({"ejected": True})
        ctx.metadata = metadata
        return metadata
