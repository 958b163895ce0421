"""Materialize a working copy of the source project at the build destination."""

from __future__ import annotations

import logging
import os
import shutil
import time
import zipfile
from pathlib import Path

import structlog

from rnship.core.context import PipelineContext
from rnship.core.exceptions import StagingError, UserAbortError
from rnship.core.types import StagingResult
from rnship.project.metadata import ConfigStore
from rnship.utils.logging import add_log_file, remove_log_file

logger = structlog.get_logger(__name__)


def new_run_id() -> str:
    """Nanosecond timestamp plus pid; distinct across concurrent runs."""
    return f"{time.time_ns()}-{os.getpid()}"


def next_build_number(directory: Path) -> int:
    """One more than the largest numeric subdirectory name (1 when none).

    Entries whose names are not integers are ignored.
    """
    highest = 0
    if directory.is_dir():
        for entry in directory.iterdir():
            if entry.name.isdigit():
                highest = max(highest, int(entry.name))
    return highest + 1


def clear_path(target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        target.unlink()


def _is_within(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return True


class ProjectStager:
    """Copies (or extracts) the source project into a destination directory.

    Usage::

        stager = ProjectStager(ctx)
        staged = await stager.stage()
        ...
        stager.close()   # detaches the per-run log file
    """

    def __init__(self, ctx: PipelineContext) -> None:
        self._ctx = ctx
        self.log_handler: logging.Handler | None = None

    async def stage(self) -> StagingResult:
        """Run every staging step and record src/dest on the context.

        Raises:
            StagingError: If source and destination collide or copying fails.
            UserAbortError: If the user declines to clear a non-empty destination.
        """
        ctx = self._ctx
        if not ctx.run_id:
            ctx.run_id = new_run_id()

        src = self.extract_if_archive(ctx.request.src)
        src = src.expanduser().resolve()
        if not src.is_dir():
            raise StagingError(f"source project not found: {src}")

        if ctx.request.dest:
            dest = Path(ctx.request.dest).expanduser().resolve()
        else:
            dest = self.default_destination(src)

        if src == dest:
            logger.error("staging_same_path", path=str(src))
            raise StagingError(
                "source and destination folders are the same; choose a different destination"
            )
        if _is_within(dest, src):
            logger.error("staging_dest_inside_src", src=str(src), dest=str(dest))
            raise StagingError("destination must not be inside the source folder")

        await self.prepare_destination(dest)

        try:
            shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise StagingError(f"failed to copy {src} to {dest}: {exc}") from exc

        ctx.src, ctx.dest = src, dest
        self.attach_log_file()
        logger.info("project_staged", src=str(src), dest=str(dest), run_id=ctx.run_id)
        return StagingResult(src=src, dest=dest)

    def reuse(self, dest: Path) -> StagingResult:
        """Adopt an already-ejected destination as is, without copying."""
        ctx = self._ctx
        if not ctx.run_id:
            ctx.run_id = new_run_id()
        ctx.src = Path(ctx.request.src).expanduser().resolve()
        ctx.dest = dest.resolve()
        self.attach_log_file()
        logger.info("project_reused", dest=str(ctx.dest), run_id=ctx.run_id)
        return StagingResult(src=ctx.src, dest=ctx.dest)

    def extract_if_archive(self, source: str) -> Path:
        path = Path(source).expanduser()
        if not self._ctx.request.is_archive:
            return path
        if not path.is_file():
            raise StagingError(f"archive not found: {path}")

        target = self._ctx.settings.temp_root / path.stem / self._ctx.run_id / "src"
        target.mkdir(parents=True, exist_ok=True)
        logger.info("archive_extracting", archive=str(path), target=str(target))
        try:
            with zipfile.ZipFile(path) as archive:
                archive.extractall(target)
        except zipfile.BadZipFile as exc:
            raise StagingError(f"{path} is not a valid zip archive") from exc
        return target

    def default_destination(self, src: Path) -> Path:
        """``<home>/build/<id>/<version>/<platform>/<n>`` with *n* auto-incremented."""
        metadata = ConfigStore(src).read()
        base = (
            self._ctx.settings.build_root
            / metadata.id
            / metadata.version
            / self._ctx.platform.value
        )
        base.mkdir(parents=True, exist_ok=True)
        dest = base / str(next_build_number(base))
        dest.mkdir(parents=True, exist_ok=True)
        return dest

    async def prepare_destination(self, dest: Path) -> None:
        """Make *dest* an empty directory, asking before anything is removed."""
        if dest.exists() and (not dest.is_dir() or any(dest.iterdir())):
            agreed = await self._ctx.confirmer.confirm(
                f"Would you like to empty the dest folder (i.e. {dest}) (yes/no) ?"
            )
            if not agreed:
                logger.error("staging_declined", dest=str(dest))
                raise UserAbortError(f"destination {dest} is not empty; not cleared")
            clear_path(dest)
            logger.info("destination_cleared", dest=str(dest))
        dest.mkdir(parents=True, exist_ok=True)

    def attach_log_file(self) -> None:
        ctx = self._ctx
        ctx.log_dir.mkdir(parents=True, exist_ok=True)
        if self.log_handler is None:
            self.log_handler = add_log_file(ctx.log_dir, run_id=ctx.run_id)

    def close(self) -> None:
        if self.log_handler is not None:
            remove_log_file(self.log_handler)
            self.log_handler = None
