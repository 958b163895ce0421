from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from rnship.core.context import PipelineContext
from rnship.core.exceptions import RnShipError
from rnship.core.types import BuildResult

logger = structlog.get_logger(__name__)


class PlatformBuilder(ABC):
    """Drives one platform's native toolchain to a single artifact.

    Subclasses implement :meth:`validate` (collect every input problem) and
    :meth:`_build` (run the toolchain, return the artifact path).
    :meth:`build` turns both into a :class:`BuildResult`.
    """

    required_tools: tuple[str, ...] = ()

    def __init__(self, ctx: PipelineContext) -> None:
        self._ctx = ctx

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self._ctx.platform.value!r})"

    @abstractmethod
    def validate(self) -> list[str]:
        """Every problem with the request's inputs; empty when all is well."""

    @abstractmethod
    async def _build(self) -> Path: ...

    async def build(self) -> BuildResult:
        errors = self.validate()
        if errors:
            for error in errors:
                logger.error("build_input_invalid", platform=self._ctx.platform.value, error=error)
            return BuildResult.failure(*errors)
        try:
            artifact = await self._build()
        except RnShipError as exc:
            errors = getattr(exc, "errors", None) or [str(exc)]
            return BuildResult.failure(*errors)
        except OSError as exc:
            return BuildResult.failure(str(exc))
        return BuildResult.ok(artifact)

    def collect_artifact(self, artifact: Path, name: str | None = None) -> Path:
        """Copy *artifact* into ``<dest>/output/<platform>/``."""
        target_dir = self._ctx.output_dir / self._ctx.platform.value
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / (name or artifact.name)
        shutil.copy2(artifact, target)
        return target


def newest_file(directory: Path, pattern: str) -> Path | None:
    candidates = [p for p in directory.rglob(pattern) if p.is_file()] if directory.is_dir() else []
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)
