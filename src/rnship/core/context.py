from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from rnship.core.config import BuilderSettings
from rnship.core.constants import LOG_DIR, OUTPUT_DIR, Platform
from rnship.core.types import BuildRequest, ProjectMetadata
from rnship.utils.process import AsyncProcessRunner, ProcessRunner
from rnship.utils.prompt import ConsoleConfirmer, Confirmer


@dataclass
class PipelineContext:
    """State of one pipeline run, handed to every component.

    One context per run; nothing here is shared between concurrent runs.
    """

    request: BuildRequest
    settings: BuilderSettings = field(default_factory=BuilderSettings)
    runner: ProcessRunner = field(default_factory=AsyncProcessRunner)
    confirmer: Confirmer = field(default_factory=ConsoleConfirmer)
    run_id: str = ""
    metadata: ProjectMetadata | None = None
    src: Path | None = None
    dest: Path | None = None

    @property
    def platform(self) -> Platform:
        return self.request.platform

    @property
    def project_dir(self) -> Path:
        """The staged destination; every build step works inside it."""
        if self.dest is None:
            raise RuntimeError("project has not been staged yet")
        return self.dest

    @property
    def output_dir(self) -> Path:
        return self.project_dir / OUTPUT_DIR

    @property
    def log_dir(self) -> Path:
        return self.output_dir / LOG_DIR

    def require_metadata(self) -> ProjectMetadata:
        if self.metadata is None:
            raise RuntimeError("project metadata has not been loaded yet")
        return self.metadata
