from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rnship.core.constants import (
    DEFAULT_APP_VERSION,
    BuildType,
    PackageType,
    Platform,
)


class BuildRequest(BaseModel):
    """Everything the caller asked for. Immutable once validated."""

    model_config = ConfigDict(frozen=True)

    platform: Platform
    src: str
    dest: str | None = None
    build_type: BuildType = BuildType.DEVELOPMENT
    auto_eject: bool = False
    android_bundle: bool = False
    """Produce an ``.aab`` instead of an ``.apk`` for production Android builds."""

    # Android signing
    keystore: str | None = None
    store_password: str | None = Field(default=None, repr=False)
    key_alias: str | None = None
    key_password: str | None = Field(default=None, repr=False)

    # iOS signing
    certificate: str | None = None
    certificate_password: str | None = Field(default=None, repr=False)
    provisioning_file: str | None = None
    package_type: PackageType | None = None
    code_signing_identity: str | None = None

    local_runtime_path: str | None = None

    @property
    def is_archive(self) -> bool:
        return self.src.lower().endswith(".zip")


class AssetRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    src: str | None = None


class ProjectMetadata(BaseModel):
    """Contents of the project's ``wm_rn_config.json``.

    Unknown keys are kept so a merge-write never drops data written by
    other tools.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    version: str = DEFAULT_APP_VERSION
    icon: AssetRef = Field(default_factory=AssetRef)
    splash: AssetRef = Field(default_factory=AssetRef)
    preferences: dict[str, Any] = Field(default_factory=dict)
    ejected: bool = False

    @property
    def hermes_enabled(self) -> bool:
        return bool(self.preferences.get("enableHermes", False))


class StagingResult(BaseModel):
    src: Path
    dest: Path


class ToolCheck(BaseModel):
    name: str
    version: str | None = None
    required: str | None = None
    satisfied: bool = False
    message: str | None = None


class PrerequisiteReport(BaseModel):
    checks: dict[str, ToolCheck] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    """Environment problems not tied to a single tool (SDK root, JAVA_HOME)."""

    @property
    def ok(self) -> bool:
        return not self.errors and all(c.satisfied for c in self.checks.values())

    @property
    def failed(self) -> list[ToolCheck]:
        return [c for c in self.checks.values() if not c.satisfied]

    def summary(self) -> str:
        parts = [c.message or f"{c.name} is not available" for c in self.failed]
        parts.extend(self.errors)
        return "; ".join(parts)


class CommandResult(BaseModel):
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """stdout followed by stderr; some tools (``java -version``) only use stderr."""
        return self.stdout + self.stderr

    @property
    def lines(self) -> list[str]:
        return self.stdout.splitlines()


class EjectResult(BaseModel):
    success: bool
    errors: list[str] = Field(default_factory=list)
    metadata: ProjectMetadata | None = None


class BuildResult(BaseModel):
    """Terminal value of a pipeline run.

    Either ``success`` with an ``output`` artifact, or a failure that may or
    may not carry explicit ``errors`` (no errors means the tools ran but no
    artifact came out).
    """

    success: bool
    output: Path | None = None
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> BuildResult:
        if self.success and (self.output is None or self.errors):
            raise ValueError("a successful BuildResult needs an output and no errors")
        return self

    @classmethod
    def ok(cls, output: Path) -> BuildResult:
        return cls(success=True, output=output)

    @classmethod
    def failure(cls, *errors: str) -> BuildResult:
        return cls(success=False, errors=[e for e in errors if e])

    @property
    def error_message(self) -> str:
        return "\n\t".join(self.errors)
