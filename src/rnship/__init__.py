"""rnship: build signed Android and iOS binaries from React Native (Expo) projects."""

from rnship.__version__ import __version__
from rnship.builders import AndroidBuilder, IosBuilder, PlatformBuilder
from rnship.core.config import BuilderSettings
from rnship.core.constants import BuildType, ExportMethod, PackageType, Platform
from rnship.core.context import PipelineContext
from rnship.core.exceptions import (
    BuildError,
    CommandError,
    ConfigNotFoundError,
    ConfigurationError,
    EjectError,
    PrerequisiteError,
    ProvisioningProfileError,
    RnShipError,
    SigningError,
    StagingError,
    UserAbortError,
)
from rnship.core.types import (
    BuildRequest,
    BuildResult,
    CommandResult,
    EjectResult,
    PrerequisiteReport,
    ProjectMetadata,
    StagingResult,
    ToolCheck,
)
from rnship.pipeline.pipeline import BuildPipeline
from rnship.project import ConfigStore, EjectTransformer, ProjectStager
from rnship.requirements import PrerequisiteValidator
from rnship.signing import EphemeralKeychain
from rnship.utils.process import AsyncProcessRunner, MockProcessRunner, ProcessRunner

__all__ = [
    "__version__",
    "AndroidBuilder",
    "AsyncProcessRunner",
    "BuildError",
    "BuildPipeline",
    "BuildRequest",
    "BuildResult",
    "BuildType",
    "BuilderSettings",
    "CommandError",
    "CommandResult",
    "ConfigNotFoundError",
    "ConfigStore",
    "ConfigurationError",
    "EjectError",
    "EjectResult",
    "EjectTransformer",
    "EphemeralKeychain",
    "ExportMethod",
    "IosBuilder",
    "MockProcessRunner",
    "PackageType",
    "PipelineContext",
    "Platform",
    "PlatformBuilder",
    "PrerequisiteError",
    "PrerequisiteReport",
    "PrerequisiteValidator",
    "ProcessRunner",
    "ProjectMetadata",
    "ProjectStager",
    "ProvisioningProfileError",
    "RnShipError",
    "SigningError",
    "StagingError",
    "StagingResult",
    "ToolCheck",
    "UserAbortError",
]
