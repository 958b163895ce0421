from rnship.requirements.validator import (
    PrerequisiteValidator,
    parse_version,
    required_versions_for,
    version_satisfies,
    version_tuple,
)

__all__ = [
    "PrerequisiteValidator",
    "parse_version",
    "required_versions_for",
    "version_satisfies",
    "version_tuple",
]
