"""Read and merge-write the project metadata file (``wm_rn_config.json``).

This file is the only durable record of whether a destination has been
ejected.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from rnship.core.constants import METADATA_FILE
from rnship.core.exceptions import ConfigNotFoundError
from rnship.core.types import ProjectMetadata

logger = structlog.get_logger(__name__)


def write_json_atomic(path: Path, data: Any, indent: int | None = 2) -> None:
    """Serialize *data* next to *path* and rename it into place.

    A crash mid-write leaves the previous file intact, never a truncated one.
    """
    payload = json.dumps(data, indent=indent) + "\n"
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_json_object(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigNotFoundError(f"{path.name} not found at {path.parent}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigNotFoundError(f"{path} is not readable JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigNotFoundError(f"{path} must contain a JSON object")
    return data


class ConfigStore:
    """Metadata file at the root of a project directory."""

    def __init__(self, project_dir: Path, filename: str = METADATA_FILE) -> None:
        self.project_dir = project_dir
        self.path = project_dir / filename

    def read_raw(self) -> dict[str, Any]:
        return read_json_object(self.path)

    def read(self) -> ProjectMetadata:
        """Parse the metadata file.

        Raises:
            ConfigNotFoundError: If the file is absent, not JSON, or lacks
                required fields.
        """
        data = self.read_raw()
        try:
            return ProjectMetadata.model_validate(data)
        except ValidationError as exc:
            raise ConfigNotFoundError(f"{self.path} is not valid project metadata: {exc}") from exc

    def write(self, update: dict[str, Any]) -> ProjectMetadata:
        """Shallow-merge *update* into the stored metadata and persist it."""
        data = self.read_raw()
        data.update(update)
        metadata = ProjectMetadata.model_validate(data)
        write_json_atomic(self.path, data)
        logger.info("metadata_updated", path=str(self.path), keys=sorted(update))
        return metadata
