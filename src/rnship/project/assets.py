"""Asset path normalization and per-platform theme pruning."""

from __future__ import annotations

import re
import shutil
from pathlib import Path

import structlog

from rnship.core.constants import THEME_DIR, THEME_FILES, Platform
from rnship.core.types import ProjectMetadata
from rnship.project.metadata import ConfigStore

logger = structlog.get_logger(__name__)

_RESOURCES_PREFIX = "resources"

_MODULE_REF = re.compile(
    r"""(?:\bfrom\s+|^\s*import\s+|\brequire\s*\(\s*)['"](?P<module>[^'"]+)['"]"""
)


def normalize_asset_path(path: str | None) -> str | None:
    """Root bare ``resources/...`` references under ``assets/``.

    ``"resources/icon.png"`` becomes ``"assets/resources/icon.png"``; anything
    else, ``"assets/icon.png"`` included, is returned unchanged.
    """
    if not path:
        return path
    if path == _RESOURCES_PREFIX or path.startswith(_RESOURCES_PREFIX + "/"):
        return f"assets/{path}"
    return path


def normalize_metadata_assets(store: ConfigStore, metadata: ProjectMetadata) -> ProjectMetadata:
    """Persist normalized icon/splash paths if either one changes."""
    update: dict[str, dict[str, str | None]] = {}
    for key in ("icon", "splash"):
        ref = getattr(metadata, key)
        normalized = normalize_asset_path(ref.src)
        if normalized != ref.src:
            update[key] = {**ref.model_dump(), "src": normalized}
    if not update:
        return metadata
    logger.info("asset_paths_normalized", fields=sorted(update))
    return store.write(update)


def _references_platform(line: str, platform: Platform) -> bool:
    match = _MODULE_REF.search(line)
    if not match:
        return False
    for segment in match.group("module").split("/"):
        if segment == platform.value or segment.split(".")[0] == platform.value:
            return True
    return False


def strip_platform_imports(text: str, platform: Platform) -> str:
    """Drop every import/require line that points into *platform*'s theme module."""
    kept = [
        line
        for line in text.splitlines(keepends=True)
        if not _references_platform(line, platform)
    ]
    return "".join(kept)


def prune_platform_assets(project_dir: Path, platform: Platform) -> list[Path]:
    """Remove the other platform's theme imports and theme directory.

    Returns the paths that were changed or deleted.
    """
    other = platform.other
    touched: list[Path] = []

    for rel in THEME_FILES:
        theme_file = project_dir / rel
        if not theme_file.is_file():
            logger.debug("theme_file_missing", path=str(theme_file))
            continue
        original = theme_file.read_text(encoding="utf-8")
        pruned = strip_platform_imports(original, other)
        if pruned != original:
            theme_file.write_text(pruned, encoding="utf-8")
            touched.append(theme_file)

    other_dir = project_dir / THEME_DIR / other.value
    if other_dir.is_dir():
        shutil.rmtree(other_dir)
        touched.append(other_dir)

    logger.info(
        "platform_assets_pruned",
        platform=platform.value,
        removed=other.value,
        changed=[str(p.relative_to(project_dir)) for p in touched],
    )
    return touched
