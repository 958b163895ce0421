"""Tests for project/stager.py."""
from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from rnship.core.context import PipelineContext
from rnship.core.exceptions import StagingError, UserAbortError
from rnship.project.stager import ProjectStager, new_run_id, next_build_number


# ---------------------------------------------------------------------------
# next_build_number
# ---------------------------------------------------------------------------


def test_next_build_number_ignores_non_numeric_entries(tmp_path: Path) -> None:
    for name in ("1", "2", "notanumber"):
        (tmp_path / name).mkdir()
    assert next_build_number(tmp_path) == 3


def test_next_build_number_uses_largest_not_count(tmp_path: Path) -> None:
    for name in ("1", "7"):
        (tmp_path / name).mkdir()
    assert next_build_number(tmp_path) == 8


def test_next_build_number_empty_or_missing_dir(tmp_path: Path) -> None:
    assert next_build_number(tmp_path) == 1
    assert next_build_number(tmp_path / "missing") == 1


def test_new_run_id_is_unique() -> None:
    assert new_run_id() != new_run_id()


# ---------------------------------------------------------------------------
# stage()
# ---------------------------------------------------------------------------


async def test_stage_copies_into_explicit_dest(
    make_context: Callable[..., PipelineContext], project: Path, tmp_path: Path
) -> None:
    dest = tmp_path / "dest"
    ctx = make_context(src=str(project), dest=str(dest))
    stager = ProjectStager(ctx)
    try:
        staged = await stager.stage()
    finally:
        stager.close()

    assert staged.dest == dest.resolve()
    assert ctx.dest == dest.resolve()
    assert ctx.src == project.resolve()
    assert (dest / "wm_rn_config.json").is_file()
    assert (dest / "src" / "theme" / "ios" / "theme.ts").is_file()
    assert (dest / "output" / "logs" / "build.log").exists()


async def test_stage_declined_clear_leaves_dest_untouched(
    make_context: Callable[..., PipelineContext], project: Path, tmp_path: Path
) -> None:
    dest = tmp_path / "dest"
    dest.mkdir()
    (dest / "keep.txt").write_text("precious")
    ctx = make_context(confirm=False, src=str(project), dest=str(dest))
    stager = ProjectStager(ctx)

    with pytest.raises(UserAbortError):
        await stager.stage()
    stager.close()

    assert (dest / "keep.txt").read_text() == "precious"
    assert not (dest / "wm_rn_config.json").exists()
    assert ctx.confirmer.questions  # type: ignore[attr-defined]


async def test_stage_agreed_clear_replaces_contents(
    make_context: Callable[..., PipelineContext], project: Path, tmp_path: Path
) -> None:
    dest = tmp_path / "dest"
    dest.mkdir()
    (dest / "stale.txt").write_text("old")
    ctx = make_context(confirm=True, src=str(project), dest=str(dest))
    stager = ProjectStager(ctx)
    try:
        await stager.stage()
    finally:
        stager.close()

    assert not (dest / "stale.txt").exists()
    assert (dest / "app.json").is_file()


async def test_stage_same_src_and_dest_fails_before_clearing(
    make_context: Callable[..., PipelineContext], project: Path
) -> None:
    ctx = make_context(src=str(project), dest=str(project))
    stager = ProjectStager(ctx)

    with pytest.raises(StagingError, match="same"):
        await stager.stage()

    assert (project / "wm_rn_config.json").is_file()
    assert ctx.confirmer.questions == []  # type: ignore[attr-defined]


async def test_stage_dest_inside_src_fails(
    make_context: Callable[..., PipelineContext], project: Path
) -> None:
    ctx = make_context(src=str(project), dest=str(project / "build"))
    with pytest.raises(StagingError, match="inside"):
        await ProjectStager(ctx).stage()
    assert not (project / "build").exists()


async def test_stage_missing_source_fails(
    make_context: Callable[..., PipelineContext], tmp_path: Path
) -> None:
    ctx = make_context(src=str(tmp_path / "nowhere"), dest=str(tmp_path / "dest"))
    with pytest.raises(StagingError, match="not found"):
        await ProjectStager(ctx).stage()


async def test_stage_archive_to_default_destination(
    make_context: Callable[..., PipelineContext],
    project: Path,
    tmp_path: Path,
    zip_factory: Callable[[Path, Path], Path],
) -> None:
    archive = zip_factory(project, tmp_path / "project.zip")

    first = make_context(src=str(archive))
    stager = ProjectStager(first)
    try:
        staged = await stager.stage()
    finally:
        stager.close()

    build_root = first.settings.build_root
    assert staged.dest == build_root / "app1" / "1.0.0" / "android" / "1"
    assert (staged.dest / "package.json").is_file()
    assert staged.src.is_relative_to(first.settings.temp_root)

    second = make_context(src=str(archive))
    stager = ProjectStager(second)
    try:
        staged_again = await stager.stage()
    finally:
        stager.close()
    assert staged_again.dest.name == "2"


async def test_stage_default_destination_uses_metadata_version(
    make_context: Callable[..., PipelineContext],
    tmp_path: Path,
    project_factory: Callable[..., Path],
) -> None:
    project = project_factory(tmp_path / "versioned", app_id="shop", version="2.4.0")
    ctx = make_context(src=str(project), platform="ios")
    stager = ProjectStager(ctx)
    try:
        staged = await stager.stage()
    finally:
        stager.close()
    assert staged.dest.parts[-4:] == ("shop", "2.4.0", "ios", "1")


async def test_stage_bad_archive_fails(
    make_context: Callable[..., PipelineContext], tmp_path: Path
) -> None:
    archive = tmp_path / "broken.zip"
    archive.write_bytes(b"this is not a zip")
    ctx = make_context(src=str(archive))
    with pytest.raises(StagingError, match="zip"):
        await ProjectStager(ctx).stage()


def test_extract_if_archive_passes_directories_through(
    make_context: Callable[..., PipelineContext], project: Path
) -> None:
    ctx = make_context(src=str(project))
    assert ProjectStager(ctx).extract_if_archive(str(project)) == project


def test_extract_if_archive_extracts_into_temp_root(
    make_context: Callable[..., PipelineContext], tmp_path: Path
) -> None:
    archive = tmp_path / "bundle.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("app.json", "{}")
    ctx = make_context(src=str(archive))
    target = ProjectStager(ctx).extract_if_archive(str(archive))
    assert target == ctx.settings.temp_root / "bundle" / "test-run" / "src"
    assert (target / "app.json").read_text() == "{}"


def test_reuse_adopts_destination_without_copying(
    make_context: Callable[..., PipelineContext],
    project: Path,
    tmp_path: Path,
    project_factory: Callable[..., Path],
) -> None:
    dest = project_factory(tmp_path / "ejected", ejected=True)
    ctx = make_context(src=str(project), dest=str(dest))
    stager = ProjectStager(ctx)
    try:
        staged = stager.reuse(dest)
    finally:
        stager.close()
    assert staged.dest == dest.resolve()
    assert ctx.project_dir == dest.resolve()
