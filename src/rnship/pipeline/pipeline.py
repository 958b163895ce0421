from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import structlog

from rnship.builders import BUILDERS
from rnship.core.config import BuilderSettings
from rnship.core.constants import METADATA_FILE
from rnship.core.context import PipelineContext
from rnship.core.exceptions import ConfigNotFoundError, RnShipError, UserAbortError
from rnship.core.types import BuildRequest, BuildResult, PrerequisiteReport
from rnship.project.assets import normalize_metadata_assets, prune_platform_assets
from rnship.project.eject import EjectTransformer
from rnship.project.metadata import ConfigStore
from rnship.project.stager import ProjectStager, new_run_id
from rnship.requirements.validator import PrerequisiteValidator
from rnship.utils.process import AsyncProcessRunner, ProcessRunner
from rnship.utils.prompt import ConsoleConfirmer, Confirmer

logger = structlog.get_logger(__name__)

_MB = 1024 * 1024


def file_size_mb(path: Path) -> float:
    return round(path.stat().st_size / _MB, 2) if path.is_file() else 0.0


class BuildPipeline:
    """Stage, eject (once), validate and build a project end to end.

    Every run gets its own :class:`PipelineContext`, so one pipeline object
    can serve concurrent runs for different destinations.

    Args:
        settings: Cache locations, keychain timeout, runtime package name.
        runner: Process runner for every external tool.
        confirmer: Answers the "clear destination" and "eject" questions.
        env: Environment for prerequisite checks (defaults to ``os.environ``).
    """

    def __init__(
        self,
        settings: BuilderSettings | None = None,
        runner: ProcessRunner | None = None,
        confirmer: Confirmer | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings or BuilderSettings()
        self._runner = runner or AsyncProcessRunner()
        self._confirmer = confirmer or ConsoleConfirmer()
        self._validator = PrerequisiteValidator(self._runner, env=env)

    def __repr__(self) -> str:
        return f"BuildPipeline(home={str(self._settings.home)!r})"

    def new_context(self, request: BuildRequest) -> PipelineContext:
        return PipelineContext(
            request=request,
            settings=self._settings,
            runner=self._runner,
            confirmer=self._confirmer,
            run_id=new_run_id(),
        )

    async def run(self, request: BuildRequest) -> BuildResult:
        """Execute the whole build. Never raises; failures come back as a result."""
        return await self._guarded(request, build=True)

    async def eject(self, request: BuildRequest) -> BuildResult:
        """Stage and eject without building.

        On success ``output`` is the prepared destination directory.
        """
        return await self._guarded(request, build=False)

    async def check(self, request: BuildRequest) -> PrerequisiteReport:
        builder_cls = BUILDERS[request.platform]
        return await self._validator.check_platform(request.platform, builder_cls.required_tools)

    # ------------------------------------------------------------------ #
    # internals
    # ------------------------------------------------------------------ #

    async def _guarded(self, request: BuildRequest, build: bool) -> BuildResult:
        ctx = self.new_context(request)
        stager = ProjectStager(ctx)
        with structlog.contextvars.bound_contextvars(
            run_id=ctx.run_id, platform=request.platform.value
        ):
            try:
                result = await self._run(ctx, stager, build)
            except UserAbortError as exc:
                logger.error("build_aborted", reason=str(exc))
                result = BuildResult.failure(str(exc))
            except RnShipError as exc:
                logger.error("build_failed", error=str(exc))
                result = BuildResult.failure(str(exc))
            except Exception as exc:  # noqa: BLE001
                logger.exception("build_crashed", error=str(exc))
                result = BuildResult.failure(f"BUILD failed due to: {exc!r}")
            finally:
                stager.close()
        return result

    async def _stage(self, ctx: PipelineContext, stager: ProjectStager) -> None:
        request = ctx.request
        if request.dest:
            dest = Path(request.dest).expanduser().resolve()
            if (dest / METADATA_FILE).is_file():
                try:
                    ejected = ConfigStore(dest).read().ejected
                except ConfigNotFoundError:
                    ejected = False
                if ejected:
                    stager.reuse(dest)
                    return
        await stager.stage()

    async def _run(self, ctx: PipelineContext, stager: ProjectStager, build: bool) -> BuildResult:
        request = ctx.request
        await self._stage(ctx, stager)
        logger.info("building_at", dest=str(ctx.project_dir))

        store = ConfigStore(ctx.project_dir)
        ctx.metadata = normalize_metadata_assets(store, store.read())

        if ctx.metadata.ejected:
            logger.info("eject_skipped", reason="already ejected")
        else:
            if not request.auto_eject:
                agreed = await ctx.confirmer.confirm(
                    "Would you like to eject the expo project (yes/no) ?"
                )
                if not agreed:
                    raise UserAbortError("eject declined")
            ejected = await EjectTransformer(ctx, self._validator).eject()
            if not ejected.success:
                return BuildResult.failure(*ejected.errors)

        stager.attach_log_file()
        if not build:
            return BuildResult.ok(ctx.project_dir)

        prune_platform_assets(ctx.project_dir, ctx.platform)

        builder = BUILDERS[ctx.platform](ctx)
        report = await self._validator.check_platform(ctx.platform, builder.required_tools)
        if not report.ok:
            logger.error("prerequisites_not_met", problems=report.summary())
            return BuildResult.failure(f"prerequisites not met: {report.summary()}")

        result = await builder.build()
        self._report(ctx, result)
        return result

    def _report(self, ctx: PipelineContext, result: BuildResult) -> None:
        platform = ctx.platform.value
        if result.errors:
            logger.error(
                "build_failed",
                message=f"{platform} build failed due to: \n\t{result.error_message}",
            )
        elif not result.success:
            logger.error("build_failed", message=f"{platform} BUILD FAILED")
        elif result.output is not None:
            logger.info(
                "build_succeeded",
                message=f"{platform} BUILD SUCCEEDED. check the file at : {result.output}.",
                size_mb=file_size_mb(result.output),
            )
