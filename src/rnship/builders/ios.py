"""iOS build: validate signing inputs, then build, archive and export an IPA
with xcodebuild while the certificate sits in an ephemeral keychain."""

from __future__ import annotations

import plistlib
from pathlib import Path

import structlog

from rnship.builders.base import PlatformBuilder, newest_file
from rnship.core.constants import (
    APP_MANIFEST_FILE,
    EXPO_UPDATES_URL,
    IOS_BUILD_TOOLS,
)
from rnship.core.exceptions import BuildError
from rnship.core.types import BuildRequest
from rnship.project.metadata import read_json_object
from rnship.signing.keychain import EphemeralKeychain
from rnship.signing.provisioning import ProvisioningProfile, load_profile, signing_identity

logger = structlog.get_logger(__name__)

_APPLICATION_PROPERTIES = "<key>ApplicationProperties</key>"


def validate_ios_signing(request: BuildRequest) -> list[str]:
    """All signing input problems at once, one entry per problem."""
    errors: list[str] = []
    if not (request.certificate and Path(request.certificate).is_file()):
        errors.append(f"p12 certificate does not exist: {request.certificate}")
    if not request.certificate_password:
        errors.append("password to unlock certificate is required.")
    if not (request.provisioning_file and Path(request.provisioning_file).is_file()):
        errors.append(f"provisioning file does not exist: {request.provisioning_file}")
    if not request.package_type:
        errors.append("package type is required.")
    return errors


def patch_archive_info_plist(
    plist_path: Path,
    bundle_id: str,
    profile: ProvisioningProfile,
) -> None:
    """Insert export options ahead of ``ApplicationProperties``.

    xcodebuild -exportArchive reads this file as its export options, so it
    must name the provisioning profile for the bundle id. The surrounding
    document is left byte-for-byte as xcodebuild wrote it.
    """
    content = plist_path.read_text(encoding="utf-8")
    if _APPLICATION_PROPERTIES not in content:
        raise BuildError(f"{plist_path} has no ApplicationProperties entry")
    block = (
        "<key>compileBitcode</key>\n"
        "\t<true/>\n"
        "\t<key>method</key>\n"
        f"\t<string>{profile.export_method.value}</string>\n"
        "\t<key>teamID</key>\n"
        f"\t<string>{profile.team_id}</string>\n"
        "\t<key>provisioningProfiles</key>\n"
        "\t<dict>\n"
        f"\t\t<key>{bundle_id}</key>\n"
        f"\t\t<string>{profile.uuid}</string>\n"
        "\t</dict>\n"
        f"\t{_APPLICATION_PROPERTIES}"
    )
    plist_path.write_text(content.replace(_APPLICATION_PROPERTIES, block, 1), encoding="utf-8")
    logger.info("archive_plist_patched", path=str(plist_path), bundle_id=bundle_id)


def find_workspace(ios_dir: Path) -> Path:
    workspaces = sorted(ios_dir.glob("*.xcworkspace"))
    if not workspaces:
        raise BuildError(f"no .xcworkspace found in {ios_dir}; was the project ejected?")
    return workspaces[0]


def update_expo_plist(ios_dir: Path, project_name: str) -> None:
    """Point ``EXUpdatesURL`` at a placeholder so release builds start offline."""
    plist_path = ios_dir / project_name / "Supporting" / "Expo.plist"
    if not plist_path.is_file():
        logger.warning("expo_plist_missing", path=str(plist_path))
        return
    with plist_path.open("rb") as fh:
        data = plistlib.load(fh)
    data["EXUpdatesURL"] = EXPO_UPDATES_URL
    with plist_path.open("wb") as fh:
        plistlib.dump(data, fh)
    logger.info("expo_plist_updated", path=str(plist_path))


class IosBuilder(PlatformBuilder):
    required_tools = IOS_BUILD_TOOLS

    def validate(self) -> list[str]:
        return validate_ios_signing(self._ctx.request)

    def _manifest(self) -> tuple[str, str]:
        """(app name, bundle id) from ``app.json``."""
        data = read_json_object(self._ctx.project_dir / APP_MANIFEST_FILE)
        expo = data.get("expo") or {}
        name = expo.get("name")
        bundle_id = (expo.get("ios") or {}).get("bundleIdentifier")
        if not name or not bundle_id:
            raise BuildError("app.json must define expo.name and expo.ios.bundleIdentifier")
        return name, bundle_id

    async def _build(self) -> Path:
        ctx = self._ctx
        request = ctx.request
        ios_dir = ctx.project_dir / "ios"
        app_name, bundle_id = self._manifest()

        profile = load_profile(Path(request.provisioning_file or ""))
        identity = signing_identity(request.package_type, request.code_signing_identity)
        logger.info(
            "ios_signing_resolved",
            identity=identity,
            provisioning_uuid=profile.uuid,
            team_id=profile.team_id,
            export_method=profile.export_method.value,
        )

        workspace = find_workspace(ios_dir)
        project_name = workspace.stem
        update_expo_plist(ios_dir, project_name)
        await ctx.runner.run(["pod", "install"], cwd=ios_dir)

        async with EphemeralKeychain(
            ctx.runner,
            Path(request.certificate or "").expanduser().resolve(),
            request.certificate_password or "",
            timeout=ctx.settings.keychain_timeout,
        ):
            ipa = await self._xcodebuild(ios_dir, workspace, bundle_id, identity, profile)

        collected = self.collect_artifact(ipa, f"{app_name}.ipa")
        logger.info("ios_build_finished", artifact=str(collected))
        return collected

    async def _xcodebuild(
        self,
        ios_dir: Path,
        workspace: Path,
        bundle_id: str,
        identity: str,
        profile: ProvisioningProfile,
    ) -> Path:
        runner = self._ctx.runner
        scheme = workspace.stem
        archive = Path("build") / f"{scheme}.xcarchive"
        signing = [
            f"CODE_SIGN_IDENTITY={identity}",
            f"PROVISIONING_PROFILE={profile.uuid}",
            f"DEVELOPMENT_TEAM={profile.team_id}",
            "CODE_SIGN_STYLE=Manual",
        ]
        common = [
            "xcodebuild",
            "-workspace",
            workspace.name,
            "-scheme",
            scheme,
            "-configuration",
            "Release",
        ]

        logger.info("xcodebuild_build_started", scheme=scheme)
        await runner.run([*common, *signing], cwd=ios_dir)

        logger.info("xcodebuild_archive_started", archive=str(archive))
        await runner.run([*common, "-archivePath", str(archive), *signing, "archive"], cwd=ios_dir)

        info_plist = ios_dir / archive / "Info.plist"
        patch_archive_info_plist(info_plist, bundle_id, profile)

        logger.info("xcodebuild_export_started")
        await runner.run(
            [
                "xcodebuild",
                "-exportArchive",
                "-archivePath",
                str(archive),
                "-exportOptionsPlist",
                str(archive / "Info.plist"),
                "-exportPath",
                "build",
            ],
            cwd=ios_dir,
        )

        ipa = newest_file(ios_dir / "build", "*.ipa")
        if ipa is None:
            raise BuildError("xcodebuild export finished but no .ipa was produced")
        return ipa
