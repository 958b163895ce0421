from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from rnship.__version__ import __version__
from rnship.core.config import BuilderSettings
from rnship.core.constants import BuildType, PackageType, Platform
from rnship.core.exceptions import ConfigurationError
from rnship.core.types import BuildRequest, BuildResult, PrerequisiteReport
from rnship.pipeline.pipeline import BuildPipeline
from rnship.utils.logging import configure_logging
from rnship.utils.prompt import ConsoleConfirmer


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("src", help="project directory or .zip archive")
    parser.add_argument("--dest", help="build directory (default: per-user build cache)")
    parser.add_argument(
        "--build-type",
        choices=[b.value for b in BuildType],
        default=BuildType.DEVELOPMENT.value,
    )
    parser.add_argument(
        "--auto-eject",
        action="store_true",
        help="eject without asking",
    )
    parser.add_argument(
        "--local-runtime-path",
        help="directory copied over the installed app runtime package",
    )


def _add_android(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("android signing")
    group.add_argument("--aab", action="store_true", help="build an app bundle instead of an APK")
    group.add_argument("--keystore")
    group.add_argument("--store-password")
    group.add_argument("--key-alias")
    group.add_argument("--key-password")


def _add_ios(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("ios signing")
    group.add_argument("--certificate", help=".p12 signing certificate")
    group.add_argument("--certificate-password")
    group.add_argument("--provisioning-file", help=".mobileprovision file")
    group.add_argument("--package-type", choices=[p.value for p in PackageType])
    group.add_argument("--code-signing-identity")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rnship",
        description="Build signed Android/iOS binaries from a React Native (Expo) project.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--json-logs", action="store_true", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="stage, eject if needed, and build")
    platforms = build.add_subparsers(dest="platform", required=True)
    android = platforms.add_parser(Platform.ANDROID.value, help="build an APK/AAB")
    _add_common(android)
    _add_android(android)
    ios = platforms.add_parser(Platform.IOS.value, help="build an IPA")
    _add_common(ios)
    _add_ios(ios)

    eject = sub.add_parser("eject", help="stage and eject only")
    eject.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=Platform.ANDROID.value,
    )
    _add_common(eject)

    check = sub.add_parser("check", help="check toolchain prerequisites")
    check.add_argument("platform", choices=[p.value for p in Platform])
    return parser


def request_from_args(args: argparse.Namespace) -> BuildRequest:
    fields = {
        "platform": args.platform,
        "src": getattr(args, "src", "."),
        "dest": getattr(args, "dest", None),
        "build_type": getattr(args, "build_type", BuildType.DEVELOPMENT.value),
        "auto_eject": getattr(args, "auto_eject", False),
        "local_runtime_path": getattr(args, "local_runtime_path", None),
        "android_bundle": getattr(args, "aab", False),
        "keystore": getattr(args, "keystore", None),
        "store_password": getattr(args, "store_password", None),
        "key_alias": getattr(args, "key_alias", None),
        "key_password": getattr(args, "key_password", None),
        "certificate": getattr(args, "certificate", None),
        "certificate_password": getattr(args, "certificate_password", None),
        "provisioning_file": getattr(args, "provisioning_file", None),
        "package_type": getattr(args, "package_type", None),
        "code_signing_identity": getattr(args, "code_signing_identity", None),
    }
    return BuildRequest(**fields)


def _print_result(result: BuildResult) -> None:
    if result.success:
        print(f"OK: {result.output}")
        return
    print("FAILED", file=sys.stderr)
    for error in result.errors:
        print(f"  - {error}", file=sys.stderr)


def _print_report(report: PrerequisiteReport) -> None:
    for check in report.checks.values():
        mark = "ok" if check.satisfied else "!!"
        required = f" (>= {check.required})" if check.required else ""
        print(f"[{mark}] {check.name} {check.version or '-'}{required}")
    for error in report.errors:
        print(f"[!!] {error}")


async def _dispatch(args: argparse.Namespace, settings: BuilderSettings) -> int:
    request = request_from_args(args)
    pipeline = BuildPipeline(settings=settings, confirmer=ConsoleConfirmer())

    if args.command == "check":
        report = await pipeline.check(request)
        _print_report(report)
        return 0 if report.ok else 1

    if args.command == "eject":
        result = await pipeline.eject(request)
    else:
        result = await pipeline.run(request)
    _print_result(result)
    return 0 if result.success else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = BuilderSettings.from_env()
    except ConfigurationError as exc:
        print(f"rnship: {exc}", file=sys.stderr)
        return 2
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    if args.json_logs:
        settings = settings.model_copy(update={"log_json": True})
    configure_logging(settings.log_level, json=settings.log_json)

    return asyncio.run(_dispatch(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
