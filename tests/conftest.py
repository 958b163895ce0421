"""Shared test fixtures."""
from __future__ import annotations

import json
import plistlib
import zipfile
from pathlib import Path
from typing import Any, Callable

import pytest

from rnship.core.config import BuilderSettings
from rnship.core.constants import Platform
from rnship.core.context import PipelineContext
from rnship.core.types import BuildRequest, CommandResult
from rnship.utils.process import MockProcessRunner
from rnship.utils.prompt import StaticConfirmer

TOOL_VERSIONS: dict[str, Any] = {
    "node": "v18.17.0\n",
    "java": CommandResult(argv=[], returncode=0, stderr='openjdk version "17.0.2" 2022-01-18\n'),
    "yarn": "1.22.19\n",
    "gradle": "\n------------------------------------------------------------\nGradle 7.5.1\n",
    "git": "git version 2.39.2\n",
    "expo": "6.3.10\n",
    "pod": "1.12.1\n",
}

THEME_SOURCE = (
    "import base from './base';\n"
    "import androidTheme from './android/theme';\n"
    "import iosTheme from './ios/theme';\n"
    "export default { base, androidTheme, iosTheme };\n"
)


def write_project(
    root: Path,
    app_id: str = "app1",
    name: str = "DemoApp",
    ejected: bool = False,
    **extra: Any,
) -> Path:
    """Lay out a minimal generated Expo project under *root*."""
    root.mkdir(parents=True, exist_ok=True)
    metadata = {
        "id": app_id,
        "name": name,
        "icon": {"src": "resources/icon.png"},
        "splash": {"src": "resources/splash.png"},
        "preferences": {"enableHermes": True},
        "ejected": ejected,
        **extra,
    }
    (root / "wm_rn_config.json").write_text(json.dumps(metadata))
    (root / "app.json").write_text(
        json.dumps({"expo": {"name": "template", "android": {}, "ios": {}}})
    )
    (root / "package.json").write_text(json.dumps({"name": "demo", "main": "App.js"}))
    theme = root / "src" / "theme"
    for platform in ("android", "ios"):
        (theme / platform).mkdir(parents=True, exist_ok=True)
        (theme / platform / "theme.ts").write_text("export default {};\n")
    (theme / "theme.ts").write_text(THEME_SOURCE)
    (theme / "variables.ts").write_text(THEME_SOURCE)
    return root


def zip_project(project: Path, archive: Path) -> Path:
    with zipfile.ZipFile(archive, "w") as zf:
        for path in project.rglob("*"):
            if path.is_file():
                zf.write(path, path.relative_to(project))
    return archive


def fake_expo_eject(argv: list[str], cwd: Path | None) -> str:
    """Creates the native folders ``expo eject`` would generate."""
    assert cwd is not None
    android = cwd / "android"
    android.mkdir(exist_ok=True)
    (android / "gradlew").write_text("#!/bin/sh\n")
    workspace = cwd / "ios" / "DemoApp.xcworkspace"
    workspace.mkdir(parents=True, exist_ok=True)
    return "Ejected successfully!"


def fake_gradle(argv: list[str], cwd: Path | None) -> str:
    """Drops the APK/AAB that the requested gradle task would produce."""
    assert cwd is not None
    task = argv[1]
    outputs = cwd / "app" / "build" / "outputs"
    if task == "bundleRelease":
        artifact = outputs / "bundle" / "release" / "app-release.aab"
    elif task == "assembleRelease":
        artifact = outputs / "apk" / "release" / "app-release.apk"
    else:
        artifact = outputs / "apk" / "debug" / "app-debug.apk"
    artifact.parent.mkdir(parents=True, exist_ok=True)
    artifact.write_bytes(b"\0" * 2048)
    return "BUILD SUCCESSFUL"


@pytest.fixture
def settings(tmp_path: Path) -> BuilderSettings:
    return BuilderSettings(home=tmp_path.resolve() / "home")


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str]:
    java_home = tmp_path / "jdk"
    sdk = tmp_path / "android-sdk"
    java_home.mkdir()
    sdk.mkdir()
    return {"JAVA_HOME": str(java_home), "ANDROID_SDK_ROOT": str(sdk)}


def make_runner(delay: float = 0.0) -> MockProcessRunner:
    """Runner with every tool installed at a recent version."""
    mock = MockProcessRunner(delay=delay)
    for tool, response in TOOL_VERSIONS.items():
        mock.register([tool], response)
    mock.register(["expo", "eject"], fake_expo_eject)
    mock.register(["gradlew"], fake_gradle)
    return mock


@pytest.fixture
def runner() -> MockProcessRunner:
    return make_runner()


@pytest.fixture
def runner_factory() -> Callable[..., MockProcessRunner]:
    return make_runner


@pytest.fixture
def project(tmp_path: Path) -> Path:
    return write_project(tmp_path / "project")


@pytest.fixture
def make_context(
    settings: BuilderSettings, runner: MockProcessRunner
) -> Callable[..., PipelineContext]:
    def _make(confirm: bool = True, **request_fields: Any) -> PipelineContext:
        request_fields.setdefault("platform", Platform.ANDROID)
        request_fields.setdefault("src", ".")
        return PipelineContext(
            request=BuildRequest(**request_fields),
            settings=settings,
            runner=runner,
            confirmer=StaticConfirmer(confirm),
            run_id="test-run",
        )

    return _make


@pytest.fixture
def project_factory() -> Callable[..., Path]:
    return write_project


@pytest.fixture
def zip_factory() -> Callable[[Path, Path], Path]:
    return zip_project


# ---------------------------------------------------------------------------
# iOS signing fakes
# ---------------------------------------------------------------------------

LOGIN_KEYCHAIN = "/Users/builder/Library/Keychains/login.keychain-db"
TEAM_ID = "ABCDE12345"
PROFILE_UUID = "1A2B3C4D-0000-1111-2222-333344445555"


class FakeSecurity:
    """Stateful stand-in for the macOS ``security`` tool.

    Tracks created keychains and the user search list; subcommands listed
    in ``fail_on`` exit with status 1.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.search_list = [LOGIN_KEYCHAIN]
        self.keychains: set[str] = set()
        self.fail_on = set(fail_on)
        self.max_ephemeral = 0

    def __call__(self, argv: list[str], cwd: Path | None) -> CommandResult | str:
        sub = argv[1]
        if sub in self.fail_on:
            return CommandResult(argv=argv, returncode=1, stderr=f"{sub} failed")
        if sub == "create-keychain":
            self.keychains.add(argv[-1])
        elif sub == "delete-keychain":
            self.keychains.discard(argv[-1])
        elif sub == "list-keychains":
            if "-s" in argv:
                self.search_list = argv[argv.index("-s") + 1 :]
                ephemeral = [k for k in self.search_list if k in self.keychains]
                self.max_ephemeral = max(self.max_ephemeral, len(ephemeral))
            else:
                return "".join(f'    "{k}"\n' for k in self.search_list)
        return ""


def make_profile(
    path: Path,
    provisions_all: bool = False,
    devices: list[str] | None = None,
    debuggable: bool = False,
) -> Path:
    """Write a fake ``.mobileprovision``: a plist wrapped in binary noise."""
    data: dict[str, Any] = {
        "Name": "Demo Distribution",
        "UUID": PROFILE_UUID,
        "TeamIdentifier": [TEAM_ID],
        "Entitlements": {
            "application-identifier": f"{TEAM_ID}.com.example.demo",
            "get-task-allow": debuggable,
        },
    }
    if provisions_all:
        data["ProvisionsAllDevices"] = True
    if devices:
        data["ProvisionedDevices"] = devices
    path.write_bytes(b"0\x82\x1d\x8a\x06\t*\x86H" + plistlib.dumps(data) + b"\xa0\x82\x0e\x1e0")
    return path


@pytest.fixture
def fake_security(runner: MockProcessRunner) -> FakeSecurity:
    fake = FakeSecurity()
    runner.register(["security"], fake)
    return fake


@pytest.fixture
def profile_factory() -> Callable[..., Path]:
    return make_profile
