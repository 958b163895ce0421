from __future__ import annotations

from enum import StrEnum


class Platform(StrEnum):
    ANDROID = "android"
    IOS = "ios"

    @property
    def other(self) -> Platform:
        return Platform.IOS if self is Platform.ANDROID else Platform.ANDROID


class BuildType(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class PackageType(StrEnum):
    """Package type requested on the command line; picks the signing identity."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ExportMethod(StrEnum):
    """Distribution style embedded in a provisioning profile."""

    APP_STORE = "app-store"
    ENTERPRISE = "enterprise"
    AD_HOC = "ad-hoc"


# Minimum tool versions. ``None`` means "must be installed, any version".
BASE_REQUIRED_VERSIONS: dict[str, str | None] = {
    "node": "12.0.0",
    "java": "1.8.0",
    "yarn": None,
    "gradle": None,
    "git": None,
    "expo": None,
    "pod": "1.9.0",
}

# Per-platform overrides applied on top of BASE_REQUIRED_VERSIONS.
PLATFORM_REQUIRED_VERSIONS: dict[Platform, dict[str, str | None]] = {
    Platform.ANDROID: {"java": "11.0.0"},
    Platform.IOS: {"java": "1.8.0"},
}

EJECT_TOOLS = ("node", "java", "yarn", "gradle", "git", "expo")
ANDROID_BUILD_TOOLS = ("node", "java", "gradle")
IOS_BUILD_TOOLS = ("node", "git", "pod")

METADATA_FILE = "wm_rn_config.json"
APP_MANIFEST_FILE = "app.json"
PACKAGE_DESCRIPTOR_FILE = "package.json"
PACKAGE_ENTRY_POINT = "index"
DEFAULT_APP_VERSION = "1.0.0"
OUTPUT_DIR = "output"
LOG_DIR = "logs"

EXPO_UPDATES_URL = "https://wavemaker.com"

DISTRIBUTION_IDENTITY = "iPhone Distribution"
DEVELOPER_IDENTITY = "iPhone Developer"

KEYCHAIN_TRUSTED_APPS = (
    "/usr/bin/codesign",
    "/usr/bin/productsign",
    "/usr/bin/productbuild",
    "/Applications/Xcode.app",
)
KEYCHAIN_PARTITION_LIST = "apple-tool:,apple:,codesign"

# Generated theme sources; each imports both platforms' theme modules.
THEME_DIR = "src/theme"
THEME_FILES = ("src/theme/theme.ts", "src/theme/variables.ts")
