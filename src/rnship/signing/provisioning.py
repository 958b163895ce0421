"""Read identifiers out of a ``.mobileprovision`` file.

A provisioning profile is a CMS-signed envelope around an XML property
list. The plist is located by its ``<?xml``/``</plist>`` markers and parsed
with :mod:`plistlib`; the UUID and team id are also available through plain
pattern matching over the raw bytes.
"""

from __future__ import annotations

import plistlib
import re
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel

from rnship.core.constants import (
    DEVELOPER_IDENTITY,
    DISTRIBUTION_IDENTITY,
    ExportMethod,
    PackageType,
)
from rnship.core.exceptions import ProvisioningProfileError

logger = structlog.get_logger(__name__)

_UUID = re.compile(r"<key>UUID</key>\s*<string>\s*([-A-F0-9]{36})\s*</string>", re.IGNORECASE)
_TEAM_ID = re.compile(
    r"<key>TeamIdentifier</key>\s*<array>\s*<string>\s*([A-Z0-9]+)\s*</string>",
    re.IGNORECASE,
)


class ProvisioningProfile(BaseModel):
    uuid: str
    team_id: str
    name: str | None = None
    export_method: ExportMethod
    bundle_id_pattern: str | None = None


def _text(content: bytes) -> str:
    return content.decode("latin-1")


def extract_uuid(content: bytes) -> str:
    match = _UUID.search(_text(content))
    if not match:
        raise ProvisioningProfileError("could not find the UUID in the provisioning profile")
    return match.group(1)


def extract_team_id(content: bytes) -> str:
    match = _TEAM_ID.search(_text(content))
    if not match:
        raise ProvisioningProfileError(
            "could not find the TeamIdentifier in the provisioning profile"
        )
    return match.group(1)


def embedded_plist(content: bytes) -> dict[str, Any]:
    start = content.find(b"<?xml")
    end = content.find(b"</plist>")
    if start == -1 or end == -1:
        raise ProvisioningProfileError("provisioning profile has no embedded property list")
    try:
        data = plistlib.loads(content[start : end + len(b"</plist>")])
    except plistlib.InvalidFileException as exc:
        raise ProvisioningProfileError(f"provisioning profile plist is invalid: {exc}") from exc
    if not isinstance(data, dict):
        raise ProvisioningProfileError("provisioning profile plist is not a dictionary")
    return data


def classify_profile(data: dict[str, Any]) -> ExportMethod:
    """Distribution style of a parsed profile.

    Raises:
        ProvisioningProfileError: For development (debug) profiles or any
            shape that is not app-store, enterprise or ad-hoc.
    """
    entitlements = data.get("Entitlements") or {}
    debuggable = bool(entitlements.get("get-task-allow", False))
    if data.get("ProvisionsAllDevices"):
        return ExportMethod.ENTERPRISE
    if data.get("ProvisionedDevices"):
        if debuggable:
            raise ProvisioningProfileError(
                "development provisioning profiles cannot be exported; "
                "use an app-store, ad-hoc or enterprise profile"
            )
        return ExportMethod.AD_HOC
    if not debuggable:
        return ExportMethod.APP_STORE
    raise ProvisioningProfileError("not able to find the type of the provisioning file")


def load_profile(path: Path) -> ProvisioningProfile:
    content = path.read_bytes()
    data = embedded_plist(content)
    profile = ProvisioningProfile(
        uuid=extract_uuid(content),
        team_id=extract_team_id(content),
        name=data.get("Name"),
        export_method=classify_profile(data),
        bundle_id_pattern=(data.get("Entitlements") or {}).get("application-identifier"),
    )
    logger.info(
        "provisioning_profile_loaded",
        uuid=profile.uuid,
        team_id=profile.team_id,
        export_method=profile.export_method.value,
    )
    return profile


def signing_identity(package_type: PackageType | str | None, override: str | None = None) -> str:
    """``iPhone Distribution`` for production packages, ``iPhone Developer`` otherwise."""
    if override:
        return override
    if package_type == PackageType.PRODUCTION:
        return DISTRIBUTION_IDENTITY
    return DEVELOPER_IDENTITY
