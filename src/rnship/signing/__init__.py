from rnship.signing.keychain import EphemeralKeychain, parse_keychain_list
from rnship.signing.provisioning import (
    ProvisioningProfile,
    classify_profile,
    extract_team_id,
    extract_uuid,
    load_profile,
    signing_identity,
)

__all__ = [
    "EphemeralKeychain",
    "ProvisioningProfile",
    "classify_profile",
    "extract_team_id",
    "extract_uuid",
    "load_profile",
    "parse_keychain_list",
    "signing_identity",
]
