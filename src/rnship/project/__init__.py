from rnship.project.assets import (
    normalize_asset_path,
    normalize_metadata_assets,
    prune_platform_assets,
)
from rnship.project.eject import EjectTransformer
from rnship.project.metadata import ConfigStore
from rnship.project.stager import ProjectStager, next_build_number

__all__ = [
    "ConfigStore",
    "EjectTransformer",
    "ProjectStager",
    "next_build_number",
    "normalize_asset_path",
    "normalize_metadata_assets",
    "prune_platform_assets",
]
