from rnship.builders.android import AndroidBuilder
from rnship.builders.base import PlatformBuilder
from rnship.builders.ios import IosBuilder
from rnship.core.constants import Platform

BUILDERS: dict[Platform, type[PlatformBuilder]] = {
    Platform.ANDROID: AndroidBuilder,
    Platform.IOS: IosBuilder,
}

__all__ = ["AndroidBuilder", "BUILDERS", "IosBuilder", "PlatformBuilder"]
