"""Database model package."""

from .account import AccountRecord
from .alias import AliasRecord
from .download_stat import DownloadStatRecord
from .package import PackageRecord
from .registry_setting import RegistrySettingRecord
from .release import ReleaseRecord

__all__ = [
    "AccountRecord",
    "AliasRecord",
    "DownloadStatRecord",
    "PackageRecord",
    "RegistrySettingRecord",
    "ReleaseRecord",
]
