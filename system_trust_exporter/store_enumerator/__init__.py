import os
import sys
from typing import TYPE_CHECKING, Dict, Optional, Type

from system_trust_exporter.store_enumerator.directory_enumerator import DirectoryStoreEnumerator
from system_trust_exporter.store_enumerator.macos_enumerator import MacOsStoreEnumerator
from system_trust_exporter.store_enumerator.pem_bundle_enumerator import PemBundleStoreEnumerator
from system_trust_exporter.store_enumerator.store_enumerator_interface import (
    PlatformEnum,
    StoreEnumeratorInterface,
    StoreUnavailableError,
)
from system_trust_exporter.store_enumerator.windows_enumerator import WindowsStoreEnumerator

if TYPE_CHECKING:
    from system_trust_exporter.config import ExporterConfig  # noqa: F401


__all__ = [
    "DirectoryStoreEnumerator",
    "MacOsStoreEnumerator",
    "PemBundleStoreEnumerator",
    "PlatformEnum",
    "StoreEnumeratorInterface",
    "StoreUnavailableError",
    "TrustAnchorEnumerator",
    "WindowsStoreEnumerator",
]


class TrustAnchorEnumerator:
    """The main class for building the enumerator of a given platform's trust store.
    """

    _ENUMERATOR_CLS: Dict[PlatformEnum, Type[StoreEnumeratorInterface]] = {
        PlatformEnum.LINUX: PemBundleStoreEnumerator,
        PlatformEnum.ANDROID: DirectoryStoreEnumerator,
        PlatformEnum.MACOS: MacOsStoreEnumerator,
        PlatformEnum.WINDOWS: WindowsStoreEnumerator,
    }

    @staticmethod
    def detect_platform() -> PlatformEnum:
        # Python reports Android as "linux" before 3.13
        if sys.platform == "android" or "ANDROID_ROOT" in os.environ:
            return PlatformEnum.ANDROID
        elif sys.platform == "darwin":
            return PlatformEnum.MACOS
        elif sys.platform == "win32":
            return PlatformEnum.WINDOWS
        return PlatformEnum.LINUX

    @classmethod
    def get_enumerator(
        cls, platform: Optional[PlatformEnum] = None, config: Optional["ExporterConfig"] = None
    ) -> StoreEnumeratorInterface:
        if config is not None and platform is None:
            platform = config.platform
        if platform is None:
            platform = cls.detect_platform()

        enumerator_cls = cls._ENUMERATOR_CLS[platform]
        if config is None:
            return enumerator_cls()

        if enumerator_cls is PemBundleStoreEnumerator:
            return PemBundleStoreEnumerator(config.bundle_paths)
        elif enumerator_cls is DirectoryStoreEnumerator:
            return DirectoryStoreEnumerator(
                config.directories, config.user_added_directory, config.user_removed_directory
            )
        elif enumerator_cls is MacOsStoreEnumerator:
            return MacOsStoreEnumerator(config.keychains)
        return WindowsStoreEnumerator(config.windows_store_names)
