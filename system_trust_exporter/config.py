from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from system_trust_exporter.store_enumerator.directory_enumerator import DirectoryStoreEnumerator
from system_trust_exporter.store_enumerator.macos_enumerator import MacOsStoreEnumerator
from system_trust_exporter.store_enumerator.pem_bundle_enumerator import PemBundleStoreEnumerator
from system_trust_exporter.store_enumerator.store_enumerator_interface import PlatformEnum
from system_trust_exporter.store_enumerator.windows_enumerator import WindowsStoreEnumerator


class ExporterConfig:
    """Where to look for the trust store on each platform.

    Loaded from a YAML file such as:

        platform: LINUX
        bundle_paths:
          - /etc/ssl/certs/ca-certificates.crt
        directories: []
        user_added_directory: /data/misc/user/0/cacerts-added
        user_removed_directory: /data/misc/user/0/cacerts-removed
        keychains: []
        windows_store_names: [ROOT]

    Every key is optional; a missing key keeps the platform default.
    """

    _ALLOWED_KEYS = {
        "platform",
        "bundle_paths",
        "directories",
        "user_added_directory",
        "user_removed_directory",
        "keychains",
        "windows_store_names",
    }

    def __init__(
        self,
        platform: Optional[PlatformEnum] = None,
        bundle_paths: Optional[List[Path]] = None,
        directories: Optional[List[Path]] = None,
        user_added_directory: Optional[Path] = None,
        user_removed_directory: Optional[Path] = None,
        keychains: Optional[List[str]] = None,
        windows_store_names: Optional[List[str]] = None,
    ) -> None:
        self.platform = platform
        # Copies, so that changing a config never changes the enumerators' defaults
        self.bundle_paths = list(
            bundle_paths if bundle_paths is not None else PemBundleStoreEnumerator.DEFAULT_BUNDLE_PATHS
        )
        self.directories = list(
            directories if directories is not None else DirectoryStoreEnumerator.DEFAULT_DIRECTORIES
        )
        self.user_added_directory = (
            user_added_directory
            if user_added_directory is not None
            else DirectoryStoreEnumerator.DEFAULT_USER_ADDED_DIRECTORY
        )
        self.user_removed_directory = (
            user_removed_directory
            if user_removed_directory is not None
            else DirectoryStoreEnumerator.DEFAULT_USER_REMOVED_DIRECTORY
        )
        self.keychains = list(keychains if keychains is not None else MacOsStoreEnumerator.DEFAULT_KEYCHAINS)
        self.windows_store_names = list(
            windows_store_names if windows_store_names is not None else WindowsStoreEnumerator.DEFAULT_STORE_NAMES
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExporterConfig):
            return False
        return self.__dict__ == other.__dict__

    @classmethod
    def get_default(cls) -> "ExporterConfig":
        return cls()

    @classmethod
    def from_yaml(cls, yaml_file_path: Path) -> "ExporterConfig":
        with open(yaml_file_path, mode="r") as config_file:
            config_dict = yaml.safe_load(config_file)
        return cls.from_dict(config_dict or {})

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "ExporterConfig":
        if not isinstance(config_dict, dict):
            raise ValueError(f"Expected a mapping at the top of the configuration, got {type(config_dict).__name__}")

        unknown_keys = set(config_dict.keys()) - cls._ALLOWED_KEYS
        if unknown_keys:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown_keys))}")

        platform = None
        if config_dict.get("platform") is not None:
            platform_name = str(config_dict["platform"]).upper()
            try:
                platform = PlatformEnum[platform_name]
            except KeyError:
                raise ValueError(f"Unknown platform {platform_name}")

        bundle_paths = config_dict.get("bundle_paths")
        directories = config_dict.get("directories")
        user_added_directory = config_dict.get("user_added_directory")
        user_removed_directory = config_dict.get("user_removed_directory")
        keychains = config_dict.get("keychains")
        windows_store_names = config_dict.get("windows_store_names")
        return cls(
            platform=platform,
            bundle_paths=[Path(path) for path in bundle_paths] if bundle_paths is not None else None,
            directories=[Path(path) for path in directories] if directories is not None else None,
            user_added_directory=Path(user_added_directory) if user_added_directory is not None else None,
            user_removed_directory=Path(user_removed_directory) if user_removed_directory is not None else None,
            keychains=[str(keychain) for keychain in keychains] if keychains is not None else None,
            windows_store_names=(
                [str(name) for name in windows_store_names] if windows_store_names is not None else None
            ),
        )
