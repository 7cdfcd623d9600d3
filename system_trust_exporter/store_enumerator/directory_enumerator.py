import logging
from pathlib import Path
from typing import List, Optional, Sequence, Set

from system_trust_exporter.certificate_utils import CertificateUtils, PEM_HEADER
from system_trust_exporter.store_enumerator.store_enumerator_interface import (
    StoreEnumeratorInterface,
    StoreUnavailableError,
)


class DirectoryStoreEnumerator(StoreEnumeratorInterface):
    """Read the trust anchors from folders holding one certificate per file, the way Android's AndroidCAStore does.

    The system directories are alternative locations of the same store and only the first existing one is read.
    Certificates the user added are appended, and system certificates the user removed are skipped; Android keeps
    a copy of each removed certificate under the same <subject hash>.<n> file name in the removed directory.

    Each file can be PEM or DER; the extension is not a reliable hint.
    """

    DEFAULT_DIRECTORIES = [
        # Updatable Conscrypt module, Android 14+; replaces the system image's directory when present
        Path("/apex/com.android.conscrypt/cacerts"),
        Path("/system/etc/security/cacerts"),
    ]
    DEFAULT_USER_ADDED_DIRECTORY = Path("/data/misc/user/0/cacerts-added")
    DEFAULT_USER_REMOVED_DIRECTORY = Path("/data/misc/user/0/cacerts-removed")

    def __init__(
        self,
        directories: Optional[Sequence[Path]] = None,
        user_added_directory: Optional[Path] = None,
        user_removed_directory: Optional[Path] = None,
    ) -> None:
        if directories is None:
            directories = self.DEFAULT_DIRECTORIES
        if user_added_directory is None:
            user_added_directory = self.DEFAULT_USER_ADDED_DIRECTORY
        if user_removed_directory is None:
            user_removed_directory = self.DEFAULT_USER_REMOVED_DIRECTORY
        self._directories = [Path(path) for path in directories]
        self._user_added_directory = Path(user_added_directory)
        self._user_removed_directory = Path(user_removed_directory)

    def enumerate_trust_anchors(self) -> List[bytes]:
        system_directory = next((directory for directory in self._directories if directory.is_dir()), None)
        if system_directory is None:
            searched_paths = ", ".join(str(path) for path in self._directories)
            raise StoreUnavailableError(f"No CA certificates directory found; searched {searched_paths}")

        removed_file_names: Set[str] = set()
        if self._user_removed_directory.is_dir():
            removed_paths = self._list_certificate_files(self._user_removed_directory)
            removed_file_names = {cert_path.name for cert_path in removed_paths}

        all_raw_certificates = []
        logging.info(f"Reading trust anchors from {system_directory}")
        for cert_path in self._list_certificate_files(system_directory):
            if cert_path.name in removed_file_names:
                logging.info(f"Skipping {cert_path.name}, removed by the user")
                continue
            all_raw_certificates.extend(self._read_certificate_file(cert_path))

        if self._user_added_directory.is_dir():
            logging.info(f"Reading user-added trust anchors from {self._user_added_directory}")
            for cert_path in self._list_certificate_files(self._user_added_directory):
                all_raw_certificates.extend(self._read_certificate_file(cert_path))

        return all_raw_certificates

    @staticmethod
    def _list_certificate_files(directory: Path) -> List[Path]:
        try:
            # Sort the files so the enumeration order does not depend on the file system
            return sorted(path for path in directory.iterdir() if path.is_file())
        except OSError as e:
            raise StoreUnavailableError(f"Could not list CA certificates directory {directory}: {e}") from e

    @staticmethod
    def _read_certificate_file(cert_path: Path) -> List[bytes]:
        try:
            file_content = cert_path.read_bytes()
        except OSError as e:
            logging.error(f"Skipping unreadable certificate file {cert_path}: {e}")
            return []

        if PEM_HEADER.encode("ascii") in file_content:
            return CertificateUtils.pem_to_der_list(file_content)

        # Anything else is handed over as DER and will be dropped later if it is not a certificate
        logging.debug(f"No PEM header in {cert_path}; treating it as DER")
        return [file_content]
